# app/services/payment/providers/click_provider.py
import hashlib
import hmac
import logging
from dataclasses import dataclass
from urllib.parse import urlencode

from ..provider_interface import CheckoutParams, PaymentProviderInterface

logger = logging.getLogger(__name__)

CLICK_CHECKOUT_URL = "https://my.click.uz/services/pay"


@dataclass
class ClickConfig:
    merchant_id: str
    service_id: str
    secret_key: str


class ClickProvider(PaymentProviderInterface):
    def __init__(self, config: ClickConfig):
        self.config = config

    @property
    def code(self) -> str:
        return "click"

    @property
    def name(self) -> str:
        return "Click"

    def build_checkout_url(self, params: CheckoutParams) -> str:
        query = urlencode(
            {
                "service_id": self.config.service_id,
                "merchant_id": self.config.merchant_id,
                "amount": params.amount,
                "transaction_param": params.transaction_id,
                "return_url": params.return_url,
            }
        )
        return f"{CLICK_CHECKOUT_URL}?{query}"

    def sign(
        self,
        *,
        click_trans_id: str,
        service_id: str,
        merchant_trans_id: str,
        amount: str,
        action: str,
        sign_time: str,
    ) -> str:
        raw = (
            f"{click_trans_id}{service_id}{self.config.secret_key}"
            f"{merchant_trans_id}{amount}{action}{sign_time}"
        )
        return hashlib.md5(raw.encode("utf-8")).hexdigest()

    def verify_signature(self, payload: dict) -> bool:
        """
        Check the md5 sign_string Click attaches to every callback.
        Without a configured secret nothing verifies.
        """
        if not self.config.secret_key:
            logger.error("CLICK_SECRET_KEY not configured, rejecting webhook")
            return False

        try:
            expected = self.sign(
                click_trans_id=str(payload["click_trans_id"]),
                service_id=str(payload["service_id"]),
                merchant_trans_id=str(payload["merchant_trans_id"]),
                amount=str(payload["amount"]),
                action=str(payload["action"]),
                sign_time=str(payload["sign_time"]),
            )
        except KeyError as e:
            logger.warning(f"Click webhook missing field {e}")
            return False

        return hmac.compare_digest(expected, str(payload.get("sign_string", "")))
