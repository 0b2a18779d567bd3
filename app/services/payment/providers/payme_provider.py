# app/services/payment/providers/payme_provider.py
import base64
import binascii
import hmac
import json
import logging
from dataclasses import dataclass
from typing import Optional

from ..provider_interface import CheckoutParams, PaymentProviderInterface

logger = logging.getLogger(__name__)

PAYME_CHECKOUT_URL = "https://checkout.paycom.uz/"
PAYME_USERNAME = "Paycom"


@dataclass
class PaymeConfig:
    merchant_id: str
    secret_key: str


class PaymeProvider(PaymentProviderInterface):
    def __init__(self, config: PaymeConfig):
        self.config = config

    @property
    def code(self) -> str:
        return "payme"

    @property
    def name(self) -> str:
        return "Payme"

    def build_checkout_url(self, params: CheckoutParams) -> str:
        # Payme takes the amount in tiyin
        payload = {
            "m": self.config.merchant_id,
            "ac": {"subscription_id": params.subscription_id},
            "a": params.amount * 100,
            "c": params.return_url,
        }
        encoded = base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")
        return f"{PAYME_CHECKOUT_URL}{encoded}"

    def verify_authorization(self, header: Optional[str]) -> bool:
        """Payme calls us with Basic auth, Paycom:<secret key>."""
        if not self.config.secret_key:
            logger.error("PAYME_SECRET_KEY not configured, rejecting request")
            return False
        if not header or not header.startswith("Basic "):
            return False

        try:
            decoded = base64.b64decode(header[len("Basic "):]).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            return False

        username, _, password = decoded.partition(":")
        return username == PAYME_USERNAME and hmac.compare_digest(
            password, self.config.secret_key
        )
