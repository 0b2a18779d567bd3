"""
Tests for the Click and Payme providers.

Verifies checkout URL construction, Click's md5 callback signature and
Payme's Basic authorization check.
"""

import base64
import hashlib
import json
from urllib.parse import parse_qs, urlparse

import pytest

from app.services.payment import CheckoutParams, PaymentProviderFactory
from app.services.payment.providers import (
    ClickConfig,
    ClickProvider,
    PaymeConfig,
    PaymeProvider,
)

PARAMS = CheckoutParams(
    transaction_id="ptx_abc",
    subscription_id="usub_123",
    amount=99_000,
    return_url="https://asloguz.uz/subscription/success",
)


def _signed_click_payload(secret: str, **overrides) -> dict:
    payload = {
        "click_trans_id": 5551,
        "service_id": "svc",
        "merchant_trans_id": "ptx_abc",
        "amount": "99000",
        "action": 0,
        "sign_time": "2026-10-19 10:00:00",
    }
    payload.update(overrides)
    raw = (
        f"{payload['click_trans_id']}{payload['service_id']}{secret}"
        f"{payload['merchant_trans_id']}{payload['amount']}{payload['action']}"
        f"{payload['sign_time']}"
    )
    payload["sign_string"] = hashlib.md5(raw.encode()).hexdigest()
    return payload


class TestClickProvider:
    def setup_method(self):
        self.provider = ClickProvider(
            ClickConfig(merchant_id="mch", service_id="svc", secret_key="s3cret")
        )

    def test_checkout_url_carries_transaction(self):
        url = urlparse(self.provider.build_checkout_url(PARAMS))
        query = parse_qs(url.query)

        assert url.netloc == "my.click.uz"
        assert query["transaction_param"] == ["ptx_abc"]
        assert query["amount"] == ["99000"]
        assert query["service_id"] == ["svc"]
        assert query["return_url"] == [PARAMS.return_url]

    def test_valid_signature(self):
        assert self.provider.verify_signature(_signed_click_payload("s3cret")) is True

    def test_tampered_amount_fails_signature(self):
        payload = _signed_click_payload("s3cret")
        payload["amount"] = "1"
        assert self.provider.verify_signature(payload) is False

    def test_wrong_secret_fails_signature(self):
        assert self.provider.verify_signature(_signed_click_payload("other")) is False

    def test_missing_field_fails_signature(self):
        payload = _signed_click_payload("s3cret")
        del payload["sign_time"]
        assert self.provider.verify_signature(payload) is False

    def test_no_secret_rejects_everything(self):
        provider = ClickProvider(ClickConfig(merchant_id="m", service_id="svc", secret_key=""))
        assert provider.verify_signature(_signed_click_payload("")) is False


class TestPaymeProvider:
    def setup_method(self):
        self.provider = PaymeProvider(PaymeConfig(merchant_id="mch", secret_key="k3y"))

    def test_checkout_url_encodes_amount_in_tiyin(self):
        url = self.provider.build_checkout_url(PARAMS)
        assert url.startswith("https://checkout.paycom.uz/")

        payload = json.loads(base64.b64decode(url.rsplit("/", 1)[1]))
        assert payload == {
            "m": "mch",
            "ac": {"subscription_id": "usub_123"},
            "a": 9_900_000,
            "c": PARAMS.return_url,
        }

    @pytest.mark.parametrize(
        "credentials,expected",
        [
            ("Paycom:k3y", True),
            ("Paycom:wrong", False),
            ("Other:k3y", False),
        ],
    )
    def test_basic_authorization(self, credentials, expected):
        header = "Basic " + base64.b64encode(credentials.encode()).decode()
        assert self.provider.verify_authorization(header) is expected

    @pytest.mark.parametrize("header", [None, "", "Bearer abc", "Basic !!!not-base64"])
    def test_malformed_authorization(self, header):
        assert self.provider.verify_authorization(header) is False


def test_factory_knows_both_providers():
    factory = PaymentProviderFactory()
    assert set(factory.list_codes()) == {"click", "payme"}
    assert factory.get_provider("payme").name == "Payme"
    with pytest.raises(ValueError):
        factory.get_provider("stripe")
