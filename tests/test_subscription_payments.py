"""
Tests for subscription payments through Click and Payme.

Verifies that PaymentService correctly:
- Opens a pending subscription and transaction with a checkout URL
- Rejects Click callbacks with a bad signature and records a security event
- Walks a Click prepare/complete pair to an active subscription
- Answers Payme JSON-RPC calls and keeps amounts in tiyin
"""

import hashlib

import pytest

from app.core.exceptions import DomainValidationError
from app.crud import crud_subscription
from app.models.security_event import SecurityEvent
from app.models.subscription import SubscriptionPlan
from app.schemas.payment import PaymentCreate, PaymeRequest
from app.services.payment import PaymentService
from app.services.payment import payment_service as ps
from app.services.payment import provider_factory

USER_ID = "user_client"
CLICK_SECRET = "click_secret"


@pytest.fixture(autouse=True)
def payment_secrets(monkeypatch):
    monkeypatch.setattr("app.core.config.settings.CLICK_SECRET_KEY", CLICK_SECRET)
    monkeypatch.setattr("app.core.config.settings.PAYME_SECRET_KEY", "payme_secret")
    monkeypatch.setattr("app.core.config.settings.CLICK_SERVICE_ID", "svc")
    monkeypatch.setattr(provider_factory, "_factory_instance", None)


@pytest.fixture
def plan(db_session):
    plan = SubscriptionPlan(
        name="pro",
        display_name="Pro",
        price_monthly=99_000,
        price_yearly=990_000,
        is_active=True,
    )
    db_session.add(plan)
    db_session.commit()
    return plan


def _create(db, plan, provider="click"):
    return PaymentService(db).create_payment(
        user_id=USER_ID,
        payment_in=PaymentCreate(plan_id=plan.id, billing_period="monthly", provider=provider),
        ip_address="10.0.0.1",
    )


def _click_payload(transaction_id, action, amount="99000", click_trans_id=7001):
    payload = {
        "click_trans_id": click_trans_id,
        "service_id": "svc",
        "merchant_trans_id": transaction_id,
        "amount": amount,
        "action": action,
        "sign_time": "2026-10-19 10:00:00",
    }
    raw = (
        f"{click_trans_id}svc{CLICK_SECRET}{transaction_id}{amount}{action}"
        f"{payload['sign_time']}"
    )
    payload["sign_string"] = hashlib.md5(raw.encode()).hexdigest()
    return payload


class TestCreatePayment:
    def test_opens_pending_subscription(self, db_session, plan):
        created = _create(db_session, plan)

        assert created.amount == 99_000
        assert created.payment_url.startswith("https://my.click.uz/services/pay?")
        assert created.transaction_id in created.payment_url

        transaction = crud_subscription.get_transaction(db_session, created.transaction_id)
        assert transaction.status == "pending"
        assert transaction.subscription.status == "pending"

        event = db_session.query(SecurityEvent).one()
        assert event.event_type == "payment_initiated"
        assert event.ip_address == "10.0.0.1"

    def test_yearly_without_price_is_refused(self, db_session, plan):
        plan.price_yearly = None
        db_session.commit()

        with pytest.raises(DomainValidationError):
            PaymentService(db_session).create_payment(
                user_id=USER_ID,
                payment_in=PaymentCreate(
                    plan_id=plan.id, billing_period="yearly", provider="click"
                ),
            )


class TestClickWebhook:
    def test_bad_signature_is_rejected_and_audited(self, db_session, plan):
        created = _create(db_session, plan)
        payload = _click_payload(created.transaction_id, 1)
        payload["sign_string"] = "0" * 32

        status, body = PaymentService(db_session).handle_click_webhook(payload, "1.2.3.4")

        assert status == 401
        assert body["error"] == ps.CLICK_SIGN_FAILED
        critical = (
            db_session.query(SecurityEvent)
            .filter(SecurityEvent.event_type == "webhook_verification_failed")
            .one()
        )
        assert critical.severity == "critical"
        transaction = crud_subscription.get_transaction(db_session, created.transaction_id)
        assert transaction.status == "pending"

    def test_prepare_then_complete_activates_subscription(self, db_session, plan):
        created = _create(db_session, plan)
        service = PaymentService(db_session)

        status, body = service.handle_click_webhook(_click_payload(created.transaction_id, 0))
        assert (status, body["error"]) == (200, ps.CLICK_OK)
        assert body["merchant_prepare_id"] == created.transaction_id
        assert body["click_trans_id"] == "7001"

        status, body = service.handle_click_webhook(_click_payload(created.transaction_id, 1))
        assert body["error"] == ps.CLICK_OK
        assert body["merchant_confirm_id"] == created.transaction_id

        transaction = crud_subscription.get_transaction(db_session, created.transaction_id)
        assert transaction.status == "completed"
        assert transaction.provider_transaction_id == "7001"
        assert crud_subscription.get_current_for_user(db_session, USER_ID).id == (
            created.subscription_id
        )

    def test_second_complete_reports_already_paid(self, db_session, plan):
        created = _create(db_session, plan)
        service = PaymentService(db_session)
        service.handle_click_webhook(_click_payload(created.transaction_id, 1))

        _, body = service.handle_click_webhook(_click_payload(created.transaction_id, 1))
        assert body["error"] == ps.CLICK_ALREADY_PAID

    def test_amount_mismatch(self, db_session, plan):
        created = _create(db_session, plan)
        _, body = PaymentService(db_session).handle_click_webhook(
            _click_payload(created.transaction_id, 1, amount="1000")
        )
        assert body["error"] == ps.CLICK_BAD_AMOUNT

    def test_unknown_transaction(self, db_session, plan):
        _, body = PaymentService(db_session).handle_click_webhook(
            _click_payload("ptx_missing", 0)
        )
        assert body["error"] == ps.CLICK_TX_NOT_FOUND

    def test_non_numeric_action(self, db_session, plan):
        created = _create(db_session, plan)
        status, body = PaymentService(db_session).handle_click_webhook(
            _click_payload(created.transaction_id, "prepare")
        )
        assert (status, body["error"]) == (400, ps.CLICK_BAD_REQUEST)


class TestPaymeRpc:
    def _rpc(self, method, params, request_id=42):
        return PaymeRequest(id=request_id, method=method, params=params)

    def test_full_cycle(self, db_session, plan):
        created = _create(db_session, plan, provider="payme")
        service = PaymentService(db_session)
        account = {"subscription_id": created.subscription_id}

        reply = service.handle_payme_request(
            self._rpc("CheckPerformTransaction", {"amount": 9_900_000, "account": account})
        )
        assert reply == {"result": {"allow": True}, "id": 42}

        reply = service.handle_payme_request(
            self._rpc(
                "CreateTransaction",
                {"id": "pm_1", "amount": 9_900_000, "account": account},
            )
        )
        assert reply["result"]["transaction"] == created.transaction_id
        assert reply["result"]["state"] == 1

        reply = service.handle_payme_request(self._rpc("PerformTransaction", {"id": "pm_1"}))
        assert reply["result"]["state"] == 2

        reply = service.handle_payme_request(self._rpc("CheckTransaction", {"id": "pm_1"}))
        assert reply["result"]["state"] == 2
        assert reply["result"]["cancel_time"] == 0
        assert crud_subscription.get_current_for_user(db_session, USER_ID) is not None

    def test_amount_in_sum_instead_of_tiyin_is_refused(self, db_session, plan):
        created = _create(db_session, plan, provider="payme")
        reply = PaymentService(db_session).handle_payme_request(
            self._rpc(
                "CheckPerformTransaction",
                {"amount": 99_000, "account": {"subscription_id": created.subscription_id}},
            )
        )
        assert reply["error"]["code"] == ps.PAYME_INVALID_AMOUNT

    def test_unknown_account(self, db_session, plan):
        reply = PaymentService(db_session).handle_payme_request(
            self._rpc("CheckPerformTransaction", {"account": {"subscription_id": "nope"}})
        )
        assert reply["error"]["code"] == ps.PAYME_ACCOUNT_NOT_FOUND

    def test_cancel_marks_refunded(self, db_session, plan):
        created = _create(db_session, plan, provider="payme")
        service = PaymentService(db_session)
        service.handle_payme_request(
            self._rpc(
                "CreateTransaction",
                {"id": "pm_2", "account": {"subscription_id": created.subscription_id}},
            )
        )

        reply = service.handle_payme_request(self._rpc("CancelTransaction", {"id": "pm_2"}))

        assert reply["result"]["state"] == -1
        transaction = crud_subscription.get_transaction(db_session, created.transaction_id)
        assert transaction.status == "refunded"
        assert transaction.subscription.status == "cancelled"

    def test_unknown_method(self, db_session):
        reply = PaymentService(db_session).handle_payme_request(
            self._rpc("GetStatement", {}, request_id="abc")
        )
        assert reply == {
            "error": {"code": ps.PAYME_METHOD_NOT_FOUND, "message": "Method not found"},
            "id": "abc",
        }

    def test_perform_unknown_transaction(self, db_session):
        reply = PaymentService(db_session).handle_payme_request(
            self._rpc("PerformTransaction", {"id": "pm_missing"})
        )
        assert reply["error"]["code"] == ps.PAYME_TX_NOT_FOUND
