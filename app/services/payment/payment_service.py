# app/services/payment/payment_service.py
import logging
from datetime import datetime, timezone
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from app.core.config import settings
from app.crud import crud_security_event, crud_subscription
from app.models.subscription import PaymentTransaction
from app.schemas.payment import PaymentCreate, PaymentCreated, PaymeRequest
from .provider_interface import CheckoutParams, TRANSACTION_STATES
from .provider_factory import get_payment_provider

logger = logging.getLogger(__name__)

# Click callback error codes
CLICK_OK = 0
CLICK_SIGN_FAILED = -1
CLICK_BAD_AMOUNT = -2
CLICK_ALREADY_PAID = -4
CLICK_TX_NOT_FOUND = -5
CLICK_BAD_REQUEST = -8
CLICK_TX_CANCELLED = -9

CLICK_ACTION_PREPARE = 0
CLICK_ACTION_COMPLETE = 1

# Payme JSON-RPC error codes
PAYME_PARSE_ERROR = -32700
PAYME_INVALID_REQUEST = -32600
PAYME_METHOD_NOT_FOUND = -32601
PAYME_UNAUTHORIZED = -32504
PAYME_INVALID_AMOUNT = -31001
PAYME_TX_NOT_FOUND = -31003
PAYME_ACCOUNT_NOT_FOUND = -31050


def _ms(value: Optional[datetime]) -> int:
    if value is None:
        return 0
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


def _now_ms() -> int:
    return _ms(datetime.now(timezone.utc))


def payme_error(request_id, code: int, message: str) -> dict:
    return {"error": {"code": code, "message": message}, "id": request_id}


def payme_result(request_id, result: dict) -> dict:
    return {"result": result, "id": request_id}


class PaymentService:
    """
    Subscription payments through Click and Payme.

    This service:
    - Opens a pending subscription + transaction and returns the checkout URL
    - Verifies and applies Click callbacks
    - Answers Payme merchant JSON-RPC calls
    """

    def __init__(self, db: Session):
        self.db = db

    def create_payment(
        self,
        *,
        user_id: str,
        payment_in: PaymentCreate,
        ip_address: Optional[str] = None,
    ) -> PaymentCreated:
        plan = crud_subscription.get_active_plan(self.db, payment_in.plan_id)
        provider = get_payment_provider(payment_in.provider.value)

        transaction = crud_subscription.create_pending(
            self.db,
            user_id=user_id,
            plan=plan,
            billing_period=payment_in.billing_period.value,
            provider=provider.code,
        )

        return_url = payment_in.return_url or f"{settings.APP_URL}/subscription/success"
        payment_url = provider.build_checkout_url(
            CheckoutParams(
                transaction_id=transaction.id,
                subscription_id=transaction.subscription_id,
                amount=transaction.amount,
                return_url=return_url,
            )
        )

        crud_security_event.log_event(
            self.db,
            event_type="payment_initiated",
            user_id=user_id,
            description=f"{provider.name} payment for plan {plan.name}",
            ip_address=ip_address,
            metadata={
                "transaction_id": transaction.id,
                "amount": transaction.amount,
                "provider": provider.code,
            },
        )
        logger.info(
            f"Payment {transaction.id} initiated by {user_id}: {transaction.amount} UZS via {provider.code}"
        )

        return PaymentCreated(
            payment_url=payment_url,
            subscription_id=transaction.subscription_id,
            transaction_id=transaction.id,
            amount=transaction.amount,
            provider=payment_in.provider,
        )

    def _complete(self, transaction: PaymentTransaction, source: str) -> None:
        crud_subscription.complete(self.db, transaction)
        crud_security_event.log_event(
            self.db,
            event_type="payment_completed",
            user_id=transaction.user_id,
            description=f"Payment completed via {source}",
            metadata={"transaction_id": transaction.id, "amount": transaction.amount},
        )

    # --- Click ---

    def handle_click_webhook(
        self, payload: dict, ip_address: Optional[str] = None
    ) -> Tuple[int, dict]:
        """
        Apply a Click prepare/complete callback.

        Returns (http_status, body); the body always carries Click's
        error/error_note pair.
        """
        provider = get_payment_provider("click")
        click_trans_id = payload.get("click_trans_id")
        merchant_trans_id = payload.get("merchant_trans_id")
        if click_trans_id is not None:
            click_trans_id = str(click_trans_id)
        if merchant_trans_id is not None:
            merchant_trans_id = str(merchant_trans_id)

        def reply(error: int, note: str, **extra) -> dict:
            return {
                "click_trans_id": click_trans_id,
                "merchant_trans_id": merchant_trans_id,
                "error": error,
                "error_note": note,
                **extra,
            }

        if not provider.verify_signature(payload):
            crud_security_event.log_event(
                self.db,
                event_type="webhook_verification_failed",
                severity="critical",
                description="Click signature verification failed",
                ip_address=ip_address,
                metadata={"provider": "click", "merchant_trans_id": merchant_trans_id},
            )
            return 401, reply(CLICK_SIGN_FAILED, "SIGN CHECK FAILED")

        try:
            action = int(payload["action"])
            amount = float(payload["amount"])
        except (KeyError, TypeError, ValueError):
            return 400, reply(CLICK_BAD_REQUEST, "Invalid request")

        transaction = crud_subscription.get_transaction(self.db, str(merchant_trans_id))
        if not transaction:
            return 200, reply(CLICK_TX_NOT_FOUND, "Transaction not found")

        if abs(amount - transaction.amount) > 0.01:
            logger.warning(
                f"Click amount mismatch for {transaction.id}: got {amount}, expected {transaction.amount}"
            )
            return 200, reply(CLICK_BAD_AMOUNT, "Incorrect amount")

        if transaction.status == "completed":
            return 200, reply(CLICK_ALREADY_PAID, "Already paid")
        if transaction.status in ("refunded", "failed"):
            return 200, reply(CLICK_TX_CANCELLED, "Transaction cancelled")

        if action == CLICK_ACTION_PREPARE:
            crud_subscription.attach_provider_id(self.db, transaction, str(click_trans_id))
            return 200, reply(CLICK_OK, "Success", merchant_prepare_id=transaction.id)

        if action == CLICK_ACTION_COMPLETE:
            self._complete(transaction, "click")
            return 200, reply(CLICK_OK, "Success", merchant_confirm_id=transaction.id)

        return 200, reply(CLICK_BAD_REQUEST, "Unknown action")

    # --- Payme ---

    def reject_payme_auth(self, request_id, ip_address: Optional[str] = None) -> dict:
        crud_security_event.log_event(
            self.db,
            event_type="webhook_verification_failed",
            severity="critical",
            description="Payme authorization failed",
            ip_address=ip_address,
            metadata={"provider": "payme"},
        )
        return payme_error(request_id, PAYME_UNAUTHORIZED, "Unauthorized")

    def handle_payme_request(self, rpc: PaymeRequest) -> dict:
        handlers = {
            "CheckPerformTransaction": self._payme_check_perform,
            "CreateTransaction": self._payme_create,
            "PerformTransaction": self._payme_perform,
            "CancelTransaction": self._payme_cancel,
            "CheckTransaction": self._payme_check,
        }
        handler = handlers.get(rpc.method)
        if handler is None:
            return payme_error(rpc.id, PAYME_METHOD_NOT_FOUND, "Method not found")
        return handler(rpc)

    def _pending_for_account(self, rpc: PaymeRequest) -> Optional[PaymentTransaction]:
        subscription_id = (rpc.params.get("account") or {}).get("subscription_id")
        if not subscription_id:
            return None
        return crud_subscription.get_pending_for_subscription(self.db, str(subscription_id))

    def _amount_matches(self, rpc: PaymeRequest, transaction: PaymentTransaction) -> bool:
        amount = rpc.params.get("amount")
        # Payme amounts are in tiyin
        return amount is None or int(amount) == transaction.amount * 100

    def _payme_check_perform(self, rpc: PaymeRequest) -> dict:
        transaction = self._pending_for_account(rpc)
        if not transaction:
            return payme_error(rpc.id, PAYME_ACCOUNT_NOT_FOUND, "Subscription not found")
        if not self._amount_matches(rpc, transaction):
            return payme_error(rpc.id, PAYME_INVALID_AMOUNT, "Invalid amount")
        return payme_result(rpc.id, {"allow": True})

    def _payme_create(self, rpc: PaymeRequest) -> dict:
        transaction = self._pending_for_account(rpc)
        if not transaction:
            return payme_error(rpc.id, PAYME_ACCOUNT_NOT_FOUND, "Transaction not found")
        if not self._amount_matches(rpc, transaction):
            return payme_error(rpc.id, PAYME_INVALID_AMOUNT, "Invalid amount")

        crud_subscription.attach_provider_id(self.db, transaction, str(rpc.params.get("id")))
        return payme_result(
            rpc.id,
            {
                "create_time": _ms(transaction.created_at),
                "transaction": transaction.id,
                "state": TRANSACTION_STATES["pending"].value,
            },
        )

    def _by_payme_id(self, rpc: PaymeRequest) -> Optional[PaymentTransaction]:
        payme_id = rpc.params.get("id")
        if not payme_id:
            return None
        return crud_subscription.get_by_provider_transaction_id(self.db, str(payme_id))

    def _payme_perform(self, rpc: PaymeRequest) -> dict:
        transaction = self._by_payme_id(rpc)
        if not transaction:
            return payme_error(rpc.id, PAYME_TX_NOT_FOUND, "Transaction not found")

        if transaction.status != "completed":
            self._complete(transaction, "payme")
        return payme_result(
            rpc.id,
            {
                "transaction": transaction.id,
                "perform_time": _ms(transaction.updated_at) or _now_ms(),
                "state": TRANSACTION_STATES["completed"].value,
            },
        )

    def _payme_cancel(self, rpc: PaymeRequest) -> dict:
        transaction = self._by_payme_id(rpc)
        if not transaction:
            return payme_error(rpc.id, PAYME_TX_NOT_FOUND, "Transaction not found")

        if transaction.status != "refunded":
            crud_subscription.cancel(self.db, transaction, status="refunded")
        return payme_result(
            rpc.id,
            {
                "transaction": transaction.id,
                "cancel_time": _ms(transaction.updated_at) or _now_ms(),
                "state": TRANSACTION_STATES["refunded"].value,
            },
        )

    def _payme_check(self, rpc: PaymeRequest) -> dict:
        transaction = self._by_payme_id(rpc)
        if not transaction:
            return payme_error(rpc.id, PAYME_TX_NOT_FOUND, "Transaction not found")

        state = TRANSACTION_STATES.get(transaction.status, TRANSACTION_STATES["pending"])
        return payme_result(
            rpc.id,
            {
                "create_time": _ms(transaction.created_at),
                "perform_time": _ms(transaction.updated_at) if transaction.status == "completed" else 0,
                "cancel_time": _ms(transaction.updated_at) if transaction.status == "refunded" else 0,
                "transaction": transaction.id,
                "state": state.value,
            },
        )
