# app/services/payment/provider_interface.py
from abc import ABC, abstractmethod
from typing import Optional, Dict, Any
from dataclasses import dataclass
from enum import Enum


class TransactionState(int, Enum):
    """Payme transaction states, as reported by CheckTransaction."""
    PENDING = 1
    COMPLETED = 2
    REFUNDED = -1
    FAILED = -2


TRANSACTION_STATES: Dict[str, TransactionState] = {
    "pending": TransactionState.PENDING,
    "completed": TransactionState.COMPLETED,
    "refunded": TransactionState.REFUNDED,
    "failed": TransactionState.FAILED,
}


@dataclass
class CheckoutParams:
    """Parameters for building a hosted checkout URL."""
    transaction_id: str
    subscription_id: str
    amount: int  # so'm
    return_url: str
    metadata: Optional[Dict[str, Any]] = None


class PaymentProviderInterface(ABC):
    """
    A local payment gateway that takes the user to its own hosted
    checkout page and reports back through a webhook.
    """

    @property
    @abstractmethod
    def code(self) -> str:
        """Provider code stored on transactions (e.g. 'click')."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human readable provider name."""

    @abstractmethod
    def build_checkout_url(self, params: CheckoutParams) -> str:
        """Return the URL the user is redirected to for payment."""
