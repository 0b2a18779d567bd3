# app/services/payment/__init__.py
from .provider_interface import PaymentProviderInterface, CheckoutParams
from .provider_factory import PaymentProviderFactory, get_payment_provider
from .payment_service import PaymentService

__all__ = [
    "PaymentProviderInterface",
    "CheckoutParams",
    "PaymentProviderFactory",
    "get_payment_provider",
    "PaymentService",
]
