# app/services/payment/provider_factory.py
import logging
from typing import Dict, Optional, List

from app.core.config import settings
from .provider_interface import PaymentProviderInterface
from .providers.click_provider import ClickProvider, ClickConfig
from .providers.payme_provider import PaymeProvider, PaymeConfig

logger = logging.getLogger(__name__)


class PaymentProviderFactory:
    """
    Holds one instance per configured payment provider (Click, Payme).
    """

    def __init__(self):
        self._providers: Dict[str, PaymentProviderInterface] = {}
        self._initialize_providers()

    def _initialize_providers(self) -> None:
        """Initialize all configured payment providers."""
        self._providers["click"] = ClickProvider(
            ClickConfig(
                merchant_id=settings.CLICK_MERCHANT_ID,
                service_id=settings.CLICK_SERVICE_ID,
                secret_key=settings.CLICK_SECRET_KEY,
            )
        )
        self._providers["payme"] = PaymeProvider(
            PaymeConfig(
                merchant_id=settings.PAYME_MERCHANT_ID,
                secret_key=settings.PAYME_SECRET_KEY,
            )
        )

        for code in ("click", "payme"):
            secret = settings.CLICK_SECRET_KEY if code == "click" else settings.PAYME_SECRET_KEY
            if not secret:
                logger.warning(
                    f"{code} secret key not configured: checkout URLs work, webhooks will be rejected"
                )

    def get_provider(self, code: str) -> PaymentProviderInterface:
        """
        Get a payment provider by its code.

        Raises:
            ValueError: If provider is not available
        """
        provider = self._providers.get(code)
        if not provider:
            raise ValueError(f"Payment provider '{code}' is not available")
        return provider

    def list_codes(self) -> List[str]:
        return list(self._providers)


# Global factory instance (singleton pattern)
_factory_instance: Optional[PaymentProviderFactory] = None


def get_payment_provider_factory() -> PaymentProviderFactory:
    """Get the global payment provider factory instance."""
    global _factory_instance
    if _factory_instance is None:
        _factory_instance = PaymentProviderFactory()
    return _factory_instance


def get_payment_provider(code: str) -> PaymentProviderInterface:
    return get_payment_provider_factory().get_provider(code)
