# app/services/payment/providers/__init__.py
from .click_provider import ClickProvider, ClickConfig
from .payme_provider import PaymeProvider, PaymeConfig

__all__ = ["ClickProvider", "ClickConfig", "PaymeProvider", "PaymeConfig"]
