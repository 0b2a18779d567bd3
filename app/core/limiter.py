# app/core/limiter.py
"""
Rate limiter shared by the proxy endpoints (AI chat, maps, OTP) and the
partner API. Kept in its own module so routers and app.main can both import it.
"""

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

# Keyed by client IP
limiter = Limiter(key_func=get_remote_address)

ASSISTANT_RATE = "20/minute"
MAPS_RATE = "60/minute"
OTP_RATE = "5/minute"
PARTNER_RATE = "100/minute"


def partner_api_key(request: Request) -> str:
    """Partners are limited per API key rather than per IP."""
    return request.headers.get("x-api-key") or get_remote_address(request)
