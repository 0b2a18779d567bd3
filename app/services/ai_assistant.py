# app/services/ai_assistant.py
"""
AI logistics assistant backed by Claude.

The system prompt embeds live carrier data (rating, delivered deals,
verification) so recommendations reflect the marketplace. Replies are
streamed to the browser as server-sent events.
"""

import asyncio
import json
import logging
from typing import AsyncIterator, List, Dict, Optional

import anthropic
from anthropic import AsyncAnthropic
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    ExternalServiceError,
    ServiceUnavailableError,
    UpstreamRateLimitError,
)
from app.models.deal import Deal
from app.models.profile import Profile
from app.models.rating import Rating

logger = logging.getLogger(__name__)

MAX_CARRIERS_IN_CONTEXT = 50

SYSTEM_PROMPT = """You are the AI assistant of the AsLogUz freight marketplace.
You help clients:
1. Choose a suitable carrier for their requirements
2. Estimate the delivery cost
3. Answer questions about the delivery process
4. Recommend the best carriers by rating

Pricing rules:
- Base rate: 50,000 so'm
- Per kilometre: 2,500 so'm
- Per kilogram: 300 so'm
- Urgent delivery: +50%
- Volume discount (over 1000 kg): -15%

Carrier types:
- Private drivers (driver): flexible schedule, personal approach, small loads
- Transport companies (company): reliability, insurance, large loads

When estimating a price always ask for distance (km), cargo weight (kg),
urgency and cargo type.
{carriers_context}
Answer briefly, kindly and to the point. Reply in the user's language.
When asked for carrier recommendations, use the real carrier data above."""


def build_carriers_context(db: Session) -> str:
    """One line per carrier: name, type, average rating, delivered deals, verified."""
    carriers = (
        db.query(Profile)
        .filter(Profile.carrier_type.isnot(None))
        .limit(MAX_CARRIERS_IN_CONTEXT)
        .all()
    )
    if not carriers:
        return ""

    carrier_ids = [c.user_id for c in carriers]
    rating_rows = (
        db.query(Rating.rated_id, func.avg(Rating.score), func.count(Rating.id))
        .filter(Rating.rated_id.in_(carrier_ids))
        .group_by(Rating.rated_id)
        .all()
    )
    ratings = {rated_id: (avg, count) for rated_id, avg, count in rating_rows}
    delivered = dict(
        db.query(Deal.carrier_id, func.count(Deal.id))
        .filter(Deal.carrier_id.in_(carrier_ids), Deal.status == "delivered")
        .group_by(Deal.carrier_id)
        .all()
    )

    lines = []
    for c in carriers:
        avg, _count = ratings.get(c.user_id, (None, 0))
        rating = f"{float(avg):.1f}" if avg is not None else "no ratings"
        kind = "Company" if c.carrier_type == "company" else "Driver"
        name = c.company_name or c.full_name or "Unnamed"
        verified = " (verified)" if c.is_verified else ""
        lines.append(
            f"- {name} ({kind}): rating {rating}, "
            f"{delivered.get(c.user_id, 0)} completed deliveries{verified}"
        )
    return "\nCARRIERS ON THE PLATFORM NOW:\n" + "\n".join(lines) + "\n"


def build_system_prompt(carriers_context: str) -> str:
    return SYSTEM_PROMPT.format(carriers_context=carriers_context)


def _sse(payload) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


class AssistantClient:
    """Streams Claude replies as SSE frames."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self.api_key = api_key or settings.ANTHROPIC_API_KEY
        self.model = model or settings.ASSISTANT_MODEL
        self.connect_timeout = 15.0
        if not self.api_key:
            logger.warning("ANTHROPIC_API_KEY not configured. AI assistant will be disabled.")
            self.client = None
        else:
            self.client = AsyncAnthropic(api_key=self.api_key)

    def is_available(self) -> bool:
        return self.client is not None

    async def open_stream(
        self, system_prompt: str, messages: List[Dict[str, str]], max_tokens: int = 1024
    ) -> AsyncIterator[str]:
        """
        Opens the upstream stream before returning, so rate limits and
        outages surface as errors instead of a broken event stream.
        """
        if not self.is_available():
            raise ServiceUnavailableError("AI assistant is not configured", service="assistant")

        manager = self.client.messages.stream(
            model=self.model,
            max_tokens=max_tokens,
            system=system_prompt,
            messages=messages,
        )
        try:
            stream = await asyncio.wait_for(manager.__aenter__(), timeout=self.connect_timeout)
        except asyncio.TimeoutError:
            raise ServiceUnavailableError("AI assistant timed out", service="assistant")
        except anthropic.RateLimitError:
            raise UpstreamRateLimitError(
                "Request limit exceeded, try again later", service="assistant", upstream_status=429
            )
        except anthropic.APIStatusError as e:
            logger.error(f"AI gateway error: {e.status_code} {e.message}")
            raise ExternalServiceError(
                "AI service error", service="assistant", upstream_status=e.status_code
            )
        except anthropic.APIConnectionError as e:
            logger.error(f"AI gateway unreachable: {e}")
            raise ServiceUnavailableError("AI service unreachable", service="assistant")

        return self._relay(manager, stream)

    async def _relay(self, manager, stream) -> AsyncIterator[str]:
        try:
            async for text in stream.text_stream:
                yield _sse({"delta": text})
            yield "data: [DONE]\n\n"
        except anthropic.APIError as e:
            logger.error(f"AI stream interrupted: {e}", exc_info=True)
            yield _sse({"error": "AI service error"})
        finally:
            await manager.__aexit__(None, None, None)


def get_assistant_client() -> AssistantClient:
    return AssistantClient()
