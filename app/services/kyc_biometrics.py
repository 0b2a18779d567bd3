# app/services/kyc_biometrics.py
"""
KYC biometric checks (face match, liveness) with Claude vision.

The model must answer through a forced tool call whose input schema is the
pydantic result model, and the tool input is validated again on our side.
Anything else (transport error, timeout, missing tool call, invalid fields)
yields a failing result, which routes the document to manual review.
"""

import asyncio
import logging
from typing import List, Optional, Tuple, Type, TypeVar

from anthropic import AsyncAnthropic
from pydantic import BaseModel, ValidationError

from app.core.config import settings
from app.schemas.kyc import FaceMatchResult, LivenessResult

logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT", bound=BaseModel)

# Auto-verification thresholds
FACE_MATCH_MIN_CONFIDENCE = 0.75
DATA_MATCH_MIN_SCORE = 0.85
FRAUD_SCORE_MAX = 20

FACE_MATCH_PROMPT = """You are an expert face recognition system for KYC verification.
Compare a passport photo with a selfie and determine if they show the same person.
Analyze facial structure, key facial features, unique identifiers (moles, scars,
facial hair), and age and gender consistency.
Be strict but fair: minor differences due to lighting, angle or ageing are
acceptable, major differences in facial structure are not.
Report your findings with the report_face_match tool."""

LIVENESS_PROMPT = """You are a liveness detection system for KYC verification.
The images are consecutive frames from a video selfie. Look for signs of a real,
live person: blinking, head movement, changing expression, 3D depth, consistent
lighting. Flag photo-of-photo, screen replay, printed mask and deepfake attempts.
If the frames do not let you decide, report passed=false.
Report your findings with the report_liveness tool."""


def failed_face_match(reason: str) -> FaceMatchResult:
    return FaceMatchResult(
        match=False,
        confidence=0.0,
        passport_face_detected=False,
        selfie_face_detected=False,
        similarity_score=0.0,
        issues=[reason],
    )


def failed_liveness(reason: str) -> LivenessResult:
    return LivenessResult(
        passed=False,
        score=0.0,
        blink=False,
        head_movement=False,
        expression=False,
        fraud_indicators=[reason],
    )


def evaluate(
    document, face_match: FaceMatchResult, liveness: Optional[LivenessResult]
) -> Tuple[str, bool]:
    """
    Decide (status, auto_verified). Auto-verification needs every signal;
    everything short of that goes to a human.
    """
    auto_verified = bool(
        face_match.match
        and face_match.confidence >= FACE_MATCH_MIN_CONFIDENCE
        and liveness is not None
        and liveness.passed
        and document.data_match_score is not None
        and document.data_match_score >= DATA_MATCH_MIN_SCORE
        and document.fraud_score is not None
        and document.fraud_score < FRAUD_SCORE_MAX
        and document.risk_level == "low"
    )
    return ("verified" if auto_verified else "manual_review"), auto_verified


def _image(url: str) -> dict:
    return {"type": "image", "source": {"type": "url", "url": url}}


class KycBiometricsClient:
    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None):
        self.api_key = api_key or settings.ANTHROPIC_API_KEY
        self.model = model or settings.KYC_VISION_MODEL
        self.timeout = 30.0
        if not self.api_key:
            logger.warning("ANTHROPIC_API_KEY not configured. Biometric checks will fail closed.")
            self.client = None
        else:
            self.client = AsyncAnthropic(api_key=self.api_key)

    async def _structured_call(
        self, *, system: str, content: List[dict], tool_name: str, result_model: Type[ResultT]
    ) -> ResultT:
        """Raises on any deviation from the tool contract."""
        if self.client is None:
            raise RuntimeError("Vision model not configured")

        response = await asyncio.wait_for(
            self.client.messages.create(
                model=self.model,
                max_tokens=500,
                temperature=0.1,
                system=system,
                tools=[
                    {
                        "name": tool_name,
                        "description": f"Report the {result_model.__name__}",
                        "input_schema": result_model.model_json_schema(),
                    }
                ],
                tool_choice={"type": "tool", "name": tool_name},
                messages=[{"role": "user", "content": content}],
            ),
            timeout=self.timeout,
        )
        for block in response.content:
            if block.type == "tool_use" and block.name == tool_name:
                return result_model.model_validate(block.input)
        raise ValueError(f"Model did not call {tool_name}")

    async def face_match(self, passport_url: str, selfie_url: str) -> FaceMatchResult:
        try:
            result = await self._structured_call(
                system=FACE_MATCH_PROMPT,
                content=[
                    {
                        "type": "text",
                        "text": "The first image is from an official document (passport/ID), "
                        "the second is a selfie. Do they show the same person?",
                    },
                    _image(passport_url),
                    _image(selfie_url),
                ],
                tool_name="report_face_match",
                result_model=FaceMatchResult,
            )
        except (ValidationError, ValueError) as e:
            logger.warning(f"Face match reply rejected: {e}")
            return failed_face_match("Face match reply did not match the expected schema")
        except Exception as e:
            logger.error(f"Face match service error: {e}", exc_info=True)
            return failed_face_match("Face matching service error")

        logger.info(f"Face match: match={result.match} confidence={result.confidence}")
        return result

    async def liveness(self, frame_urls: List[str]) -> LivenessResult:
        if not frame_urls:
            return failed_liveness("No video frames provided")
        try:
            result = await self._structured_call(
                system=LIVENESS_PROMPT,
                content=[{"type": "text", "text": "Frames in order:"}]
                + [_image(url) for url in frame_urls],
                tool_name="report_liveness",
                result_model=LivenessResult,
            )
        except (ValidationError, ValueError) as e:
            logger.warning(f"Liveness reply rejected: {e}")
            return failed_liveness("Liveness reply did not match the expected schema")
        except Exception as e:
            logger.error(f"Liveness service error: {e}", exc_info=True)
            return failed_liveness("Liveness service error")

        logger.info(f"Liveness: passed={result.passed} score={result.score}")
        return result


def get_kyc_biometrics_client() -> KycBiometricsClient:
    return KycBiometricsClient()
