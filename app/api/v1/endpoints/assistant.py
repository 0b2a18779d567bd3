# app/api/v1/endpoints/assistant.py
from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from app.api import deps
from app.db.session import get_db
from app.core.limiter import limiter, ASSISTANT_RATE
from app.schemas.assistant import ChatRequest
from app.schemas.token import TokenPayload
from app.services.ai_assistant import (
    AssistantClient,
    build_carriers_context,
    build_system_prompt,
    get_assistant_client,
)

router = APIRouter(prefix="/assistant", tags=["Assistant"])


@router.post("/chat")
@limiter.limit(ASSISTANT_RATE)
async def chat(
    request: Request,
    chat_in: ChatRequest,
    db: Session = Depends(get_db),
    current_user: TokenPayload = Depends(deps.get_current_user),
    assistant: AssistantClient = Depends(get_assistant_client),
):
    """
    Streams the reply as server-sent events. Upstream rate limits and
    outages are returned as regular error responses before streaming starts.
    """
    system_prompt = build_system_prompt(build_carriers_context(db))
    stream = await assistant.open_stream(
        system_prompt, [m.model_dump() for m in chat_in.messages]
    )
    return StreamingResponse(
        stream,
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
