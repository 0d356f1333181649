import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from app.adapters.llm.factory import create_llm_client
from app.adapters.rate_limit.base import RateLimitResult, format_epoch_ms
from app.adapters.rate_limit.limiter import epoch_ms
from app.core.config import settings
from app.core.rate_limit import build_rate_limit_headers, rate_limited
from app.schemas.chat import ChatRequest, ChatResponse
from app.services.chat_service import ChatService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Chat"])


def build_chat_service() -> ChatService:
    """Create the chat service from settings."""
    return ChatService(
        create_llm_client(),
        max_message_chars=settings.app.max_message_chars,
        max_tokens=settings.llm.max_tokens,
        temperature=settings.llm.temperature,
    )


def get_chat_service(request: Request) -> ChatService:
    service = getattr(request.app.state, "chat_service", None)
    if service is None:
        service = build_chat_service()
        request.app.state.chat_service = service
    return service


def _rate_limit_headers(rate_limit: RateLimitResult | None) -> dict[str, str]:
    if rate_limit is None or not settings.app.rate_limit_include_headers:
        return {}
    return build_rate_limit_headers(rate_limit)


@router.post(
    "/chat",
    response_model=ChatResponse,
    responses={
        400: {"description": "Message is missing"},
        405: {"description": "Unsupported requestType"},
        429: {"description": "Rate limit exceeded"},
    },
)
async def security_chat(
    payload: ChatRequest,
    response: Response,
    rate_limit: Annotated[RateLimitResult | None, Depends(rate_limited("AI_CHAT"))],
    chat_service: Annotated[ChatService, Depends(get_chat_service)],
) -> ChatResponse | JSONResponse:
    """Answer a security question from the platform assistant.

    The caller's ``AI_CHAT`` quota is consumed before anything else runs, so
    a throttled request never reaches the LLM provider.

    Args:
        payload: Chat request body.
        response: Outgoing response, used to attach rate limit headers.
        rate_limit: Result of the caller's quota check (None when disabled).
        chat_service: Service producing the reply.

    Returns:
        ChatResponse with the reply and its timestamp.
    """
    headers = _rate_limit_headers(rate_limit)

    if payload.request_type != "chat":
        return JSONResponse(
            status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
            content={"error": "Method not allowed"},
            headers=headers,
        )

    if not payload.message or not payload.message.strip():
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Message is required"},
            headers=headers,
        )

    reply = await chat_service.reply(payload.message)

    response.headers.update(headers)
    return ChatResponse(response=reply, timestamp=format_epoch_ms(epoch_ms()))
