from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ChatRequest(BaseModel):
    """Body of a security chat request."""

    model_config = ConfigDict(populate_by_name=True)

    message: str | None = Field(
        None,
        description="User message for the assistant",
    )
    request_type: str = Field(
        "chat",
        alias="requestType",
        description="Request kind; only 'chat' is supported",
    )


class ChatResponse(BaseModel):
    """Assistant reply."""

    response: str = Field(..., description="Assistant reply text")
    timestamp: str = Field(..., description="ISO-8601 UTC time the reply was produced")
