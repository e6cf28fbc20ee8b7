"""
Unified response models for the chat gateway.
"""

import json

from pydantic import BaseModel

DONE_SENTINEL = "[DONE]"
DONE_EVENT = f"data: {DONE_SENTINEL}\n\n"


class ChatResponse(BaseModel):
    """Aggregated, non-streaming chat response."""
    content: str


class ErrorResponse(BaseModel):
    """Error body returned for every failed request."""
    error: str


class GatewayEvent(BaseModel):
    """One incremental piece of a streamed response."""
    content: str

    def to_sse(self) -> str:
        """Serialize as a single SSE ``data:`` frame."""
        payload = json.dumps({"content": self.content}, ensure_ascii=False, separators=(",", ":"))
        return f"data: {payload}\n\n"
