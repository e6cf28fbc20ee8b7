"""
REST API routes for the chat gateway.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from ..core.dispatcher import ChatDispatcher
from ..core.errors import ClientError
from ..models.response import ChatResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


def get_dispatcher(request: Request) -> ChatDispatcher:
    """Return the dispatcher installed by the app factory."""
    return request.app.state.dispatcher


@router.post("/chat", response_model=ChatResponse)
async def chat(
    request: Request,
    x_access_password: Optional[str] = Header(default=None),
    dispatcher: ChatDispatcher = Depends(get_dispatcher),
):
    """Relay a chat request to the configured upstream provider."""
    try:
        body = await request.json()
    except ValueError:
        raise ClientError("Invalid request: body must be JSON")

    chat_request = dispatcher.parse_request(body)

    if not chat_request.stream:
        return await dispatcher.complete(chat_request, x_access_password)

    stream = await dispatcher.open_stream(chat_request, x_access_password)
    return StreamingResponse(
        stream,
        media_type="text/event-stream",
        headers=SSE_HEADERS,
        background=BackgroundTask(stream.aclose),
    )


@router.get("/health")
async def health_check(dispatcher: ChatDispatcher = Depends(get_dispatcher)):
    """Health check endpoint."""
    return {
        "status": "healthy",
        "providers": dispatcher.registry.list_providers(),
    }
