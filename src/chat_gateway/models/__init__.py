"""
Chat gateway data models.
"""

from .request import (
    ChatRequest,
    ContentPart,
    ImageUrl,
    Message,
    ProviderCredential,
    ProviderType,
    parse_data_url,
    to_anthropic_parts,
    to_anthropic_payload,
    to_openai_messages,
    to_openai_payload,
)
from .response import ChatResponse, ErrorResponse, GatewayEvent, DONE_EVENT, DONE_SENTINEL

__all__ = [
    "ChatRequest",
    "ContentPart",
    "ImageUrl",
    "Message",
    "ProviderCredential",
    "ProviderType",
    "parse_data_url",
    "to_anthropic_parts",
    "to_anthropic_payload",
    "to_openai_messages",
    "to_openai_payload",
    "ChatResponse",
    "ErrorResponse",
    "GatewayEvent",
    "DONE_EVENT",
    "DONE_SENTINEL",
]
