"""
Anthropic-compatible API adapter.

Speaks the ``/messages`` protocol. The system prompt travels as a top-level
field and images must be sent inline as base64.
"""

import logging
from typing import Any, Dict, List, Optional, Set

from ..core.config import EffectiveConfig
from ..core.interface import AbstractProvider, ProviderCapability
from ..models.request import Message, ProviderType, to_anthropic_payload

logger = logging.getLogger(__name__)


class AnthropicAdapter(AbstractProvider):
    """
    Anthropic-compatible messages adapter.

    Non-streaming text is read from ``content[0].text``. While streaming,
    only ``content_block_delta`` events carry text; every other event type
    is ignored apart from ``message_stop``, which ends the stream.
    """

    ANTHROPIC_VERSION = "2023-06-01"

    @property
    def provider_type(self) -> str:
        return ProviderType.ANTHROPIC.value

    @property
    def display_name(self) -> str:
        return "Anthropic"

    @property
    def endpoint_path(self) -> str:
        return "/messages"

    @property
    def capabilities(self) -> Set[ProviderCapability]:
        return {
            ProviderCapability.CHAT_COMPLETION,
            ProviderCapability.STREAMING,
            ProviderCapability.VISION,
        }

    def build_headers(self, config: EffectiveConfig) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": config.api_key,
            "anthropic-version": self.ANTHROPIC_VERSION,
        }

    def build_payload(
        self,
        messages: List[Message],
        config: EffectiveConfig,
        stream: bool,
    ) -> Dict[str, Any]:
        return to_anthropic_payload(messages, config, stream)

    def extract_content(self, data: Any) -> str:
        if not isinstance(data, dict):
            return ""
        blocks = data.get("content")
        if not isinstance(blocks, list) or not blocks or not isinstance(blocks[0], dict):
            return ""
        text = blocks[0].get("text")
        return text if isinstance(text, str) else ""

    def extract_delta(self, event: Dict[str, Any]) -> Optional[str]:
        event_type = event.get("type")

        if event_type == "content_block_delta":
            delta = event.get("delta")
            if isinstance(delta, dict):
                text = delta.get("text")
                return text if isinstance(text, str) and text else None

        elif event_type == "error":
            logger.warning(f"Anthropic stream reported an error event: {event.get('error')}")

        return None

    def is_terminal_event(self, event: Dict[str, Any]) -> bool:
        return event.get("type") == "message_stop"
