"""
OpenAI-compatible API adapter.

Speaks the ``/chat/completions`` protocol used by OpenAI and the many
services that mirror it.
"""

import logging
from typing import Any, Dict, List, Optional, Set

from ..core.config import EffectiveConfig
from ..core.interface import AbstractProvider, ProviderCapability
from ..models.request import Message, ProviderType, to_openai_payload

logger = logging.getLogger(__name__)


class OpenAIAdapter(AbstractProvider):
    """
    OpenAI-compatible chat completions adapter.

    Non-streaming text is read from ``choices[0].message.content``; stream
    deltas from ``choices[0].delta.content``.
    """

    @property
    def provider_type(self) -> str:
        return ProviderType.OPENAI.value

    @property
    def display_name(self) -> str:
        return "OpenAI"

    @property
    def endpoint_path(self) -> str:
        return "/chat/completions"

    @property
    def capabilities(self) -> Set[ProviderCapability]:
        return {
            ProviderCapability.CHAT_COMPLETION,
            ProviderCapability.STREAMING,
            ProviderCapability.VISION,
            ProviderCapability.IMAGE_URLS,
        }

    def build_headers(self, config: EffectiveConfig) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {config.api_key}",
        }

    def build_payload(
        self,
        messages: List[Message],
        config: EffectiveConfig,
        stream: bool,
    ) -> Dict[str, Any]:
        return to_openai_payload(messages, config, stream)

    def extract_content(self, data: Any) -> str:
        choice = _first_choice(data)
        message = choice.get("message")
        if not isinstance(message, dict):
            return ""
        content = message.get("content")
        return content if isinstance(content, str) else ""

    def extract_delta(self, event: Dict[str, Any]) -> Optional[str]:
        delta = _first_choice(event).get("delta")
        if not isinstance(delta, dict):
            return None
        content = delta.get("content")
        return content if isinstance(content, str) and content else None


def _first_choice(data: Any) -> Dict[str, Any]:
    """Return ``choices[0]`` or an empty dict when it is missing."""
    if not isinstance(data, dict):
        return {}
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return {}
    return choices[0]
