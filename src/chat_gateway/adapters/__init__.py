"""
Provider adapters for the supported upstream API families.
"""

from typing import Optional

import httpx

from ..core.registry import ProviderRegistry
from .openai_adapter import OpenAIAdapter
from .anthropic_adapter import AnthropicAdapter

__all__ = [
    "OpenAIAdapter",
    "AnthropicAdapter",
    "create_registry",
]


def create_registry(transport: Optional[httpx.AsyncBaseTransport] = None) -> ProviderRegistry:
    """Build a registry holding every built-in adapter."""
    registry = ProviderRegistry()
    registry.register(OpenAIAdapter(transport=transport))
    registry.register(AnthropicAdapter(transport=transport))
    return registry
