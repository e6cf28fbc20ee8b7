"""
Diagram Chat Gateway

Relays chat requests from the diagram editor to heterogeneous LLM APIs:
- One uniform request and response contract for every upstream
- OpenAI-compatible and Anthropic-compatible adapters
- Normalized SSE streaming
- Password or bring-your-own-key access control
"""

from .auth import AccessDecision, authorize
from .core.interface import AbstractProvider, ProviderCapability
from .core.registry import ProviderRegistry
from .core.config import GatewayDefaults, EffectiveConfig, load_config, resolve_config
from .core.dispatcher import ChatDispatcher
from .core.streaming import StreamNormalizer
from .adapters import OpenAIAdapter, AnthropicAdapter, create_registry
from .models.request import ChatRequest, Message, ContentPart, ProviderCredential, ProviderType
from .models.response import ChatResponse, GatewayEvent

__all__ = [
    "AccessDecision",
    "authorize",
    "AbstractProvider",
    "ProviderCapability",
    "ProviderRegistry",
    "GatewayDefaults",
    "EffectiveConfig",
    "load_config",
    "resolve_config",
    "ChatDispatcher",
    "StreamNormalizer",
    "OpenAIAdapter",
    "AnthropicAdapter",
    "create_registry",
    "ChatRequest",
    "Message",
    "ContentPart",
    "ProviderCredential",
    "ProviderType",
    "ChatResponse",
    "GatewayEvent",
]
