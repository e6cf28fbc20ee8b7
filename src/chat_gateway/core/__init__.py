"""
Core chat gateway components.
"""

from .config import EffectiveConfig, GatewayDefaults, load_config, resolve_config
from .errors import (
    GatewayError,
    ClientError,
    AuthError,
    ConfigError,
    UpstreamError,
    UpstreamConnectionError,
    StreamError,
)
from .interface import AbstractProvider, ProviderCapability, UpstreamStream
from .registry import ProviderRegistry
from .streaming import GatewayStream, StreamNormalizer, normalize
from .dispatcher import ChatDispatcher

__all__ = [
    "EffectiveConfig",
    "GatewayDefaults",
    "load_config",
    "resolve_config",
    "GatewayError",
    "ClientError",
    "AuthError",
    "ConfigError",
    "UpstreamError",
    "UpstreamConnectionError",
    "StreamError",
    "AbstractProvider",
    "ProviderCapability",
    "UpstreamStream",
    "ProviderRegistry",
    "GatewayStream",
    "StreamNormalizer",
    "normalize",
    "ChatDispatcher",
]
