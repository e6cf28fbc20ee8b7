"""
Provider registry for looking up upstream adapters.
"""

import logging
from typing import Any, Dict, List

from .errors import ConfigError
from .interface import AbstractProvider

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """
    Registry of provider adapters keyed by provider type.

    Adapters are stateless, so one instance serves every request.
    """

    def __init__(self):
        """Initialize the registry."""
        self._providers: Dict[str, AbstractProvider] = {}

    def register(self, adapter: AbstractProvider) -> None:
        """
        Register an adapter under its provider type.

        Registering the same type again replaces the previous adapter.
        """
        if adapter.provider_type in self._providers:
            logger.info(f"Replacing provider adapter: {adapter.provider_type}")
        self._providers[adapter.provider_type] = adapter
        logger.info(f"Registered provider adapter: {adapter.provider_type}")

    def unregister(self, provider_type: str) -> None:
        self._providers.pop(provider_type, None)

    def get(self, provider_type: str) -> AbstractProvider:
        """
        Get the adapter for a provider type.

        Raises:
            ConfigError: If no adapter is registered for the type
        """
        if provider_type not in self._providers:
            raise ConfigError(f"Unsupported provider: {provider_type}", provider=provider_type)
        return self._providers[provider_type]

    def __contains__(self, provider_type: str) -> bool:
        return provider_type in self._providers

    def list_providers(self) -> List[Dict[str, Any]]:
        """List registered adapters with their capabilities."""
        return [
            {
                "name": adapter.name,
                "type": adapter.provider_type,
                "capabilities": sorted(c.value for c in adapter.capabilities),
            }
            for adapter in self._providers.values()
        ]
