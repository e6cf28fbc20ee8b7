"""
Request-level orchestration for the chat endpoint.
"""

import logging
from typing import Any, Optional, Tuple

from pydantic import ValidationError

from ..auth import authorize
from ..models.request import ChatRequest
from ..models.response import ChatResponse
from .config import EffectiveConfig, GatewayDefaults, resolve_config
from .errors import AuthError, ClientError
from .interface import AbstractProvider
from .registry import ProviderRegistry
from .streaming import GatewayStream

logger = logging.getLogger(__name__)


class ChatDispatcher:
    """
    Routes a chat request to the right provider adapter and mode.

    Holds only read-only state; every request resolves its own config.
    """

    def __init__(self, defaults: GatewayDefaults, registry: ProviderRegistry):
        self.defaults = defaults
        self.registry = registry

    @staticmethod
    def parse_request(body: Any) -> ChatRequest:
        """
        Validate an inbound JSON body.

        Raises:
            ClientError: The body is not a valid chat request
        """
        if not isinstance(body, dict) or not isinstance(body.get("messages"), list):
            raise ClientError("Invalid request: messages required")

        try:
            return ChatRequest.model_validate(body)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in e.errors()
            )
            raise ClientError(f"Invalid request: {problems}")

    def _authorize(self, request: ChatRequest, password: Optional[str]) -> None:
        decision = authorize(
            password,
            self.defaults.access_password,
            request.has_credential_override,
        )
        if not decision.allowed:
            logger.warning(f"Chat request denied: {decision.reason}")
            raise AuthError(decision.reason)

    def _select(self, request: ChatRequest) -> Tuple[AbstractProvider, EffectiveConfig]:
        config = resolve_config(self.defaults, request.credential_override)
        provider = self.registry.get(config.provider)
        logger.debug(
            f"Dispatching to {provider.name} (model={config.model_id}, stream={request.stream})"
        )
        return provider, config

    async def complete(self, request: ChatRequest, password: Optional[str] = None) -> ChatResponse:
        """Run a non-streaming chat request and return the full text."""
        self._authorize(request, password)
        provider, config = self._select(request)

        content = await provider.call(request.messages, config)
        return ChatResponse(content=content)

    async def open_stream(
        self,
        request: ChatRequest,
        password: Optional[str] = None,
    ) -> GatewayStream:
        """
        Open a streaming chat request.

        Access, configuration and upstream status errors are raised here,
        before the caller sends any response bytes.
        """
        self._authorize(request, password)
        provider, config = self._select(request)

        upstream = await provider.open_stream(request.messages, config)
        return GatewayStream(upstream, provider)
