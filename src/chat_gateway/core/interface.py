"""
Abstract provider interface definition.

Defines the contract every upstream adapter implements, plus the shared
HTTP plumbing for blocking calls and streamed calls.
"""

import logging
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional, Set

import httpx
from opentelemetry import trace

from ..models.request import Message
from .config import EffectiveConfig
from .errors import ConfigError, UpstreamConnectionError, UpstreamError

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class ProviderCapability(str, Enum):
    """Capabilities that a provider adapter may support."""
    CHAT_COMPLETION = "chat_completion"
    STREAMING = "streaming"
    VISION = "vision"
    IMAGE_URLS = "image_urls"


class UpstreamStream:
    """
    An open streaming response from an upstream provider.

    Owns the response and, when the adapter created it, the HTTP client.
    Closing is idempotent.
    """

    def __init__(
        self,
        response: httpx.Response,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._response = response
        self._client = client
        self._closed = False

    @property
    def status_code(self) -> int:
        return self._response.status_code

    @property
    def closed(self) -> bool:
        return self._closed

    def aiter_bytes(self) -> AsyncIterator[bytes]:
        return self._response.aiter_bytes()

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._response.aclose()
        finally:
            if self._client is not None:
                await self._client.aclose()


class AbstractProvider(ABC):
    """
    Abstract base class for upstream provider adapters.

    Subclasses describe their wire format; ``call`` and ``open_stream``
    carry the request and apply the shared error handling.
    """

    def __init__(
        self,
        name: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the adapter.

        Args:
            name: Instance name used in logs, defaults to the provider type
            transport: Optional httpx transport for clients the adapter creates
        """
        self._name = name or self.provider_type
        self._transport = transport

    @property
    def name(self) -> str:
        return self._name

    @property
    @abstractmethod
    def provider_type(self) -> str:
        """Provider identifier (e.g. "openai", "anthropic")."""
        pass

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human readable provider family used in error messages."""
        pass

    @property
    @abstractmethod
    def endpoint_path(self) -> str:
        """Chat endpoint path appended to the base URL."""
        pass

    @property
    @abstractmethod
    def capabilities(self) -> Set[ProviderCapability]:
        pass

    @abstractmethod
    def build_headers(self, config: EffectiveConfig) -> Dict[str, str]:
        """Return request headers, including authentication."""
        pass

    @abstractmethod
    def build_payload(
        self,
        messages: List[Message],
        config: EffectiveConfig,
        stream: bool,
    ) -> Dict[str, Any]:
        """Translate canonical messages into the provider request body."""
        pass

    @abstractmethod
    def extract_content(self, data: Any) -> str:
        """Return the final text of a non-streaming response body."""
        pass

    @abstractmethod
    def extract_delta(self, event: Dict[str, Any]) -> Optional[str]:
        """Return the incremental text carried by one streaming event."""
        pass

    def is_terminal_event(self, event: Dict[str, Any]) -> bool:
        """Whether a streaming event marks the end of the response."""
        return False

    def supports(self, capability: ProviderCapability) -> bool:
        return capability in self.capabilities

    def url_for(self, config: EffectiveConfig) -> str:
        return f"{config.base_url.rstrip('/')}{self.endpoint_path}"

    def _new_client(self, config: EffectiveConfig) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=config.timeout, transport=self._transport)

    @asynccontextmanager
    async def _client_scope(
        self,
        client: Optional[httpx.AsyncClient],
        config: EffectiveConfig,
    ):
        if client is not None:
            yield client
            return
        async with self._new_client(config) as owned:
            yield owned

    def _require_api_key(self, config: EffectiveConfig) -> None:
        if not config.api_key:
            raise ConfigError("AI_API_KEY not configured", provider=self.provider_type)

    def _annotate(self, span, config: EffectiveConfig, stream: bool) -> None:
        span.set_attribute("gateway.provider", self.provider_type)
        span.set_attribute("gateway.model", config.model_id)
        span.set_attribute("gateway.stream", stream)

    def _check_response_errors(self, response: httpx.Response) -> None:
        """Raise UpstreamError for any non-success upstream response."""
        if response.is_success:
            return

        body = response.text
        logger.error(
            f"{self.display_name} upstream returned {response.status_code} for {self._name}"
        )
        raise UpstreamError(
            f"{self.display_name} API error ({response.status_code}): {body}",
            provider=self.provider_type,
            upstream_status=response.status_code,
            body=body,
        )

    def _connection_error(self, error: httpx.RequestError) -> UpstreamConnectionError:
        logger.error(f"Failed to reach {self.display_name} upstream for {self._name}: {error}")
        return UpstreamConnectionError(
            f"{self.display_name} API unreachable: {error}",
            provider=self.provider_type,
        )

    async def call(
        self,
        messages: List[Message],
        config: EffectiveConfig,
        client: Optional[httpx.AsyncClient] = None,
    ) -> str:
        """
        Send a blocking chat request and return the response text.

        Raises:
            ConfigError: No API key is configured
            UpstreamError: The upstream answered with a non-success status
            UpstreamConnectionError: The upstream could not be reached
        """
        self._require_api_key(config)
        payload = self.build_payload(messages, config, stream=False)

        with tracer.start_as_current_span("upstream.call") as span:
            self._annotate(span, config, stream=False)

            async with self._client_scope(client, config) as http:
                try:
                    response = await http.post(
                        self.url_for(config),
                        headers=self.build_headers(config),
                        json=payload,
                    )
                except httpx.RequestError as e:
                    raise self._connection_error(e)

            span.set_attribute("http.status_code", response.status_code)
            self._check_response_errors(response)

            try:
                data = response.json()
            except ValueError:
                raise UpstreamError(
                    f"{self.display_name} API returned invalid JSON",
                    provider=self.provider_type,
                    upstream_status=response.status_code,
                    body=response.text,
                )

        return self.extract_content(data)

    async def open_stream(
        self,
        messages: List[Message],
        config: EffectiveConfig,
        client: Optional[httpx.AsyncClient] = None,
    ) -> UpstreamStream:
        """
        Send a streaming chat request and return the open response.

        The status is checked before returning, so failures surface before
        any byte reaches the caller. The caller must close the stream.
        """
        self._require_api_key(config)
        payload = self.build_payload(messages, config, stream=True)

        owns_client = client is None
        http = self._new_client(config) if owns_client else client

        try:
            with tracer.start_as_current_span("upstream.open_stream") as span:
                self._annotate(span, config, stream=True)

                request = http.build_request(
                    "POST",
                    self.url_for(config),
                    headers=self.build_headers(config),
                    json=payload,
                )
                try:
                    response = await http.send(request, stream=True)
                except httpx.RequestError as e:
                    raise self._connection_error(e)

                span.set_attribute("http.status_code", response.status_code)
                if not response.is_success:
                    try:
                        await response.aread()
                    except httpx.RequestError as e:
                        raise self._connection_error(e)
                    finally:
                        await response.aclose()
                    self._check_response_errors(response)

        except BaseException:
            if owns_client:
                await http.aclose()
            raise

        return UpstreamStream(response, http if owns_client else None)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r}, type={self.provider_type!r})"
