"""
Integration tests for provider adapters.

Each adapter talks to a stubbed upstream through httpx.MockTransport.
"""
import dataclasses

import httpx
import pytest

from chat_gateway.adapters import AnthropicAdapter, OpenAIAdapter, create_registry
from chat_gateway.core.errors import ConfigError, UpstreamConnectionError, UpstreamError
from chat_gateway.core.interface import ProviderCapability
from chat_gateway.models.request import Message
from upstream import UpstreamStub, anthropic_delta, openai_delta, sse

MESSAGES = [
    Message(role="system", content="You draw diagrams"),
    Message(role="user", content="hello"),
]


class TestOpenAIAdapter:
    """Test the OpenAI-compatible adapter."""

    @pytest.mark.asyncio
    async def test_call_returns_first_choice(self, openai_config):
        """Test call extracts choices[0].message.content."""
        stub = UpstreamStub(json_body={"choices": [{"message": {"content": "hi"}}, {"message": {"content": "no"}}]})
        adapter = OpenAIAdapter(transport=stub.transport)

        assert await adapter.call(MESSAGES, openai_config) == "hi"

        request = stub.last_request
        assert request.method == "POST"
        assert str(request.url) == "https://upstream.test/v1/chat/completions"
        assert request.headers["authorization"] == "Bearer sk-test"
        body = stub.last_json()
        assert body["model"] == "gpt-4o"
        assert body["stream"] is False
        assert body["max_tokens"] == 64000
        assert len(body["messages"]) == 2

    @pytest.mark.asyncio
    async def test_call_missing_content(self, openai_config):
        """Test a response without content yields an empty string."""
        stub = UpstreamStub(json_body={"choices": []})
        adapter = OpenAIAdapter(transport=stub.transport)
        assert await adapter.call(MESSAGES, openai_config) == ""

    @pytest.mark.asyncio
    async def test_call_non_string_content(self, openai_config):
        """Test list content in the reply yields an empty string."""
        stub = UpstreamStub(json_body={
            "choices": [{"message": {"content": [{"type": "text", "text": "hi"}]}}]
        })
        adapter = OpenAIAdapter(transport=stub.transport)
        assert await adapter.call(MESSAGES, openai_config) == ""

    @pytest.mark.asyncio
    async def test_call_upstream_error(self, openai_config):
        """Test a non-2xx response raises with status and raw body."""
        stub = UpstreamStub(status_code=429, text='{"error":"rate limited"}')
        adapter = OpenAIAdapter(transport=stub.transport)

        with pytest.raises(UpstreamError) as exc_info:
            await adapter.call(MESSAGES, openai_config)

        assert exc_info.value.upstream_status == 429
        assert exc_info.value.body == '{"error":"rate limited"}'
        assert "rate limited" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_call_invalid_json(self, openai_config):
        """Test an unparsable success body is an upstream error."""
        stub = UpstreamStub(text="<html>gateway</html>")
        adapter = OpenAIAdapter(transport=stub.transport)
        with pytest.raises(UpstreamError):
            await adapter.call(MESSAGES, openai_config)

    @pytest.mark.asyncio
    async def test_call_without_api_key(self, openai_config):
        """Test a missing key fails before any request is sent."""
        stub = UpstreamStub(json_body={})
        adapter = OpenAIAdapter(transport=stub.transport)
        config = dataclasses.replace(openai_config, api_key="")

        with pytest.raises(ConfigError):
            await adapter.call(MESSAGES, config)
        assert stub.requests == []

    @pytest.mark.asyncio
    async def test_call_connection_error(self, openai_config):
        """Test transport failures surface as connection errors."""
        stub = UpstreamStub(error=httpx.ConnectError("refused"))
        adapter = OpenAIAdapter(transport=stub.transport)
        with pytest.raises(UpstreamConnectionError):
            await adapter.call(MESSAGES, openai_config)

    @pytest.mark.asyncio
    async def test_call_with_caller_client(self, openai_config):
        """Test a caller-managed client is used and left open."""
        stub = UpstreamStub(json_body={"choices": [{"message": {"content": "ok"}}]})
        adapter = OpenAIAdapter()
        async with httpx.AsyncClient(transport=stub.transport) as client:
            assert await adapter.call(MESSAGES, openai_config, client=client) == "ok"
            assert not client.is_closed

    @pytest.mark.asyncio
    async def test_open_stream(self, openai_config):
        """Test streaming sets the flag and returns the raw bytes."""
        raw = sse(openai_delta("A"), "[DONE]")
        stub = UpstreamStub(chunks=[raw])
        adapter = OpenAIAdapter(transport=stub.transport)

        upstream = await adapter.open_stream(MESSAGES, openai_config)
        received = b"".join([chunk async for chunk in upstream.aiter_bytes()])
        await upstream.aclose()

        assert received == raw
        assert upstream.closed
        assert stub.last_json()["stream"] is True

    @pytest.mark.asyncio
    async def test_open_stream_error_before_bytes(self, openai_config):
        """Test an error status is raised before a stream is returned."""
        stub = UpstreamStub(status_code=401, text="invalid key")
        adapter = OpenAIAdapter(transport=stub.transport)

        with pytest.raises(UpstreamError) as exc_info:
            await adapter.open_stream(MESSAGES, openai_config)
        assert exc_info.value.upstream_status == 401
        assert exc_info.value.body == "invalid key"

    def test_extract_delta(self):
        """Test delta extraction tolerates missing fields."""
        adapter = OpenAIAdapter()
        assert adapter.extract_delta(openai_delta("x")) == "x"
        assert adapter.extract_delta({"choices": [{"delta": {}}]}) is None
        assert adapter.extract_delta({"choices": []}) is None
        assert adapter.extract_delta({}) is None
        assert adapter.extract_delta({"choices": [{"delta": {"content": 123}}]}) is None

    def test_capabilities(self):
        """Test adapter reports capabilities."""
        adapter = OpenAIAdapter()
        assert adapter.supports(ProviderCapability.STREAMING)
        assert adapter.supports(ProviderCapability.IMAGE_URLS)


class TestAnthropicAdapter:
    """Test the Anthropic-compatible adapter."""

    @pytest.mark.asyncio
    async def test_call_returns_first_block(self, anthropic_config):
        """Test call extracts content[0].text."""
        stub = UpstreamStub(json_body={"content": [{"type": "text", "text": "hi"}]})
        adapter = AnthropicAdapter(transport=stub.transport)

        assert await adapter.call(MESSAGES, anthropic_config) == "hi"

        request = stub.last_request
        assert str(request.url) == "https://upstream.test/v1/messages"
        assert request.headers["x-api-key"] == "sk-ant-test"
        assert request.headers["anthropic-version"] == "2023-06-01"
        assert "authorization" not in request.headers
        body = stub.last_json()
        assert body["system"] == "You draw diagrams"
        assert body["messages"] == [{"role": "user", "content": "hello"}]
        assert body["stream"] is False

    @pytest.mark.asyncio
    async def test_call_upstream_error(self, anthropic_config):
        """Test a non-2xx response carries the upstream body."""
        stub = UpstreamStub(status_code=529, text="overloaded")
        adapter = AnthropicAdapter(transport=stub.transport)

        with pytest.raises(UpstreamError) as exc_info:
            await adapter.call(MESSAGES, anthropic_config)
        assert exc_info.value.upstream_status == 529
        assert "Anthropic API error" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_open_stream_sets_flag(self, anthropic_config):
        """Test the streaming body has stream enabled."""
        stub = UpstreamStub(chunks=[sse(anthropic_delta("A"))])
        adapter = AnthropicAdapter(transport=stub.transport)

        upstream = await adapter.open_stream(MESSAGES, anthropic_config)
        await upstream.aclose()
        assert stub.last_json()["stream"] is True

    def test_extract_delta(self):
        """Test only content_block_delta events carry text."""
        adapter = AnthropicAdapter()
        assert adapter.extract_delta(anthropic_delta("x")) == "x"
        assert adapter.extract_delta({"type": "content_block_start", "content_block": {"text": ""}}) is None
        assert adapter.extract_delta({"type": "message_stop"}) is None
        assert adapter.extract_delta({"type": "content_block_delta", "delta": {"text": ["x"]}}) is None
        assert adapter.extract_delta({"type": "error", "error": {"type": "overloaded_error"}}) is None

    def test_message_stop_is_terminal(self):
        """Test message_stop ends the stream."""
        adapter = AnthropicAdapter()
        assert adapter.is_terminal_event({"type": "message_stop"})
        assert not adapter.is_terminal_event({"type": "content_block_stop"})

    def test_no_url_images(self):
        """Test the adapter does not claim remote image support."""
        assert not AnthropicAdapter().supports(ProviderCapability.IMAGE_URLS)


class TestProviderRegistry:
    """Test adapter lookup."""

    def test_builtin_adapters(self):
        """Test both built-in providers are registered."""
        registry = create_registry()
        assert isinstance(registry.get("openai"), OpenAIAdapter)
        assert isinstance(registry.get("anthropic"), AnthropicAdapter)
        assert {p["type"] for p in registry.list_providers()} == {"openai", "anthropic"}

    def test_unknown_provider(self):
        """Test looking up an unregistered provider fails."""
        registry = create_registry()
        with pytest.raises(ConfigError):
            registry.get("gemini")

    def test_unregister(self):
        """Test removing an adapter."""
        registry = create_registry()
        registry.unregister("anthropic")
        assert "anthropic" not in registry
