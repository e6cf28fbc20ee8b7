"""
Async client for the chat gateway.

Used by scripts and tests that talk to a running gateway the same way the
diagram editor does.
"""

import json
import logging
from typing import Any, Callable, Dict, List, Optional, Union

import httpx

from .auth import PASSWORD_HEADER
from .core.errors import GatewayError
from .models.request import Message, ProviderCredential
from .models.response import DONE_SENTINEL

logger = logging.getLogger(__name__)

ChunkCallback = Callable[[str, str], None]


def parse_sse_line(line: str) -> Optional[str]:
    """
    Extract content from one SSE line.

    Accepts gateway frames as well as raw OpenAI deltas, ``text`` payloads
    and plain text. Returns None for the done marker and empty payloads.
    """
    data = line[len("data: "):] if line.startswith("data: ") else line

    if data == DONE_SENTINEL:
        return None

    try:
        parsed = json.loads(data)
    except ValueError:
        return data if data.strip() else None

    if not isinstance(parsed, dict):
        return None

    choices = parsed.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        delta = choices[0].get("delta") or {}
        if delta.get("content"):
            return delta["content"]
    if parsed.get("content"):
        return parsed["content"]
    if parsed.get("text"):
        return parsed["text"]
    return None


class ChatGatewayClient:
    """
    Async HTTP client for the gateway ``/chat`` endpoint.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3001/api",
        password: Optional[str] = None,
        credential: Optional[ProviderCredential] = None,
        timeout: float = 120.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: Gateway URL including any route prefix
            password: Shared access password
            credential: Caller-supplied upstream credentials
            timeout: Request timeout in seconds
            transport: Optional httpx transport, e.g. an ASGI app
        """
        self.base_url = base_url.rstrip("/")
        self.password = password
        self.credential = credential
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            headers = {"Content-Type": "application/json"}
            if self.password:
                headers[PASSWORD_HEADER] = self.password
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "ChatGatewayClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _body(self, messages: List[Union[Message, Dict[str, Any]]], stream: bool) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "messages": [
                m.model_dump(exclude_none=True) if isinstance(m, Message) else m
                for m in messages
            ],
            "stream": stream,
        }
        if self.credential is not None:
            body["credentialOverride"] = self.credential.model_dump(
                by_alias=True, exclude_none=True, mode="json"
            )
        return body

    @staticmethod
    def _raise_for_error(status_code: int, text: str) -> None:
        try:
            message = json.loads(text).get("error") or text
        except (ValueError, AttributeError):
            message = text
        error = GatewayError(f"AI request failed: {message}")
        error.status_code = status_code
        raise error

    async def chat(self, messages: List[Union[Message, Dict[str, Any]]]) -> str:
        """Send messages and return the complete reply."""
        client = await self._get_client()
        response = await client.post("/chat", json=self._body(messages, stream=False))

        if not response.is_success:
            self._raise_for_error(response.status_code, response.text)

        data = response.json()
        return data.get("content") or data.get("message") or ""

    async def stream_chat(
        self,
        messages: List[Union[Message, Dict[str, Any]]],
        on_chunk: Optional[ChunkCallback] = None,
    ) -> str:
        """
        Stream a reply, calling ``on_chunk(chunk, accumulated)`` per increment.

        Returns:
            The full accumulated reply
        """
        client = await self._get_client()
        full_content = ""

        async with client.stream("POST", "/chat", json=self._body(messages, stream=True)) as response:
            if not response.is_success:
                await response.aread()
                self._raise_for_error(response.status_code, response.text)

            async for line in response.aiter_lines():
                trimmed = line.strip()
                if not trimmed:
                    continue
                content = parse_sse_line(trimmed)
                if content:
                    full_content += content
                    if on_chunk:
                        on_chunk(content, full_content)

        return full_content
