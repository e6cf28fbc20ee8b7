"""
Stream normalization.

Turns the raw SSE byte stream of any upstream provider into the gateway's
own event protocol: ``data: {"content": "..."}`` frames followed by
``data: [DONE]``.
"""

import codecs
import json
import logging
from typing import AsyncIterator, List

import httpx

from ..models.response import DONE_EVENT, DONE_SENTINEL, GatewayEvent
from .errors import StreamError
from .interface import AbstractProvider, UpstreamStream

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "


class StreamNormalizer:
    """
    Line-buffered transform from upstream bytes to gateway SSE frames.

    Only the trailing partial line is held between chunks, so output order
    mirrors input order regardless of where chunk boundaries fall.
    """

    def __init__(self, provider: AbstractProvider):
        self._provider = provider
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._done = False

    @property
    def done(self) -> bool:
        """Whether the end-of-stream marker has been emitted."""
        return self._done

    def feed(self, chunk: bytes) -> List[str]:
        """Consume one upstream chunk and return the frames it completes."""
        self._buffer += self._decoder.decode(chunk)
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()

        frames = []
        for line in lines:
            frames.extend(self._process_line(line))
        return frames

    def flush(self) -> List[str]:
        """Process whatever is left once the upstream has ended."""
        self._buffer += self._decoder.decode(b"", final=True)
        remainder, self._buffer = self._buffer, ""
        return self._process_line(remainder)

    def _process_line(self, line: str) -> List[str]:
        trimmed = line.strip()
        if not trimmed or not trimmed.startswith(DATA_PREFIX):
            return []

        data = trimmed[len(DATA_PREFIX):]
        if data == DONE_SENTINEL:
            return self._finish()

        try:
            event = json.loads(data)
        except ValueError:
            logger.debug(f"Skipping unparsable stream line from {self._provider.name}")
            return []

        if not isinstance(event, dict):
            return []

        frames = []
        text = self._provider.extract_delta(event)
        if isinstance(text, str) and text:
            frames.append(GatewayEvent(content=text).to_sse())
        if self._provider.is_terminal_event(event):
            frames.extend(self._finish())
        return frames

    def _finish(self) -> List[str]:
        # Emitted once even if the upstream sends several end markers
        if self._done:
            return []
        self._done = True
        return [DONE_EVENT]


async def normalize(
    upstream: UpstreamStream,
    provider: AbstractProvider,
) -> AsyncIterator[str]:
    """
    Relay an upstream stream as gateway SSE frames.

    The next upstream chunk is read only after the frames of the previous
    one have been consumed. The upstream is closed when the relay ends for
    any reason, including cancellation by the caller.

    Raises:
        StreamError: The upstream connection failed mid-stream
    """
    normalizer = StreamNormalizer(provider)
    try:
        try:
            async for chunk in upstream.aiter_bytes():
                for frame in normalizer.feed(chunk):
                    yield frame
        except (httpx.HTTPError, httpx.StreamError) as e:
            raise StreamError(
                f"{provider.display_name} stream interrupted: {e}",
                provider=provider.provider_type,
            ) from e

        for frame in normalizer.flush():
            yield frame
    finally:
        await upstream.aclose()


class GatewayStream:
    """
    Caller-facing stream of gateway frames for one chat request.

    Iterating relays the upstream; a mid-stream failure ends the iteration
    without a done marker. ``aclose`` releases the upstream connection and
    is safe to call more than once.
    """

    def __init__(self, upstream: UpstreamStream, provider: AbstractProvider):
        self._upstream = upstream
        self._provider = provider

    def __aiter__(self) -> AsyncIterator[str]:
        return self._relay()

    async def _relay(self) -> AsyncIterator[str]:
        try:
            async for frame in normalize(self._upstream, self._provider):
                yield frame
        except StreamError as e:
            logger.warning(f"Closing client stream early: {e.message}")

    async def aclose(self) -> None:
        await self._upstream.aclose()
