# party_trivia/client/stream.py
import logging
from typing import AsyncIterator

import httpx

from party_trivia.errors import SyncFailure
from party_trivia.events import decode_sse_line
from party_trivia.ids import normalize_code

logger = logging.getLogger(__name__)


class SseRoomStream:
    """
    Opens the server-sent event channel for a room and yields decoded
    envelopes. Calling the instance with a room code returns an async
    generator; closing the generator closes the HTTP response.
    """

    def __init__(self, client: httpx.AsyncClient, connect_timeout: float = 5.0):
        self._client = client
        self._timeout = httpx.Timeout(connect_timeout, read=None)

    def __call__(self, code: str) -> AsyncIterator[dict]:
        return self._events(normalize_code(code))

    async def _events(self, code: str) -> AsyncIterator[dict]:
        try:
            async with self._client.stream(
                "GET",
                f"/api/rooms-stream/{code}",
                headers={"Accept": "text/event-stream"},
                timeout=self._timeout,
            ) as resp:
                if resp.status_code != 200:
                    raise SyncFailure(f"Event stream for {code} refused with {resp.status_code}")
                async for line in resp.aiter_lines():
                    envelope = decode_sse_line(line)
                    if envelope is not None:
                        yield envelope
        except httpx.HTTPError as e:
            raise SyncFailure(f"Event stream for {code} failed: {e}") from e
