# party_trivia/client/store.py
"""
Client-side store adapters.

All of them expose the same two coroutines:

    get(code) -> Room | None
    put(room) -> None

with create-or-replace semantics keyed by the upper-cased room code.
"""
import logging
from typing import Dict, Optional

import httpx

from party_trivia.errors import PersistenceFailure, SyncFailure
from party_trivia.ids import normalize_code
from party_trivia.models import Room

logger = logging.getLogger(__name__)


class HttpRoomStore:
    """Talks to the /api/rooms routes. The client must carry the base URL."""

    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    async def get(self, code: str) -> Optional[Room]:
        key = normalize_code(code)
        try:
            resp = await self._client.get(f"/api/rooms/{key}")
        except httpx.HTTPError as e:
            raise SyncFailure(f"Room store unreachable: {e}") from e

        if resp.status_code == 404:
            return None
        if "application/json" not in resp.headers.get("content-type", ""):
            logger.warning("⚠️ Room API not available (not returning JSON)")
            return None
        if resp.is_error:
            raise SyncFailure(f"Fetching room {key} failed with {resp.status_code}")
        return Room.from_dict(resp.json())

    async def put(self, room: Room) -> None:
        key = normalize_code(room.code)
        try:
            resp = await self._client.put(f"/api/rooms/{key}", json=room.to_dict())
        except httpx.HTTPError as e:
            raise PersistenceFailure(f"Room store unreachable: {e}") from e
        if resp.is_error:
            raise PersistenceFailure(f"Saving room {key} failed with {resp.status_code}")


class LocalRoomStore:
    """In-process copy of every room this client has seen or written."""

    def __init__(self):
        self._rooms: Dict[str, dict] = {}

    async def get(self, code: str) -> Optional[Room]:
        doc = self._rooms.get(normalize_code(code))
        return Room.from_dict(doc) if doc is not None else None

    async def put(self, room: Room) -> None:
        self._rooms[normalize_code(room.code)] = room.to_dict()


class FallbackRoomStore:
    """
    Remote first, local backup. Reads fall back to the local copy when the
    remote store is unreachable or does not know the room; every write also
    lands in the local copy.
    """

    def __init__(self, remote, local: Optional[LocalRoomStore] = None):
        self.remote = remote
        self.local = local or LocalRoomStore()

    async def get(self, code: str) -> Optional[Room]:
        try:
            room = await self.remote.get(code)
        except SyncFailure as e:
            logger.warning("⚠️ Remote store unavailable, using local copy: %s", e)
            room = None
        if room is not None:
            return room
        return await self.local.get(code)

    async def put(self, room: Room) -> None:
        try:
            await self.remote.put(room)
        except PersistenceFailure as e:
            logger.warning("⚠️ Remote save failed, kept local copy only: %s", e)
        await self.local.put(room)
