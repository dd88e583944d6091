# party_trivia/routes/rooms.py
import asyncio
import logging
from typing import AsyncIterator, Awaitable, Callable

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import StreamingResponse
from sqlalchemy.exc import SQLAlchemyError

from party_trivia import events
from party_trivia.config import Config
from party_trivia.ids import normalize_code
from party_trivia.models import Room
from party_trivia.room_store import RoomRepository
from party_trivia.schemas import SaveRoomResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")
room_repository = RoomRepository()


def get_repository() -> RoomRepository:
    return room_repository


@router.get("/rooms/{code}")
def get_room(code: str, repository: RoomRepository = Depends(get_repository)):
    try:
        room = repository.get(code)
    except SQLAlchemyError as e:
        logger.error("❌ Error fetching room %s: %s", code, e)
        raise HTTPException(status_code=500, detail="Internal server error")

    if room is None:
        raise HTTPException(status_code=404, detail="Room not found")
    return room.to_dict()


@router.put("/rooms/{code}", response_model=SaveRoomResponse)
def save_room(code: str, room: Room, repository: RoomRepository = Depends(get_repository)):
    """Upsert the whole room document under the path code."""
    key = normalize_code(code)
    try:
        revision = repository.put(room, key)
    except SQLAlchemyError as e:
        logger.error("❌ Error updating room %s: %s", key, e)
        raise HTTPException(status_code=500, detail="Internal server error")

    logger.info("💾 Room %s saved (rev %s, status %s, %s players)",
                key, revision, room.status.value, len(room.players))
    return SaveRoomResponse(success=True)


async def room_event_stream(
    code: str,
    repository: RoomRepository,
    is_disconnected: Callable[[], Awaitable[bool]],
    interval: float = Config.STREAM_CHECK_INTERVAL_MS / 1000,
) -> AsyncIterator[str]:
    """
    Emit `connected`, then the current room, then the room again every time
    its revision changes. Runs until the client goes away.
    """
    key = normalize_code(code)
    yield events.encode_sse(events.connected_event())

    last_revision = None
    while True:
        try:
            stored = await run_in_threadpool(repository.get_with_marker, key)
        except SQLAlchemyError as e:
            logger.error("❌ Stream read failed for room %s: %s", key, e)
            yield events.encode_sse(events.error_event("Database error"))
        else:
            if stored is not None and stored.revision != last_revision:
                last_revision = stored.revision
                yield events.encode_sse(events.update_event(stored.room.to_dict()))

        await asyncio.sleep(interval)
        if await is_disconnected():
            logger.info("🔴 Stream for room %s closed by client", key)
            return


@router.get("/rooms-stream/{code}")
async def stream_room(code: str, request: Request, repository: RoomRepository = Depends(get_repository)):
    """Server-sent event stream of room documents."""
    logger.info("🟢 Stream opened for room %s", normalize_code(code))
    return StreamingResponse(
        room_event_stream(code, repository, request.is_disconnected),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )
