# party_trivia/client/notifier.py
"""
Change notifier.

subscribe(code, on_update, on_error) starts one subscription that first
listens to the room's server-sent event stream and, if that stream errors,
ends, or stays silent for the push timeout, switches for good to polling the
store adapter. Each room document reaches on_update once; repeats of the last
delivered document are dropped.
"""
import asyncio
import json
import logging
from typing import AsyncIterator, Callable, Optional

from party_trivia import events
from party_trivia.config import Config
from party_trivia.errors import SyncFailure
from party_trivia.ids import normalize_code
from party_trivia.models import Room

logger = logging.getLogger(__name__)

PUSH = "push"
POLL = "poll"

UpdateCallback = Callable[[Room], None]
ErrorCallback = Callable[[Exception], None]
StreamOpener = Callable[[str], AsyncIterator[dict]]


def canonical_payload(room: Room) -> str:
    return json.dumps(room.to_dict(), sort_keys=True, separators=(",", ":"))


class Subscription:
    def __init__(self, code: str, store, open_stream: Optional[StreamOpener],
                 on_update: UpdateCallback, on_error: Optional[ErrorCallback],
                 push_timeout: float, poll_interval: float):
        self.code = normalize_code(code)
        self._store = store
        self._open_stream = open_stream
        self._on_update = on_update
        self._on_error = on_error
        self._push_timeout = push_timeout
        self._poll_interval = poll_interval

        self.mode: Optional[str] = None
        self.active = True
        self._last_payload: Optional[str] = None
        self._task: Optional[asyncio.Task] = None

    def start(self):
        self._task = asyncio.get_running_loop().create_task(self._run(), name=f"room-sync-{self.code}")

    def unsubscribe(self):
        """Stop whichever channel is running. Further calls do nothing."""
        if not self.active:
            return
        self.active = False
        if self._task is not None and not self._task.done():
            self._task.cancel()
        logger.debug("🔕 Unsubscribed from room %s", self.code)

    async def wait_closed(self):
        if self._task is not None:
            try:
                await self._task
            except asyncio.CancelledError:
                pass

    # ------------------------------
    # Delivery
    # ------------------------------
    def _deliver(self, room: Room):
        if not self.active:
            return
        payload = canonical_payload(room)
        if payload == self._last_payload:
            return
        self._last_payload = payload
        try:
            self._on_update(room)
        except Exception:
            logger.exception("❌ Room update handler failed for %s", self.code)

    def _report(self, error: Exception):
        logger.warning("⚠️ Sync problem on room %s: %s", self.code, error)
        if self.active and self._on_error is not None:
            try:
                self._on_error(error)
            except Exception:
                logger.exception("❌ Room error handler failed for %s", self.code)

    # ------------------------------
    # Channels
    # ------------------------------
    async def _run(self):
        if self._open_stream is not None:
            try:
                await self._push()
            except asyncio.TimeoutError:
                logger.warning("⏱️ No data on event stream for %s, falling back to polling", self.code)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self._report(e if isinstance(e, SyncFailure) else SyncFailure(f"Event stream failed: {e}"))
        if self.active:
            await self._poll()

    async def _push(self):
        self.mode = PUSH
        logger.info("📡 Connecting to event stream for room %s", self.code)
        stream = self._open_stream(self.code)
        received = False
        try:
            while self.active:
                # The timeout only guards the first message
                timeout = None if received else self._push_timeout
                envelope = await asyncio.wait_for(anext(stream, None), timeout)
                if envelope is None:
                    raise SyncFailure("Event stream ended")
                received = True
                self._handle_envelope(envelope)
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

    def _handle_envelope(self, envelope: dict):
        kind = envelope.get("type")
        if kind == events.UPDATE and envelope.get("room"):
            try:
                room = Room.from_dict(envelope["room"])
            except ValueError as e:
                logger.error("❌ Bad room payload on %s: %s", self.code, e)
                return
            self._deliver(room)
        elif kind == events.ERROR:
            logger.warning("⚠️ Server reported stream error for %s: %s", self.code, envelope.get("error"))
        elif kind == events.CONNECTED:
            logger.info("🟢 Event stream connected for room %s", self.code)

    async def _poll(self):
        self.mode = POLL
        logger.info("🔁 Polling room %s every %sms", self.code, int(self._poll_interval * 1000))
        while self.active:
            try:
                room = await self._store.get(self.code)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self._report(e if isinstance(e, SyncFailure) else SyncFailure(f"Polling failed: {e}"))
            else:
                if room is not None:
                    self._deliver(room)
            await asyncio.sleep(self._poll_interval)


class RoomNotifier:
    """
    Hands out subscriptions. `store` must offer `async get(code)`;
    `open_stream(code)` returns an async iterator of event envelopes, or is
    None to go straight to polling.
    """

    def __init__(self, store, open_stream: Optional[StreamOpener] = None, *,
                 push_timeout: float = Config.PUSH_TIMEOUT_MS / 1000,
                 poll_interval: float = Config.POLL_INTERVAL_MS / 1000):
        self.store = store
        self.open_stream = open_stream
        self.push_timeout = push_timeout
        self.poll_interval = poll_interval

    def open(self, code: str, on_update: UpdateCallback,
             on_error: Optional[ErrorCallback] = None) -> Subscription:
        """Like subscribe() but returns the Subscription itself."""
        subscription = Subscription(
            code, self.store, self.open_stream, on_update, on_error,
            self.push_timeout, self.poll_interval,
        )
        subscription.start()
        return subscription

    def subscribe(self, code: str, on_update: UpdateCallback,
                  on_error: Optional[ErrorCallback] = None) -> Callable[[], None]:
        return self.open(code, on_update, on_error).unsubscribe
