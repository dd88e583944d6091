# party_trivia/client/controller.py
"""
Per-client room controllers.

A controller keeps the client's copy of the shared Room, applies local
mutations through the state machine, persists the whole document, and
replaces its copy wholesale whenever the notifier delivers a newer one.
It owns two resources, the notifier subscription and the question
countdown; both are released by close() (or by leaving `async with`).
"""
import asyncio
import logging
from typing import Callable, List, Optional, Tuple

from party_trivia import room_state
from party_trivia.client.notifier import RoomNotifier, Subscription
from party_trivia.config import Config
from party_trivia.errors import GenerationFailure, InvalidAction, InvalidConfig, PersistenceFailure, RoomNotFound
from party_trivia.ids import decode_room_config, encode_room_config, new_player_id, new_room_code, normalize_code
from party_trivia.models import GameMode, Player, Question, Role, Room, RoomStatus
from party_trivia.questions import fallback_questions
from party_trivia.schemas import RoomSetup

logger = logging.getLogger(__name__)


class RoomController:
    role = Role.PLAYER

    def __init__(self, store, notifier: RoomNotifier, *, tick: float = Config.COUNTDOWN_TICK_SEC,
                 on_change: Optional[Callable[[Room], None]] = None):
        self.store = store
        self.notifier = notifier
        self.room: Optional[Room] = None
        self.session_player_id: Optional[str] = None
        self.time_left = 0
        self.on_change = on_change

        self._tick = tick
        self._subscription: Optional[Subscription] = None
        self._countdown: Optional[asyncio.Task] = None
        self._countdown_key: Optional[Tuple[str, int]] = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def close(self):
        """Drop the subscription and stop the countdown."""
        if self._subscription is not None:
            self._subscription.unsubscribe()
            await self._subscription.wait_closed()
            self._subscription = None
        await self._stop_countdown()

    # ------------------------------
    # Derived state
    # ------------------------------
    @property
    def phase(self) -> Optional[RoomStatus]:
        return self.room.status if self.room else None

    @property
    def current_question(self) -> Optional[Question]:
        return self.room.current_question if self.room else None

    @property
    def session_player(self) -> Optional[Player]:
        if self.room is None or self.session_player_id is None:
            return None
        return self.room.find_player(self.session_player_id)

    def leaderboard(self) -> List[Player]:
        return room_state.leaderboard(self.room) if self.room else []

    def round_result(self) -> Optional[Tuple[bool, int]]:
        if self.room is None or self.session_player_id is None:
            return None
        return room_state.round_result(self.room, self.session_player_id)

    # ------------------------------
    # Synchronization
    # ------------------------------
    def handle_update(self, room: Room):
        """Notifier callback: the received document replaces ours entirely."""
        logger.debug("📥 Room %s update received (%s)", room.code, room.status.value)
        self.room = room
        self._after_change()

    def _watch(self, code: str):
        code = normalize_code(code)
        if self._subscription is not None:
            if self._subscription.code == code and self._subscription.active:
                return
            self._subscription.unsubscribe()
        self._subscription = self.notifier.open(code, self.handle_update, self._on_sync_error)

    def _on_sync_error(self, error: Exception):
        logger.warning("⚠️ Room sync degraded: %s", error)

    async def _commit(self, room: Room) -> Room:
        """Optimistic local update followed by a best-effort write."""
        self.room = room
        self._after_change()
        await self._persist(room)
        return room

    async def _persist(self, room: Room) -> bool:
        try:
            await self.store.put(room)
            return True
        except PersistenceFailure as e:
            # Local state stays as the client's view until the next update
            logger.warning("⚠️ Could not save room %s: %s", room.code, e)
            return False

    def _after_change(self):
        self._sync_countdown()
        if self.on_change is not None and self.room is not None:
            self.on_change(self.room)

    # ------------------------------
    # Countdown
    # ------------------------------
    def _sync_countdown(self):
        room = self.room
        if room is not None and room.status == RoomStatus.QUESTION:
            key = (room.code, room.current_index)
            if key == self._countdown_key:
                return
            self._cancel_countdown()
            self._countdown_key = key
            self.time_left = room.time_per_question
            self._countdown = asyncio.get_running_loop().create_task(
                self._run_countdown(key), name=f"countdown-{room.code}-{room.current_index}"
            )
        else:
            self._cancel_countdown()
            self._countdown_key = None
            self.time_left = 0

    def _cancel_countdown(self):
        task = self._countdown
        self._countdown = None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()

    async def _stop_countdown(self):
        task = self._countdown
        self._cancel_countdown()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _run_countdown(self, key: Tuple[str, int]):
        while self.time_left > 0:
            await asyncio.sleep(self._tick)
            self.time_left -= 1
        # Detach before acting so a resulting state change cannot cancel us
        if self._countdown is asyncio.current_task():
            self._countdown = None
        await self._on_time_up(key)

    async def _on_time_up(self, key: Tuple[str, int]):
        """Players just wait for the host's results."""

    # ------------------------------
    # Shared actions
    # ------------------------------
    async def watch(self, code: str) -> Room:
        """Load a room and follow it without joining."""
        room = await self.store.get(code)
        if room is None:
            raise RoomNotFound(normalize_code(code))
        self.handle_update(room)
        self._watch(room.code)
        return room

    async def submit_answer(self, answer_index: int) -> Room:
        if self.room is None or self.session_player_id is None:
            raise InvalidAction("Join a room before answering")
        updated = room_state.submit_answer(self.room, self.session_player_id, answer_index, self.time_left)
        return await self._commit(updated)


class PlayerController(RoomController):
    role = Role.PLAYER

    async def join(self, code: str, name: str, share_token: Optional[str] = None) -> Room:
        """
        Append this client as a new player. When the store does not know the
        code but the share link carries a config for it, the lobby is
        recreated from that config first.
        """
        key = normalize_code(code)
        room = await self.store.get(key)

        if room is None and share_token:
            config = decode_room_config(share_token)
            if config and normalize_code(str(config["code"])) == key:
                logger.info("🔧 Recreating room %s from share link", key)
                try:
                    room = room_state.room_from_share_config(config)
                except InvalidConfig as e:
                    logger.warning("⚠️ Rejected share link for room %s: %s", key, e)
                    raise
                await self._persist(room)

        if room is None:
            logger.info("❌ Room %s not found", key)
            raise RoomNotFound(key)

        player_id = new_player_id()
        updated = room_state.join_room(room, player_id, name)
        self.session_player_id = player_id
        await self._commit(updated)
        self._watch(key)
        logger.info("✅ Joined room %s as %s (%s players)", key, name, len(updated.players))
        return updated


class HostController(RoomController):
    role = Role.HOST

    def __init__(self, store, notifier: RoomNotifier, questions, *,
                 generation_timeout: float = Config.GENERATION_TIMEOUT_SEC, **kwargs):
        super().__init__(store, notifier, **kwargs)
        self.questions = questions
        self.generation_timeout = generation_timeout
        self.generate_ai_theme = False

    @property
    def share_token(self) -> Optional[str]:
        if self.room is None:
            return None
        return encode_room_config(room_state.share_config(self.room))

    async def create_room(self, setup: RoomSetup) -> Room:
        room = room_state.create_room(setup, new_room_code(), new_player_id("host"))
        self.session_player_id = room.players[0].id
        self.generate_ai_theme = setup.game_mode == GameMode.CUSTOM and setup.generate_ai_theme
        await self._commit(room)
        self._watch(room.code)
        logger.info("✅ Room %s created by %s", room.code, room.host_name)
        return room

    async def start_game(self) -> Room:
        """
        Show the loading state everywhere, fetch questions, open question one.
        A failed or slow generator is replaced by the fallback bank so the
        room never stays in `generating`.
        """
        generating = room_state.begin_generation(self._require_room(), self.role)
        await self._commit(generating)

        questions, generated_theme = await self._generate(generating)

        # Keep players who joined while we were waiting
        latest = self.room
        base = latest if latest is not None and latest.code == generating.code \
            and latest.status == RoomStatus.GENERATING else generating
        updated = room_state.begin_questions(base, self.role, questions, generated_theme)
        logger.info("🚀 Room %s started with %s questions", updated.code, len(questions))
        return await self._commit(updated)

    async def _generate(self, room: Room) -> Tuple[List[Question], Optional[str]]:
        player_names = [p.name for p in room.players] if room.game_mode == GameMode.PERSONALITY else None
        try:
            result = await asyncio.wait_for(
                self.questions.generate(
                    room.theme,
                    room.difficulty,
                    room.question_count,
                    room.ai_model,
                    game_mode=room.game_mode,
                    player_names=player_names,
                    generate_theme=self.generate_ai_theme,
                ),
                self.generation_timeout,
            )
            if not result.questions:
                raise GenerationFailure("No questions returned")
            return result.questions, result.generated_theme
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning("⚠️ Question generation failed, using fallback set: %s", e)
            return fallback_questions(room.game_mode, room.question_count, offset=1,
                                      player_names=player_names), None

    def _require_room(self) -> Room:
        if self.room is None:
            raise InvalidAction("Create a room first")
        return self.room

    async def end_question(self) -> Room:
        updated = room_state.end_question(self._require_room(), self.role)
        logger.info("🏁 Room %s question %s scored: %s", updated.code, updated.current_index + 1, updated.last_gain)
        return await self._commit(updated)

    async def next_question(self) -> Room:
        return await self._commit(room_state.next_question(self._require_room(), self.role))

    async def reset_scores(self, reset_points: bool = False) -> Room:
        return await self._commit(room_state.reset_scores(self._require_room(), self.role, reset_points))

    async def _on_time_up(self, key: Tuple[str, int]):
        room = self.room
        if room is None or room.status != RoomStatus.QUESTION or (room.code, room.current_index) != key:
            return
        await self.end_question()
