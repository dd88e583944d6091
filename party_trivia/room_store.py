# party_trivia/room_store.py
import logging
from typing import NamedTuple, Optional

from sqlalchemy.orm import Session

from party_trivia.database import SessionLocal
from party_trivia.db_models import DBRoom, utcnow
from party_trivia.ids import normalize_code
from party_trivia.models import Room

logger = logging.getLogger(__name__)


class StoredRoom(NamedTuple):
    room: Room
    revision: int


class RoomRepository:
    """
    Server-side store adapter: get/put of whole room documents.
    There is no compare-and-swap; the last put wins.
    """

    def __init__(self, session_factory=SessionLocal):
        self._session_factory = session_factory

    def _get_db(self) -> Session:
        """Get a new database session"""
        return self._session_factory()

    def get(self, code: str) -> Optional[Room]:
        stored = self.get_with_marker(code)
        return stored.room if stored else None

    def get_with_marker(self, code: str) -> Optional[StoredRoom]:
        """Load a room together with its last-modified marker."""
        db = self._get_db()
        try:
            db_room = db.get(DBRoom, normalize_code(code))
            if db_room is None:
                return None
            return StoredRoom(self._db_room_to_model(db_room), db_room.revision)
        finally:
            db.close()

    def put(self, room: Room, code: Optional[str] = None) -> int:
        """
        Insert or replace every column of the room row.
        Returns the new revision.
        """
        key = normalize_code(code or room.code)
        doc = room.to_dict()
        db = self._get_db()
        try:
            db_room = db.get(DBRoom, key)
            if db_room is None:
                db_room = DBRoom(code=key, revision=0)
                db.add(db_room)

            db_room.host_name = doc["hostName"]
            db_room.game_mode = doc["gameMode"]
            db_room.theme = doc["theme"]
            db_room.generated_theme = doc.get("generatedTheme")
            db_room.ai_model = doc["aiModel"]
            db_room.difficulty = doc["difficulty"]
            db_room.question_count = doc["questionCount"]
            db_room.time_per_question = doc["timePerQuestion"]
            db_room.players = doc["players"]
            db_room.questions = doc["questions"]
            db_room.current_index = doc["currentIndex"]
            db_room.status = doc["status"]
            db_room.responses = doc["responses"]
            db_room.last_gain = doc["lastGain"]
            db_room.revision = (db_room.revision or 0) + 1
            db_room.updated_at = utcnow()

            db.commit()
            logger.debug("💾 Saved room %s rev %s | players: %s",
                         key, db_room.revision, [p["name"] for p in doc["players"]])
            return db_room.revision
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def _db_room_to_model(self, db_room: DBRoom) -> Room:
        """Helper: convert a database row to the wire Room model."""
        data = {
            "code": db_room.code,
            "hostName": db_room.host_name,
            "gameMode": db_room.game_mode,
            "theme": db_room.theme,
            "aiModel": db_room.ai_model,
            "difficulty": db_room.difficulty,
            "questionCount": db_room.question_count,
            "timePerQuestion": db_room.time_per_question,
            "players": db_room.players or [],
            "questions": db_room.questions or [],
            "currentIndex": db_room.current_index or 0,
            "status": db_room.status,
            "responses": db_room.responses or {},
            "lastGain": db_room.last_gain or {},
        }
        if db_room.generated_theme:
            data["generatedTheme"] = db_room.generated_theme
        return Room.from_dict(data)
