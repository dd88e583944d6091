# party_trivia/db_models.py
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text

from party_trivia.database import Base


def utcnow():
    return datetime.now(timezone.utc)


class DBRoom(Base):
    """
    One row per live room, keyed by the upper-cased room code.
    Maps to the 'rooms' table. Every write replaces the whole row.
    """
    __tablename__ = "rooms"

    code = Column(String(12), primary_key=True)
    host_name = Column(String(100), nullable=False)
    game_mode = Column(String(20), default="standard", nullable=False)
    theme = Column(Text, nullable=False)
    generated_theme = Column(Text, nullable=True)
    ai_model = Column(String(50), nullable=False)
    difficulty = Column(String(20), default="medium", nullable=False)
    question_count = Column(Integer, nullable=False)
    time_per_question = Column(Integer, nullable=False)
    players = Column(JSON, nullable=False, default=list)
    questions = Column(JSON, nullable=False, default=list)
    current_index = Column(Integer, default=0, nullable=False)
    status = Column(String(20), default="lobby", nullable=False)
    responses = Column(JSON, nullable=False, default=dict)
    last_gain = Column(JSON, nullable=False, default=dict)

    # Last-modified marker watched by the event stream
    revision = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
