# tests/factories.py
import asyncio

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from party_trivia.database import Base
from party_trivia import db_models  # noqa: F401
from party_trivia.errors import PersistenceFailure
from party_trivia.models import Difficulty, GameMode, Player, Question, Room, RoomStatus
from party_trivia.room_store import RoomRepository


def make_question(correct_index=0, text="Which planet is known as the Red Planet?"):
    return Question(question=text, choices=["Mars", "Venus", "Jupiter", "Mercury"], correct_index=correct_index)


def make_room(code="ABCDE", players=("host-1",), questions=1, status=RoomStatus.LOBBY,
              difficulty=Difficulty.MEDIUM, game_mode=GameMode.STANDARD, time_per_question=8):
    return Room(
        code=code,
        host_name="Nico",
        game_mode=game_mode,
        theme="General Knowledge",
        difficulty=difficulty,
        question_count=max(questions, 1),
        time_per_question=time_per_question,
        players=[Player(id=pid, name=pid.split("-")[0].title() + pid[-1]) for pid in players],
        questions=[make_question() for _ in range(questions)],
        status=status,
    )


def make_repository() -> RoomRepository:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return RoomRepository(sessionmaker(autocommit=False, autoflush=False, bind=engine))


class MemoryStore:
    """Async get/put over a dict, with switches to simulate outages."""

    def __init__(self):
        self.rooms = {}
        self.puts = []
        self.gets = 0
        self.fail_puts = False
        self.fail_gets = None

    async def get(self, code):
        self.gets += 1
        if self.fail_gets is not None:
            raise self.fail_gets
        doc = self.rooms.get(code.upper())
        return Room.from_dict(doc) if doc is not None else None

    async def put(self, room):
        if self.fail_puts:
            raise PersistenceFailure("store rejected write")
        self.puts.append(room)
        self.rooms[room.code.upper()] = room.to_dict()


async def wait_until(predicate, timeout=2.0, interval=0.005):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(interval)
