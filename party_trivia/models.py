# party_trivia/models.py
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class RoomStatus(str, Enum):
    LOBBY = "lobby"
    GENERATING = "generating"
    QUESTION = "question"
    RESULTS = "results"
    FINAL = "final"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"
    IMPOSSIBLE = "impossible"


class GameMode(str, Enum):
    STANDARD = "standard"
    EMOJI = "emoji"
    PERSONALITY = "personality"
    CUSTOM = "custom"


class Role(str, Enum):
    """Capability a client acts with. Host-only transitions require HOST."""
    HOST = "host"
    PLAYER = "player"


DIFFICULTY_POINTS: Dict[Difficulty, int] = {
    Difficulty.EASY: 10,
    Difficulty.MEDIUM: 20,
    Difficulty.HARD: 35,
    Difficulty.IMPOSSIBLE: 50,
}

DEFAULT_AI_MODEL = "gpt-4o-mini"

AI_MODELS = [
    {"id": "gpt-5.1", "name": "GPT-5.1 (Flagship)", "description": "Best for rich story, complex questions"},
    {"id": "gpt-4.1", "name": "GPT-4.1", "description": "Strong general model for detailed content"},
    {"id": "gpt-4.1-mini", "name": "GPT-4.1 Mini", "description": "Cheaper, good enough for most questions"},
    {"id": DEFAULT_AI_MODEL, "name": "GPT-4o Mini (Fast)", "description": "Fast + cheap, great for quick trivia"},
    {"id": "gpt-5.1-mini", "name": "GPT-5.1 Mini", "description": "Good balance of speed & quality"},
    {"id": "o4-mini", "name": "O4 Mini (Reasoning)", "description": "Best for puzzles & logic questions"},
]

GAME_MODES = {
    GameMode.STANDARD: "Classic multiple-choice trivia with themes",
    GameMode.EMOJI: "Decode emojis into answers",
    GameMode.PERSONALITY: "Vote on which player fits best (popular vote)",
    GameMode.CUSTOM: "Create your own theme or let AI surprise you",
}

THEMES = [
    "General Knowledge",
    "History",
    "Geography",
    "Movies",
    "TV Shows",
    "Music",
    "Sports",
    "Science",
    "Technology",
    "Video Games",
    "Internet Culture & Memes",
    "Animals & Nature",
    "Food & Cooking",
    "Travel & World Cities",
    "Literature & Books",
    "Art & Famous Paintings",
    "Fashion & Style",
    "Business & Startups",
    "Crypto & Web3",
    "Fitness & Health",
    "Guess the Emoji Meaning",
    "Name That Song",
    "Riddles & Brain Teasers",
    "This or That",
]


class WireModel(BaseModel):
    """
    Base for everything exchanged between clients and the store.
    Field names are snake_case in Python and camelCase on the wire.
    """
    model_config = ConfigDict(populate_by_name=True, use_enum_values=False)

    def to_dict(self) -> dict:
        """Convert to the JSON wire document (optional fields omitted when unset)"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Player(WireModel):
    id: str
    name: str
    score: int = 0


class Question(WireModel):
    question: str
    choices: List[str]
    correct_index: int = Field(0, alias="correctIndex")
    explanation: Optional[str] = None


class Response(WireModel):
    answer_index: int = Field(..., alias="answerIndex")
    remaining: float = 0
    voted_for: Optional[str] = Field(None, alias="votedFor")


class Room(WireModel):
    code: str
    host_name: str = Field(..., alias="hostName")
    game_mode: GameMode = Field(GameMode.STANDARD, alias="gameMode")
    theme: str
    generated_theme: Optional[str] = Field(None, alias="generatedTheme")
    ai_model: str = Field(DEFAULT_AI_MODEL, alias="aiModel")
    difficulty: Difficulty = Difficulty.MEDIUM
    question_count: int = Field(..., alias="questionCount")
    time_per_question: int = Field(..., alias="timePerQuestion")
    players: List[Player] = Field(default_factory=list)
    questions: List[Question] = Field(default_factory=list)
    current_index: int = Field(0, alias="currentIndex")
    status: RoomStatus = RoomStatus.LOBBY
    responses: Dict[str, Response] = Field(default_factory=dict)
    last_gain: Dict[str, int] = Field(default_factory=dict, alias="lastGain")

    @property
    def current_question(self) -> Optional[Question]:
        if 0 <= self.current_index < len(self.questions):
            return self.questions[self.current_index]
        return None

    @property
    def is_last_question(self) -> bool:
        return self.current_index >= len(self.questions) - 1

    def find_player(self, player_id: str) -> Optional[Player]:
        return next((p for p in self.players if p.id == player_id), None)

    @classmethod
    def from_dict(cls, data: dict) -> "Room":
        return cls.model_validate(data)
