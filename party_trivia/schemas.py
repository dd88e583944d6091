# party_trivia/schemas.py
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from party_trivia.models import DEFAULT_AI_MODEL, THEMES, Difficulty, GameMode, Question


class RoomSetup(BaseModel):
    """Host form input for a new room. Bounds are checked by the state machine."""
    model_config = ConfigDict(populate_by_name=True)

    host_name: str = Field("Host", alias="hostName")
    game_mode: GameMode = Field(GameMode.STANDARD, alias="gameMode")
    theme: str = THEMES[0]
    custom_theme: Optional[str] = Field(None, alias="customTheme")
    generate_ai_theme: bool = Field(False, alias="generateAITheme")
    ai_model: str = Field(DEFAULT_AI_MODEL, alias="aiModel")
    difficulty: Difficulty = Difficulty.MEDIUM
    question_count: int = Field(8, alias="questionCount")
    time_per_question: int = Field(8, alias="timePerQuestion")


class GenerateQuestionsRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    theme: str
    difficulty: Difficulty
    count: int
    ai_model: Optional[str] = Field(None, alias="aiModel")
    game_mode: GameMode = Field(GameMode.STANDARD, alias="gameMode")
    player_names: Optional[List[str]] = Field(None, alias="playerNames")
    should_generate_theme: bool = Field(False, alias="shouldGenerateTheme")


class GenerateQuestionsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    questions: List[Question]
    generated_theme: Optional[str] = Field(None, alias="generatedTheme")

    def to_dict(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class SaveRoomResponse(BaseModel):
    success: bool
