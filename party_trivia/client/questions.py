# party_trivia/client/questions.py
from typing import List, Optional

import httpx

from party_trivia.errors import GenerationFailure
from party_trivia.models import Difficulty, GameMode
from party_trivia.schemas import GenerateQuestionsRequest, GenerateQuestionsResponse


class HttpQuestionSource:
    """Asks the /api/generate-questions route for a question set."""

    def __init__(self, client: httpx.AsyncClient):
        self._client = client

    async def generate(self, theme: str, difficulty: Difficulty, count: int, model_id: Optional[str] = None,
                       *, game_mode: GameMode = GameMode.STANDARD, player_names: Optional[List[str]] = None,
                       generate_theme: bool = False) -> GenerateQuestionsResponse:
        body = GenerateQuestionsRequest(
            theme=theme,
            difficulty=difficulty,
            count=count,
            ai_model=model_id,
            game_mode=game_mode,
            player_names=player_names,
            should_generate_theme=generate_theme,
        ).model_dump(mode="json", by_alias=True, exclude_none=True)

        try:
            resp = await self._client.post("/api/generate-questions", json=body)
        except httpx.HTTPError as e:
            raise GenerationFailure(f"Question service unreachable: {e}") from e
        if resp.is_error:
            raise GenerationFailure(f"Question service failed with {resp.status_code}")

        result = GenerateQuestionsResponse.model_validate(resp.json())
        if not result.questions:
            raise GenerationFailure("Question service returned no questions")
        return result
