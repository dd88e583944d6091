# party_trivia/routes/questions.py
import logging

from fastapi import APIRouter, Depends, HTTPException

from party_trivia.config import Config
from party_trivia.models import AI_MODELS, DIFFICULTY_POINTS, GAME_MODES, THEMES
from party_trivia.questions import QuestionGenerator
from party_trivia.schemas import GenerateQuestionsRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")
question_generator = QuestionGenerator()


def get_generator() -> QuestionGenerator:
    return question_generator


@router.get("/options")
def get_options():
    """Everything the room setup form offers."""
    return {
        "aiModels": AI_MODELS,
        "defaultAiModel": Config.DEFAULT_AI_MODEL,
        "gameModes": {mode.value: description for mode, description in GAME_MODES.items()},
        "themes": THEMES,
        "difficulties": {level.value: points for level, points in DIFFICULTY_POINTS.items()},
    }


@router.post("/generate-questions")
async def generate_questions(req: GenerateQuestionsRequest,
                             generator: QuestionGenerator = Depends(get_generator)):
    if not req.theme.strip():
        raise HTTPException(status_code=400, detail="Missing required field: theme")
    if not Config.QUESTION_COUNT_MIN <= req.count <= Config.QUESTION_COUNT_MAX:
        raise HTTPException(
            status_code=400,
            detail=f"Count must be between {Config.QUESTION_COUNT_MIN} and {Config.QUESTION_COUNT_MAX}",
        )

    model = req.ai_model or Config.DEFAULT_AI_MODEL
    logger.info("🧠 Generating %s %s questions about %s using %s (mode: %s)",
                req.count, req.difficulty.value, req.theme, model, req.game_mode.value)

    result = await generator.generate(
        req.theme,
        req.difficulty,
        req.count,
        model,
        game_mode=req.game_mode,
        player_names=req.player_names,
        generate_theme=req.should_generate_theme,
    )
    return result.to_dict()
