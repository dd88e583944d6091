# party_trivia/questions.py
import json
import logging
import random
from typing import Any, List, Optional

from party_trivia.config import Config
from party_trivia.errors import GenerationFailure
from party_trivia.models import Difficulty, GameMode, Question
from party_trivia.schemas import GenerateQuestionsResponse

logger = logging.getLogger(__name__)

FALLBACK_BANK = [
    Question(question="Which planet is known as the Red Planet?",
             choices=["Mars", "Venus", "Jupiter", "Mercury"], correct_index=0),
    Question(question="What is the capital of Australia?",
             choices=["Sydney", "Melbourne", "Canberra", "Perth"], correct_index=2),
    Question(question="Which composer wrote the Four Seasons?",
             choices=["Mozart", "Vivaldi", "Bach", "Beethoven"], correct_index=1),
    Question(question="What does CPU stand for?",
             choices=["Central Processing Unit", "Computer Personal Utility",
                      "Central Parallel Utility", "Core Processing Usage"], correct_index=0),
    Question(question='Which movie features the quote "May the Force be with you"?',
             choices=["Star Trek", "Avatar", "Star Wars", "Dune"], correct_index=2),
]

EMOJI_FALLBACK_BANK = [
    Question(question="🦁👑", choices=["The Lion King", "The Jungle Book", "Madagascar", "Tarzan"], correct_index=0),
    Question(question="🧪⚗️👨‍🔬", choices=["Biology", "Physics", "Chemistry", "Medicine"], correct_index=2),
    Question(question="🍕🇮🇹", choices=["Pizza", "Pasta", "Gelato", "Risotto"], correct_index=0),
    Question(question="🎸🎵🎤", choices=["Concert", "Orchestra", "Opera", "Musical"], correct_index=0),
    Question(question="🏀🏆🏅", choices=["Basketball Championship", "Soccer Finals",
                                        "Tennis Tournament", "Baseball League"], correct_index=0),
]

PERSONALITY_FALLBACK_PROMPTS = [
    "Who is most likely to be late?",
    "Who would survive longest on a desert island?",
    "Who is most likely to become famous?",
    "Who would win a dance battle?",
    "Who is most likely to forget their own birthday?",
]

FALLBACK_THEMES = [
    "Trivia from the year 2000",
    "Questions only a pirate would know",
    "Impossible facts about breakfast cereals",
    "Facts stranger than fiction",
]

DEFAULT_PLAYER_NAMES = ["Player 1", "Player 2", "Player 3", "Player 4"]

SYSTEM_PROMPT = "You generate lively multiple-choice trivia. Answer ONLY with valid JSON."
THEME_SYSTEM_PROMPT = "You create unique, creative, and fun trivia themes that players have never seen before."


def fallback_questions(game_mode: GameMode, count: int, offset: int = 0,
                       player_names: Optional[List[str]] = None) -> List[Question]:
    """Deterministic question set used whenever the model is unavailable."""
    if game_mode == GameMode.PERSONALITY:
        names = list(player_names or DEFAULT_PLAYER_NAMES)
        prompts = PERSONALITY_FALLBACK_PROMPTS
        return [
            Question(question=prompts[(i + offset) % len(prompts)], choices=names, correct_index=0)
            for i in range(count)
        ]
    bank = EMOJI_FALLBACK_BANK if game_mode == GameMode.EMOJI else FALLBACK_BANK
    return [bank[(i + offset) % len(bank)].model_copy(deep=True) for i in range(count)]


def parse_json_from_text(text: str) -> Optional[Any]:
    """Pull a JSON value out of a model reply that may be wrapped in code fences."""
    cleaned = (text or "").strip()
    if cleaned.startswith("```"):
        lines = [line for line in cleaned.splitlines() if not line.strip().startswith("```")]
        cleaned = "\n".join(lines).strip()
    starts = [idx for idx in (cleaned.find("["), cleaned.find("{")) if idx != -1]
    if starts:
        cleaned = cleaned[min(starts):]
    end_idx = max(cleaned.rfind("]"), cleaned.rfind("}"))
    if end_idx != -1:
        cleaned = cleaned[: end_idx + 1]
    try:
        return json.loads(cleaned)
    except ValueError:
        return None


def coerce_questions(data: Any, game_mode: GameMode, count: int) -> List[Question]:
    """Validate model output item by item, dropping anything malformed."""
    if not isinstance(data, list):
        raise GenerationFailure("Model response was not a JSON list")
    questions: List[Question] = []
    for i, item in enumerate(data):
        if not isinstance(item, dict):
            continue
        text = str(item.get("question", "")).strip()
        choices = item.get("choices")
        if not text or not isinstance(choices, list) or len(choices) < 2:
            logger.warning("⚠️ Skipping invalid question %s", i)
            continue
        choices = [str(c) for c in choices]
        if game_mode == GameMode.PERSONALITY:
            # Popular vote decides; the index is only a placeholder
            correct_index = 0
        else:
            correct_index = item.get("correctIndex")
            if not isinstance(correct_index, int) or not 0 <= correct_index < len(choices):
                logger.warning("⚠️ Skipping question %s with bad correctIndex", i)
                continue
        explanation = item.get("explanation")
        questions.append(Question(
            question=text,
            choices=choices,
            correct_index=correct_index,
            explanation=str(explanation) if explanation else None,
        ))
    if not questions:
        raise GenerationFailure("Model returned no usable questions")
    return questions[:count]


def build_prompt(theme: str, difficulty: Difficulty, count: int, game_mode: GameMode,
                 player_names: Optional[List[str]] = None) -> str:
    difficulty = Difficulty(difficulty).value
    if game_mode == GameMode.EMOJI:
        return (
            f"Create {count} {difficulty} emoji decoder questions. Each question should be a series of "
            "emojis (2-5 emojis) that represent a famous movie, book, song, place, concept, or phrase. "
            "The choices should be text answers where one is correct. Respond with a JSON array where "
            'each item has {"question": string (ONLY emojis), "choices": [4 strings], "correctIndex": 0-3}. '
            "Vary the categories (movies, places, concepts, songs, books, etc)."
        )
    if game_mode == GameMode.PERSONALITY:
        names = player_names or DEFAULT_PLAYER_NAMES
        return (
            f'Create {count} fun "most likely to" or personality questions about these players: '
            f"{', '.join(names)}. Each question should be about which player would do something or has "
            "a certain trait. The choices should be the player names. Do NOT include a correctIndex field, "
            "this is a popular vote game. Respond with a JSON array where each item has "
            '{"question": string, "choices": [all player names as strings]}.'
        )
    return (
        f"Create {count} {difficulty} trivia questions about {theme}. Respond with a JSON array where "
        'each item has {"question": string, "choices": [4 strings], "correctIndex": 0-3}. '
        "Keep text concise."
    )


class QuestionGenerator:
    """
    Question source backed by the OpenAI chat completions API.
    Falls back to the built-in banks when no key is configured or the call fails,
    so generate() always returns a usable question list.
    """

    def __init__(self, client=None, api_key: Optional[str] = None):
        self._client = client
        self._api_key = api_key if api_key is not None else Config.OPENAI_API_KEY

    @property
    def available(self) -> bool:
        if self._client is not None:
            return True
        key = (self._api_key or "").strip()
        return bool(key) and key != "YOUR_KEY_HERE"

    def _get_client(self):
        if self._client is None:
            from openai import AsyncOpenAI

            self._client = AsyncOpenAI(api_key=self._api_key)
        return self._client

    async def _complete(self, model: str, system: str, prompt: str, **kwargs) -> str:
        client = self._get_client()
        resp = await client.chat.completions.create(
            model=model,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            **kwargs,
        )
        return resp.choices[0].message.content or ""

    async def generate_theme(self, model: str) -> str:
        if not self.available:
            return random.choice(FALLBACK_THEMES)
        try:
            content = await self._complete(
                model,
                THEME_SYSTEM_PROMPT,
                "Generate ONE unique and creative trivia theme that would be fun for a party quiz game. "
                "Make it quirky, unexpected, and engaging. Respond with ONLY the theme name, nothing else.",
                temperature=1.0,
                max_tokens=50,
            )
            theme = content.strip().strip('"') or "Random Trivia"
            logger.info("🎲 Generated unique theme: %s", theme)
            return theme
        except Exception as e:
            logger.error("❌ Failed to generate theme: %s", e)
            return "Surprise Trivia Challenge"

    async def generate(self, theme: str, difficulty: Difficulty, count: int, model_id: Optional[str] = None,
                       *, game_mode: GameMode = GameMode.STANDARD, player_names: Optional[List[str]] = None,
                       generate_theme: bool = False) -> GenerateQuestionsResponse:
        model = model_id or Config.DEFAULT_AI_MODEL
        game_mode = GameMode(game_mode)

        actual_theme = theme
        generated_theme = None
        if game_mode == GameMode.CUSTOM and generate_theme:
            generated_theme = await self.generate_theme(model)
            actual_theme = generated_theme

        if not self.available:
            logger.info("📚 No OpenAI key, using fallback questions")
            return GenerateQuestionsResponse(
                questions=fallback_questions(game_mode, count, player_names=player_names),
                generated_theme=generated_theme,
            )

        try:
            prompt = build_prompt(actual_theme, difficulty, count, game_mode, player_names)
            content = await self._complete(model, SYSTEM_PROMPT, prompt, temperature=0.8)
            questions = coerce_questions(parse_json_from_text(content), game_mode, count)
            logger.info("✅ Generated %s questions from %s", len(questions), model)
        except Exception as e:
            logger.error("❌ OpenAI fetch failed, using fallback: %s", e)
            questions = fallback_questions(game_mode, count, offset=1, player_names=player_names)

        return GenerateQuestionsResponse(questions=questions, generated_theme=generated_theme)
