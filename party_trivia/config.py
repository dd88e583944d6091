# party_trivia/config.py
import os


class Config:
    # Storage
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./party_trivia.db")

    # Server
    HOST = os.getenv("HOST", "0.0.0.0")
    PORT = int(os.getenv("PORT", "8000"))
    CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Question generation
    OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "")
    DEFAULT_AI_MODEL = os.getenv("DEFAULT_AI_MODEL", "gpt-4o-mini")
    GENERATION_TIMEOUT_SEC = float(os.getenv("GENERATION_TIMEOUT_SEC", "30"))

    # Room setup bounds
    QUESTION_COUNT_MIN = int(os.getenv("QUESTION_COUNT_MIN", "1"))
    QUESTION_COUNT_MAX = int(os.getenv("QUESTION_COUNT_MAX", "20"))
    TIME_PER_QUESTION_MIN = int(os.getenv("TIME_PER_QUESTION_MIN", "1"))
    TIME_PER_QUESTION_MAX = int(os.getenv("TIME_PER_QUESTION_MAX", "120"))

    # Synchronization
    STREAM_CHECK_INTERVAL_MS = int(os.getenv("STREAM_CHECK_INTERVAL_MS", "300"))
    PUSH_TIMEOUT_MS = int(os.getenv("PUSH_TIMEOUT_MS", "3000"))
    POLL_INTERVAL_MS = int(os.getenv("POLL_INTERVAL_MS", "500"))
    COUNTDOWN_TICK_SEC = float(os.getenv("COUNTDOWN_TICK_SEC", "1"))

