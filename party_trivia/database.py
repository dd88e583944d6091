# party_trivia/database.py
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from party_trivia.config import Config


def make_engine(url: Optional[str] = None):
    url = url or Config.DATABASE_URL
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args, pool_pre_ping=True)


# Create the database engine
engine = make_engine()

# Create a session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for all models
Base = declarative_base()


def init_db(bind=None):
    """Create the rooms table if it does not exist yet."""
    # Import so the model registers itself on Base.metadata
    from party_trivia import db_models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)

