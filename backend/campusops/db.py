"""Engine, session factory and the request-scoped unit of work."""

import os
from contextlib import contextmanager
from pathlib import Path

from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

# DATABASE_URL may come from the .env beside pyproject.toml.
load_dotenv(Path(__file__).resolve().parents[2] / ".env")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./campusops.db")


class Base(DeclarativeBase):
    pass


def build_engine(url: str):
    options = {"echo": False, "pool_pre_ping": True}
    if url.startswith("sqlite"):
        # Sessions are opened in the threadpool FastAPI runs sync routes on.
        options["connect_args"] = {"check_same_thread": False}
    return create_engine(url, **options)


engine = build_engine(DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


@contextmanager
def get_session():
    """Yield a session that commits when the block exits cleanly.

    Any exception rolls the whole request back, so a guard that fails after
    a flush leaves nothing behind.
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
