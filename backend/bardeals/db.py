# backend/bardeals/db.py
"""Database engine, session factory and base model setup."""

from __future__ import annotations

from typing import Generator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker


def normalize_db_url(url: str) -> str:
    """Normalize common Postgres URLs to the psycopg2 driver form."""
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg2://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg2://", 1)
    return url


def make_engine(database_url: str) -> Engine:
    db_url = normalize_db_url(database_url)
    is_sqlite = db_url.startswith("sqlite")
    return create_engine(
        db_url,
        echo=False,
        future=True,
        pool_pre_ping=True,
        connect_args=({} if not is_sqlite else {"check_same_thread": False}),
    )


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""
    pass


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    FastAPI dependency that yields a session per request
    and guarantees it is closed afterwards.
    """
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
