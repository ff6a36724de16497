"""Database session management for split flow storage"""

from functools import lru_cache
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from splitpay_gateway.config import settings
from splitpay_gateway.infrastructure.database.models import Base


def build_engine(database_url: str) -> Engine:
    """Create an engine; pooled for server databases, thread-shareable for SQLite"""
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})

    # Pool: up to 20 connections, recycled hourly
    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=10,
        pool_recycle=3600,
    )


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return build_engine(settings.database_url)


@lru_cache(maxsize=1)
def get_sessionmaker() -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


def init_db() -> None:
    """Create the split_flow table if it does not exist"""
    Base.metadata.create_all(bind=get_engine())


def get_db() -> Iterator[Session]:
    """Dependency injection for database sessions"""
    db = get_sessionmaker()()
    try:
        yield db
    finally:
        db.close()
