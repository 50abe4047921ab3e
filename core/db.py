"""Engine, session factory and declarative base shared by jobs and the API"""
from pydantic_settings import BaseSettings
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

IN_MEMORY_SQLITE = ("sqlite://", "sqlite:///:memory:")


class DatabaseSettings(BaseSettings):
    """DATABASE_URL is required; everything else has a default"""
    database_url: str
    database_echo: bool = False

    class Config:
        env_file = ".env"
        extra = "ignore"


def build_engine(url: str, echo: bool = False) -> Engine:
    """
    PostgreSQL in production, SQLite for local runs and tests.

    An in-memory SQLite database lives in a single connection, so every
    session has to share it.
    """
    if url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        if url in IN_MEMORY_SQLITE:
            options["poolclass"] = StaticPool
        return create_engine(url, echo=echo, **options)

    return create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,
        pool_recycle=300
    )


db_settings = DatabaseSettings()
engine = build_engine(db_settings.database_url, db_settings.database_echo)

# Stages take this as their default session_factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()
