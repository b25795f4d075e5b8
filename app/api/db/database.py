from pathlib import Path
from typing import Any, Dict

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from app.api.core.config import settings

BASE_DIR = Path(__file__).resolve().parent

DB_HOST = settings.DB_HOST
DB_PORT = settings.DB_PORT
DB_USER = settings.DB_USER
DB_PASS = settings.DB_PASS
DB_NAME = settings.DB_NAME
DB_TYPE = settings.DB_TYPE


def get_db_url(test_mode: bool = False) -> str:
    """
    Async database URL: asyncpg for Postgres, aiosqlite for local and test runs.
    """
    if DB_TYPE == "sqlite" or test_mode:
        db_file = "test.db" if test_mode else "db.sqlite3"
        return f"sqlite+aiosqlite:///{BASE_DIR}/{db_file}"

    return f"postgresql+asyncpg://{DB_USER}:{DB_PASS}@{DB_HOST}:{DB_PORT}/{DB_NAME}"


def _engine_options(url: str) -> Dict[str, Any]:
    # Webhook fan-out opens one session per bound user at once
    if url.startswith("postgresql"):
        return {
            "pool_size": settings.DB_POOL_SIZE,
            "max_overflow": settings.DB_MAX_OVERFLOW,
            "pool_pre_ping": True,
        }
    return {"connect_args": {"timeout": 30}}


DATABASE_URL = get_db_url()

engine = create_async_engine(
    DATABASE_URL,
    echo=settings.DB_ECHO,
    **_engine_options(DATABASE_URL),
)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = SQLModel


async def get_db():
    """Request-scoped session, committed when the handler returns without error."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_session_factory() -> async_sessionmaker:
    """Session factory used by services that open their own units of work."""
    return AsyncSessionLocal
