import pytest
from sqlmodel import select

from app.api.db import database
from app.api.modules.v1.users.models.users_model import User


def test_postgres_url(monkeypatch):
    monkeypatch.setattr(database, "DB_TYPE", "postgresql")
    monkeypatch.setattr(database, "DB_USER", "rackz")
    monkeypatch.setattr(database, "DB_PASS", "secret")
    monkeypatch.setattr(database, "DB_HOST", "db")
    monkeypatch.setattr(database, "DB_PORT", 5432)
    monkeypatch.setattr(database, "DB_NAME", "rackz")

    assert database.get_db_url() == "postgresql+asyncpg://rackz:secret@db:5432/rackz"


def test_sqlite_urls(monkeypatch):
    monkeypatch.setattr(database, "DB_TYPE", "sqlite")

    assert database.get_db_url().startswith("sqlite+aiosqlite:///")
    assert database.get_db_url().endswith("db.sqlite3")
    assert database.get_db_url(test_mode=True).endswith("test.db")


def test_services_share_the_application_session_factory():
    assert database.get_session_factory() is database.AsyncSessionLocal


@pytest.mark.asyncio
async def test_database_write_and_read(session_factory):
    """Test writing and reading a User from the database."""
    async with session_factory() as session:
        session.add(User(email="john@example.com", name="John Doe", stripe_account_id="acct_1"))
        await session.commit()

    async with session_factory() as session:
        result = await session.execute(select(User))
        saved_user = result.scalars().first()

    assert saved_user is not None
    assert saved_user.name == "John Doe"
    assert saved_user.stripe_account_id == "acct_1"
    assert saved_user.is_admin is False
