import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlmodel import select

from app.api.db.database import get_session_factory
from app.api.modules.v1.users.models.users_model import User

logger = logging.getLogger(__name__)


class UserDirectory:
    """Lookups over local users and their connected Stripe accounts."""

    def __init__(self, session_factory: Optional[async_sessionmaker] = None):
        self.session_factory = session_factory or get_session_factory()

    async def get(self, user_id: uuid.UUID) -> Optional[User]:
        async with self.session_factory() as session:
            return await session.get(User, user_id)

    async def find_by_stripe_account(self, stripe_account_id: str) -> List[User]:
        """Return every user bound to ``stripe_account_id``; may be empty."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(User).where(User.stripe_account_id == stripe_account_id)
            )
            return list(result.scalars().all())

    async def bind_stripe_account(
        self, user_id: uuid.UUID, stripe_account_id: Optional[str]
    ) -> Optional[User]:
        """
        Bind (or unbind, with ``None``) a Stripe account to a user.

        Returns:
            The updated user, or None if the user does not exist.
        """
        async with self.session_factory() as session:
            user = await session.get(User, user_id)
            if user is None:
                logger.warning("Cannot bind Stripe account, user %s not found", user_id)
                return None

            user.stripe_account_id = stripe_account_id
            user.updated_at = datetime.now(timezone.utc)
            session.add(user)
            await session.commit()
            await session.refresh(user)

        logger.info("User %s bound to Stripe account %s", user_id, stripe_account_id)
        return user


def get_user_directory() -> UserDirectory:
    return UserDirectory()
