"""
Time-boxed read-through cache for Stripe data.

Each variant (charges, subscriptions, summary) has its own table with one live row
per (user, key) enforced by a unique constraint. A read that finds a row younger
than the TTL is served from the table; otherwise the upstream is queried and the
row is upserted, so concurrent misses for the same key collapse into one row.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional, Tuple, Type

from sqlalchemy import delete
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlmodel import SQLModel, select

from app.api.core.config import settings
from app.api.db.database import get_session_factory
from app.api.modules.v1.stripe_connect.errors import CacheWriteError
from app.api.modules.v1.stripe_connect.models.stripe_cache import (
    ALLOWED_RANGE_DAYS,
    StripeChargesCache,
    StripeSubscriptionsCache,
    StripeSummaryCache,
)
from app.api.modules.v1.stripe_connect.service.payment_fetcher import StripeDataFetcher

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

_DIALECT_INSERTS = {
    "postgresql": postgresql_insert,
    "sqlite": sqlite_insert,
}


class CacheVariant(str, Enum):
    CHARGES = "charges"
    SUBSCRIPTIONS = "subscriptions"
    SUMMARY = "summary"


@dataclass(frozen=True)
class _VariantTable:
    model: Type[SQLModel]
    payload_column: str
    key_columns: Tuple[str, ...]


_TABLES: Dict[CacheVariant, _VariantTable] = {
    CacheVariant.CHARGES: _VariantTable(StripeChargesCache, "charges", ("range_days",)),
    CacheVariant.SUBSCRIPTIONS: _VariantTable(StripeSubscriptionsCache, "subscriptions", ()),
    CacheVariant.SUMMARY: _VariantTable(
        StripeSummaryCache, "summary", ("range_days", "offset_days")
    ),
}


@dataclass(frozen=True)
class CacheKey:
    """Partition of a variant: charges by range, summary by range and offset."""

    variant: CacheVariant
    range_days: Optional[int] = None
    offset_days: Optional[int] = None

    def __post_init__(self):
        if self.variant is CacheVariant.SUBSCRIPTIONS:
            return
        if self.range_days not in ALLOWED_RANGE_DAYS:
            raise ValueError(f"range_days must be one of {list(ALLOWED_RANGE_DAYS)}")
        if self.variant is CacheVariant.SUMMARY and (self.offset_days or 0) < 0:
            raise ValueError("offset_days must not be negative")

    @classmethod
    def charges(cls, range_days: int) -> "CacheKey":
        return cls(CacheVariant.CHARGES, range_days=range_days)

    @classmethod
    def subscriptions(cls) -> "CacheKey":
        return cls(CacheVariant.SUBSCRIPTIONS)

    @classmethod
    def summary(cls, range_days: int, offset_days: int = 0) -> "CacheKey":
        return cls(CacheVariant.SUMMARY, range_days=range_days, offset_days=offset_days)

    def column_values(self) -> Dict[str, int]:
        values = {"range_days": self.range_days, "offset_days": self.offset_days or 0}
        return {name: values[name] for name in _TABLES[self.variant].key_columns}


@dataclass
class CachedPayload:
    variant: CacheVariant
    data: Any
    cached_at: datetime
    from_cache: bool
    used_source: Optional[str] = None
    key: Dict[str, int] = field(default_factory=dict)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything stored is UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def is_expired(cached_at: datetime, now: datetime, ttl: timedelta) -> bool:
    """An entry is expired once it is ``ttl`` old or older."""
    return _as_utc(now) - _as_utc(cached_at) >= ttl


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class StripeCacheService:
    def __init__(
        self,
        session_factory: Optional[async_sessionmaker] = None,
        fetcher: Optional[StripeDataFetcher] = None,
        ttl_seconds: Optional[int] = None,
        clock: Optional[Clock] = None,
    ):
        self.session_factory = session_factory or get_session_factory()
        self.fetcher = fetcher or StripeDataFetcher()
        self.ttl = timedelta(seconds=ttl_seconds or settings.STRIPE_CACHE_TTL_SECONDS)
        self.clock = clock or _utc_now

    async def get_or_fetch(
        self, user_id: uuid.UUID, stripe_account_id: str, key: CacheKey
    ) -> CachedPayload:
        """
        Serve a live cache row, or fetch from Stripe and upsert it.

        Raises:
            UpstreamFetchError: the miss could not be filled from Stripe.
            CacheWriteError: the fetched data could not be stored.
        """
        now = _as_utc(self.clock())
        table = _TABLES[key.variant]

        row = await self._read(table, user_id, stripe_account_id, key)
        if row is not None and not is_expired(row.cached_at, now, self.ttl):
            logger.debug("Cache hit %s for user %s", key, user_id)
            return CachedPayload(
                variant=key.variant,
                data=getattr(row, table.payload_column),
                cached_at=_as_utc(row.cached_at),
                from_cache=True,
                used_source=getattr(row, "used_source", None),
                key=key.column_values(),
            )

        logger.info("Cache miss %s for user %s, fetching from Stripe", key, user_id)
        data, used_source = await self._fetch(stripe_account_id, key, now)
        await self._upsert(table, user_id, stripe_account_id, key, data, used_source, now)

        return CachedPayload(
            variant=key.variant,
            data=data,
            cached_at=now,
            from_cache=False,
            used_source=used_source,
            key=key.column_values(),
        )

    async def get_charges(
        self, user_id: uuid.UUID, stripe_account_id: str, range_days: int
    ) -> CachedPayload:
        return await self.get_or_fetch(user_id, stripe_account_id, CacheKey.charges(range_days))

    async def get_subscriptions(self, user_id: uuid.UUID, stripe_account_id: str) -> CachedPayload:
        return await self.get_or_fetch(user_id, stripe_account_id, CacheKey.subscriptions())

    async def get_summary(
        self,
        user_id: uuid.UUID,
        stripe_account_id: str,
        range_days: int,
        offset_days: int = 0,
    ) -> CachedPayload:
        return await self.get_or_fetch(
            user_id, stripe_account_id, CacheKey.summary(range_days, offset_days)
        )

    async def purge_expired(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """Delete expired rows of every variant; returns deleted counts per variant."""
        threshold = _as_utc(now or self.clock()) - self.ttl
        deleted: Dict[str, int] = {}
        async with self.session_factory() as session:
            for variant, table in _TABLES.items():
                result = await session.execute(
                    delete(table.model).where(table.model.cached_at <= threshold)
                )
                deleted[variant.value] = result.rowcount or 0
            await session.commit()

        logger.info("Purged expired Stripe cache rows", extra=deleted)
        return deleted

    async def _read(
        self,
        table: _VariantTable,
        user_id: uuid.UUID,
        stripe_account_id: str,
        key: CacheKey,
    ) -> Optional[SQLModel]:
        model = table.model
        stmt = select(model).where(
            model.user_id == user_id, model.stripe_account_id == stripe_account_id
        )
        for column, value in key.column_values().items():
            stmt = stmt.where(getattr(model, column) == value)

        async with self.session_factory() as session:
            result = await session.execute(stmt)
            return result.scalars().first()

    async def _fetch(
        self, stripe_account_id: str, key: CacheKey, now: datetime
    ) -> Tuple[Any, Optional[str]]:
        if key.variant is CacheVariant.CHARGES:
            recent = await self.fetcher.fetch_charges(stripe_account_id, key.range_days, now)
            return [p.model_dump(mode="json") for p in recent.payments], recent.used_source

        if key.variant is CacheVariant.SUBSCRIPTIONS:
            subscriptions = await self.fetcher.fetch_subscriptions(stripe_account_id)
            return [s.model_dump(mode="json") for s in subscriptions], None

        summary = await self.fetcher.fetch_summary(
            stripe_account_id, key.range_days, key.offset_days or 0, now
        )
        return summary.model_dump(mode="json"), None

    async def _upsert(
        self,
        table: _VariantTable,
        user_id: uuid.UUID,
        stripe_account_id: str,
        key: CacheKey,
        data: Any,
        used_source: Optional[str],
        now: datetime,
    ) -> None:
        values: Dict[str, Any] = {
            "id": uuid.uuid4(),
            "user_id": user_id,
            "stripe_account_id": stripe_account_id,
            table.payload_column: data,
            "cached_at": now,
            **key.column_values(),
        }
        if key.variant is CacheVariant.CHARGES:
            values["used_source"] = used_source

        updated = {
            name: value
            for name, value in values.items()
            if name not in ("id", "user_id", *table.key_columns)
        }

        try:
            async with self.session_factory() as session:
                dialect = session.get_bind().dialect.name
                insert = _DIALECT_INSERTS.get(dialect)
                if insert is None:
                    raise CacheWriteError(f"Cache upsert is not supported on {dialect}")

                stmt = (
                    insert(table.model)
                    .values(**values)
                    .on_conflict_do_update(
                        index_elements=["user_id", *table.key_columns], set_=updated
                    )
                )
                await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as exc:
            logger.error(
                "Error writing %s cache for user %s: %s", key.variant.value, user_id, str(exc)
            )
            raise CacheWriteError(
                f"Failed to store {key.variant.value} cache for user {user_id}"
            ) from exc


def get_stripe_cache_service() -> StripeCacheService:
    return StripeCacheService()
