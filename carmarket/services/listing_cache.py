"""Public search pages cached in the database.

Entries are shared by every worker, so ``invalidate`` after a listing write
is seen everywhere. Expired rows are purged whenever a new page is stored.
"""
import hashlib
import json
import logging
from datetime import datetime, timezone, timedelta

from sqlalchemy import select, delete, insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from carmarket.config import settings
from carmarket.db.models import ListingCache

logger = logging.getLogger(__name__)


def build_cache_key(params: dict) -> str:
    raw = json.dumps(params, sort_keys=True, default=str)
    return hashlib.sha256(raw.encode()).hexdigest()


async def get_cached(db: AsyncSession, cache_key: str) -> str | None:
    now = datetime.now(timezone.utc)
    result = await db.execute(
        select(ListingCache.payload)
        .where(ListingCache.cache_key == cache_key, ListingCache.expires_at > now)
    )
    return result.scalar_one_or_none()


async def set_cache(db: AsyncSession, cache_key: str, payload: str, ttl: int | None = None):
    ttl = settings.CACHE_TTL_SECONDS if ttl is None else ttl
    now = datetime.now(timezone.utc)

    await db.execute(
        delete(ListingCache)
        .where((ListingCache.expires_at <= now) | (ListingCache.cache_key == cache_key))
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        insert(ListingCache).values(
            cache_key=cache_key,
            payload=payload,
            created_at=now,
            expires_at=now + timedelta(seconds=ttl),
        )
    )
    try:
        await db.commit()
    except IntegrityError:
        # another request stored the same page first
        await db.rollback()
        logger.debug(f"Cache entry {cache_key[:12]} already stored")


async def invalidate(db: AsyncSession):
    """Drop every cached listing page after a listing changed."""
    result = await db.execute(delete(ListingCache).execution_options(synchronize_session=False))
    await db.commit()
    if result.rowcount:
        logger.info(f"Invalidated {result.rowcount} cached listing pages")
