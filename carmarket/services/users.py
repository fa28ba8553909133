import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from carmarket.auth import AuthIdentity
from carmarket.db.crud import get_user_by_clerk_id, create_user
from carmarket.db.models import User

logger = logging.getLogger(__name__)


async def check_user(db: AsyncSession, identity: AuthIdentity | None) -> User | None:
    """Return the account for a signed-in identity, creating it on first visit."""
    if identity is None:
        return None

    try:
        user = await get_user_by_clerk_id(db, identity.sub)
        if user:
            return user

        name = " ".join(p for p in (identity.first_name, identity.last_name) if p) or None
        user = await create_user(db, {
            "clerk_user_id": identity.sub,
            "email": identity.email or f"{identity.sub}@users.invalid",
            "name": name,
            "image_url": identity.image_url,
        })
        logger.info(f"Created account {user.id} for {identity.sub}")
        return user
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Account sync failed for {identity.sub}: {e}")
        return None
