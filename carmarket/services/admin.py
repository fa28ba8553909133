from dataclasses import dataclass

from fastapi import Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from carmarket.auth import AuthIdentity, get_identity
from carmarket.db.crud import get_user_by_clerk_id
from carmarket.db.database import get_db
from carmarket.db.models import User


@dataclass(frozen=True)
class Unauthenticated:
    authorized = False
    reason = "not-authenticated"

    def as_dict(self) -> dict:
        return {"authorized": False, "reason": self.reason}


@dataclass(frozen=True)
class Forbidden:
    authorized = False
    reason = "not-admin"

    def as_dict(self) -> dict:
        return {"authorized": False, "reason": self.reason}


@dataclass(frozen=True)
class Authorized:
    user: User
    authorized = True

    def as_dict(self) -> dict:
        return {"authorized": True, "user": self.user}


AdminCheck = Unauthenticated | Forbidden | Authorized


async def get_admin(db: AsyncSession, identity: AuthIdentity | None) -> AdminCheck:
    if identity is None:
        return Unauthenticated()

    user = await get_user_by_clerk_id(db, identity.sub)
    if not user or user.role != "ADMIN":
        return Forbidden()

    return Authorized(user=user)


async def require_admin(
    identity: AuthIdentity | None = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
) -> User:
    check = await get_admin(db, identity)
    if isinstance(check, Unauthenticated):
        raise HTTPException(status_code=401, detail="Not authenticated")
    if isinstance(check, Forbidden):
        # The admin area is hidden from everyone else
        raise HTTPException(status_code=404, detail="Not found")
    return check.user
