from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from carmarket.auth import AuthIdentity, require_identity
from carmarket.db.database import get_db
from carmarket.schemas.user import UserResponse
from carmarket.services.users import check_user

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def get_me(identity: AuthIdentity = Depends(require_identity), db: AsyncSession = Depends(get_db)):
    user = await check_user(db, identity)
    if not user:
        raise HTTPException(status_code=503, detail="Could not load account")
    return user
