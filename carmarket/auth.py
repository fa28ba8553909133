import logging
from dataclasses import dataclass, asdict

from itsdangerous import URLSafeTimedSerializer, SignatureExpired, BadSignature
from fastapi import Depends, HTTPException, Request

from carmarket.config import settings

logger = logging.getLogger(__name__)

_serializer = URLSafeTimedSerializer(settings.AUTH_SECRET_KEY)


@dataclass(frozen=True)
class AuthIdentity:
    """Identity issued by the external auth provider."""

    sub: str
    email: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    image_url: str | None = None


def create_token(identity: AuthIdentity) -> str:
    return _serializer.dumps(asdict(identity), salt="auth")


def verify_token(token: str) -> AuthIdentity | None:
    try:
        payload = _serializer.loads(token, salt="auth", max_age=settings.AUTH_TOKEN_MAX_AGE)
    except (SignatureExpired, BadSignature):
        return None
    if not isinstance(payload, dict) or not payload.get("sub"):
        logger.warning("Token payload has no subject")
        return None
    return AuthIdentity(
        sub=payload["sub"],
        email=payload.get("email"),
        first_name=payload.get("first_name"),
        last_name=payload.get("last_name"),
        image_url=payload.get("image_url"),
    )


# --- Dependencies ---

async def get_identity(request: Request) -> AuthIdentity | None:
    auth_header = request.headers.get("authorization", "")
    if auth_header.startswith("Bearer "):
        return verify_token(auth_header[7:])
    return None


async def require_identity(identity: AuthIdentity | None = Depends(get_identity)) -> AuthIdentity:
    if identity is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return identity
