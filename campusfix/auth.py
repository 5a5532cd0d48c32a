"""Identity: bearer JWT validation and the acting user."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, Request, status

from campusfix.config import get_settings
from campusfix.dependencies import UnitOfWorkFactory, get_uow_factory
from campusfix.logging_config import bind_request_context, get_logger
from campusfix.models import User, UserRole

logger = get_logger(__name__)

JWT_ACCESS_TOKEN_EXPIRE_MINUTES = 60


@dataclass(frozen=True)
class Actor:
    """The user performing an operation, as trusted by the workflow core."""

    id: UUID
    role: str
    credibility: int
    name: str

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(id=user.id, role=user.role, credibility=user.credibility, name=user.name)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @property
    def is_student(self) -> bool:
        return self.role == UserRole.STUDENT.value


def create_access_token(user_id: str, expires_minutes: int = JWT_ACCESS_TOKEN_EXPIRE_MINUTES) -> str:
    """Create a JWT access token for a user. Used by seed tooling and tests."""
    settings = get_settings()
    expire = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    payload = {"sub": user_id, "exp": expire, "type": "access"}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_jwt(token: str) -> dict:
    """Decode and validate a JWT token. Raises HTTPException on failure."""
    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")


async def get_current_actor(
    request: Request,
    uow_factory: UnitOfWorkFactory = Depends(get_uow_factory),
) -> Actor:
    """
    FastAPI dependency: extract the Bearer token and load the user's profile.

    Returns an Actor or raises 401/403.
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing or invalid Authorization header",
        )

    token = auth_header.removeprefix("Bearer ").strip()
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Empty token")

    payload = decode_jwt(token)
    if payload.get("type", "access") != "access":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token type")

    try:
        user_id = UUID(str(payload.get("sub")))
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token subject")

    async with uow_factory() as uow:
        user = await uow.users.get_by_id(user_id)
    if user is None:
        logger.warning("actor_profile_missing", user_id=str(user_id))
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User profile not found")

    bind_request_context(user_id=str(user.id), role=user.role)
    return Actor.from_user(user)

