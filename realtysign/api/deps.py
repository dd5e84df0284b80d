"""FastAPI dependencies for authentication, tenant resolution and metering."""

import uuid
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from realtysign.core.database import get_session
from realtysign.core.security import decode_jwt
from realtysign.models.user import UserRole
from realtysign.services.usage_store import MeteringStore, metering_store_for

bearer_scheme = HTTPBearer()


class AuthContext:
    """Resolved identity carried through a request."""

    __slots__ = ("tenant_id", "user_id", "user_role")

    def __init__(self, tenant_id: uuid.UUID, user_id: uuid.UUID, user_role: str) -> None:
        self.tenant_id = tenant_id
        self.user_id = user_id
        self.user_role = user_role

    @property
    def is_elevated(self) -> bool:
        return self.user_role in (UserRole.OWNER, UserRole.ADMIN)


async def get_auth_context(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
) -> AuthContext:
    """Decode the bearer JWT and extract tenant_id + user_id."""
    try:
        payload = decode_jwt(credentials.credentials)
    except JWTError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired JWT",
        ) from exc

    try:
        return AuthContext(
            tenant_id=uuid.UUID(payload["tid"]),
            user_id=uuid.UUID(payload["sub"]),
            user_role=payload.get("role", UserRole.MEMBER),
        )
    except (KeyError, ValueError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Malformed JWT payload",
        ) from exc


async def get_metering_store(
    session: Annotated[AsyncSession, Depends(get_session)],
) -> MeteringStore:
    return metering_store_for(session)


# Typed shorthand for use in route signatures
Auth = Annotated[AuthContext, Depends(get_auth_context)]
Session = Annotated[AsyncSession, Depends(get_session)]
Store = Annotated[MeteringStore, Depends(get_metering_store)]
