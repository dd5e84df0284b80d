"""Agent sign-in and the signed-in account view."""

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, EmailStr
from sqlmodel import select

from realtysign.api.deps import Auth, Session, Store
from realtysign.api.v1.tenants import tenant_read
from realtysign.core.security import create_jwt, verify_password
from realtysign.models.tenant import Tenant, TenantRead
from realtysign.models.user import User, UserRead

router = APIRouter(prefix="/auth", tags=["auth"])


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class AccountRead(BaseModel):
    user: UserRead
    tenant: TenantRead


class LoginResponse(AccountRead):
    access_token: str
    token_type: str = "bearer"


def _forbidden(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, session: Session, store: Store) -> LoginResponse:
    """Exchange an agent's email and password for a bearer token."""
    user = (await session.execute(select(User).where(User.email == body.email))).scalars().first()
    if user is None or not verify_password(body.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    brokerage = await session.get(Tenant, user.tenant_id)
    if not user.is_active:
        raise _forbidden("Account is disabled")
    if brokerage is None or not brokerage.is_active:
        raise _forbidden("Tenant is disabled")

    return LoginResponse(
        access_token=create_jwt(str(user.id), str(user.tenant_id), role=user.role),
        user=UserRead.model_validate(user),
        tenant=await tenant_read(brokerage, store),
    )


@router.get("/me", response_model=AccountRead)
async def current_account(auth: Auth, session: Session, store: Store) -> AccountRead:
    user = await session.get(User, auth.user_id)
    brokerage = await session.get(Tenant, auth.tenant_id)
    if user is None or brokerage is None or user.tenant_id != brokerage.id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Account not found")
    return AccountRead(user=UserRead.model_validate(user), tenant=await tenant_read(brokerage, store))
