"""Tenant registration (bootstrap) and plan assignment."""

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, EmailStr, Field
from sqlmodel import select

from realtysign.api.deps import Auth, Session, Store
from realtysign.core.config import get_settings
from realtysign.core.security import create_jwt, hash_password
from realtysign.models.tenant import Tenant, TenantPlanUpdate, TenantRead
from realtysign.models.user import User, UserRole
from realtysign.services.usage_store import MeteringStore

router = APIRouter(prefix="/tenants", tags=["tenants"])


# ── Bootstrap request / response schemas ──────────────────────

class TenantBootstrapRequest(BaseModel):
    """Everything needed to create a new tenant + owner in one call."""
    tenant_name: str = Field(max_length=255)
    tenant_slug: str = Field(max_length=100, pattern=r"^[a-z0-9\-]+$")
    brokerage: str = Field(default="", max_length=255)
    owner_email: EmailStr
    owner_password: str = Field(min_length=8, max_length=128)
    owner_display_name: str = Field(default="", max_length=255)


class TenantBootstrapResponse(BaseModel):
    tenant: TenantRead
    access_token: str
    token_type: str = "bearer"


async def tenant_read(tenant: Tenant, store: MeteringStore) -> TenantRead:
    """TenantRead with the plan reference as the metering store sees it."""
    read = TenantRead.model_validate(tenant)
    read.plan_id = await store.get_tenant_plan_id(tenant.id)
    return read


# ── Routes ────────────────────────────────────────────────────

@router.post(
    "",
    response_model=TenantBootstrapResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new tenant (bootstrap)",
)
async def bootstrap_tenant(
    body: TenantBootstrapRequest,
    session: Session,
    store: Store,
) -> TenantBootstrapResponse:
    """Create a tenant and its owner user, and assign the default plan.

    This is the only unauthenticated write endpoint.
    """
    existing = await session.execute(
        select(Tenant).where(Tenant.slug == body.tenant_slug)
    )
    if existing.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Slug '{body.tenant_slug}' is already taken",
        )
    taken = await session.execute(select(User).where(User.email == body.owner_email))
    if taken.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A user with this email already exists",
        )

    # 1. Create tenant
    tenant = Tenant(
        name=body.tenant_name,
        slug=body.tenant_slug,
        brokerage=body.brokerage,
    )
    session.add(tenant)
    await session.flush()  # populate tenant.id

    # 2. Create owner user
    user = User(
        tenant_id=tenant.id,
        email=body.owner_email,
        password_hash=hash_password(body.owner_password),
        display_name=body.owner_display_name,
        role=UserRole.OWNER,
    )
    session.add(user)
    await session.commit()

    # 3. Assign the signup plan
    await store.assign_plan(tenant.id, get_settings().default_plan_id)
    await session.refresh(tenant)

    token = create_jwt(subject=str(user.id), tenant_id=str(tenant.id), role=user.role)
    return TenantBootstrapResponse(
        tenant=await tenant_read(tenant, store),
        access_token=token,
    )


@router.get(
    "/me",
    response_model=TenantRead,
    summary="Get current tenant info",
)
async def get_current_tenant(
    auth: Auth,
    session: Session,
    store: Store,
) -> TenantRead:
    """Returns the tenant associated with the authenticated token."""
    tenant = await session.get(Tenant, auth.tenant_id)
    if tenant is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")
    return await tenant_read(tenant, store)


@router.put("/me/plan", response_model=TenantRead, summary="Change the tenant's plan")
async def change_plan(
    body: TenantPlanUpdate,
    auth: Auth,
    session: Session,
    store: Store,
) -> TenantRead:
    if not auth.is_elevated:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only owners and admins can change the plan",
        )
    if await store.get_plan(body.plan_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Plan not found")

    tenant = await session.get(Tenant, auth.tenant_id)
    if tenant is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")

    await store.assign_plan(tenant.id, body.plan_id)
    await session.refresh(tenant)
    return await tenant_read(tenant, store)
