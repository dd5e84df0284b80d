"""Tenant contact resolution for outbound notifications."""

import uuid
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from realtysign.models.tenant import Tenant
from realtysign.models.user import User, UserRole


@dataclass
class TenantContact:
    email: str
    name: str


async def get_tenant_contact(session: AsyncSession, tenant_id: uuid.UUID) -> TenantContact | None:
    """The tenant's owner, falling back to its oldest active user."""
    stmt = (
        select(User)
        .where(User.tenant_id == tenant_id, User.is_active == True)  # noqa: E712
        .order_by((User.role == UserRole.OWNER).desc(), User.created_at.asc())
        .limit(1)
    )
    user = (await session.execute(stmt)).scalars().first()
    if user is None:
        return None
    name = user.display_name
    if not name:
        tenant = await session.get(Tenant, tenant_id)
        name = tenant.name if tenant else user.email
    return TenantContact(email=user.email, name=name)
