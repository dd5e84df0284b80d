"""Connect or disconnect the tenant's own e-signature account."""

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from realtysign.api.deps import Auth, Session
from realtysign.core.security import encrypt_credentials
from realtysign.models.base import utcnow
from realtysign.models.tenant import Tenant

router = APIRouter(prefix="/esign", tags=["esign"])


class EsignConnectRequest(BaseModel):
    access_token: str = Field(min_length=1)
    account_id: str = Field(min_length=1, max_length=255)


class EsignConnectionStatus(BaseModel):
    connected: bool


async def _owned_tenant(auth, session) -> Tenant:
    if not auth.is_elevated:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only owners and admins can manage the e-signature account",
        )
    tenant = await session.get(Tenant, auth.tenant_id)
    if tenant is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")
    return tenant


@router.post("/connect", response_model=EsignConnectionStatus)
async def connect_account(body: EsignConnectRequest, auth: Auth, session: Session) -> EsignConnectionStatus:
    tenant = await _owned_tenant(auth, session)
    tenant.encrypted_esign_credentials = encrypt_credentials(body.model_dump())
    tenant.updated_at = utcnow()
    session.add(tenant)
    await session.commit()
    return EsignConnectionStatus(connected=True)


@router.delete("/connect", response_model=EsignConnectionStatus)
async def disconnect_account(auth: Auth, session: Session) -> EsignConnectionStatus:
    tenant = await _owned_tenant(auth, session)
    tenant.encrypted_esign_credentials = None
    tenant.updated_at = utcnow()
    session.add(tenant)
    await session.commit()
    return EsignConnectionStatus(connected=False)
