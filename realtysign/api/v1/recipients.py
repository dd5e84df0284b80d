"""Recipient CRUD — tenant-scoped signing contacts."""

import uuid

from fastapi import APIRouter, HTTPException, status
from sqlmodel import select

from realtysign.api.deps import Auth, Session
from realtysign.models.base import utcnow
from realtysign.models.document import DocumentRecipient
from realtysign.models.recipient import Recipient, RecipientCreate, RecipientRead, RecipientUpdate

router = APIRouter(prefix="/recipients", tags=["recipients"])


async def _get_recipient(recipient_id: uuid.UUID, tenant_id: uuid.UUID, session) -> Recipient:
    stmt = select(Recipient).where(
        Recipient.id == recipient_id,
        Recipient.tenant_id == tenant_id,
    )
    recipient = (await session.execute(stmt)).scalar_one_or_none()
    if recipient is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Recipient not found")
    return recipient


async def _ensure_email_free(
    email: str, tenant_id: uuid.UUID, session, exclude: uuid.UUID | None = None
) -> None:
    stmt = select(Recipient.id).where(Recipient.tenant_id == tenant_id, Recipient.email == email)
    if exclude is not None:
        stmt = stmt.where(Recipient.id != exclude)
    if (await session.execute(stmt)).first() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A recipient with this email already exists",
        )


@router.post("", response_model=RecipientRead, status_code=status.HTTP_201_CREATED)
async def create_recipient(body: RecipientCreate, auth: Auth, session: Session) -> RecipientRead:
    await _ensure_email_free(body.email, auth.tenant_id, session)
    recipient = Recipient(tenant_id=auth.tenant_id, **body.model_dump())
    session.add(recipient)
    await session.commit()
    await session.refresh(recipient)
    return RecipientRead.model_validate(recipient)


@router.get("", response_model=list[RecipientRead])
async def list_recipients(auth: Auth, session: Session) -> list[RecipientRead]:
    stmt = (
        select(Recipient)
        .where(Recipient.tenant_id == auth.tenant_id)
        .order_by(Recipient.created_at.desc())
    )
    result = await session.execute(stmt)
    return [RecipientRead.model_validate(r) for r in result.scalars().all()]


@router.patch("/{recipient_id}", response_model=RecipientRead)
async def update_recipient(
    recipient_id: uuid.UUID,
    body: RecipientUpdate,
    auth: Auth,
    session: Session,
) -> RecipientRead:
    recipient = await _get_recipient(recipient_id, auth.tenant_id, session)
    changes = body.model_dump(exclude_unset=True)
    if changes.get("email") and changes["email"] != recipient.email:
        await _ensure_email_free(changes["email"], auth.tenant_id, session, exclude=recipient.id)

    for key, value in changes.items():
        if value is not None:
            setattr(recipient, key, value)
    recipient.updated_at = utcnow()
    session.add(recipient)
    await session.commit()
    await session.refresh(recipient)
    return RecipientRead.model_validate(recipient)


@router.delete("/{recipient_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_recipient(recipient_id: uuid.UUID, auth: Auth, session: Session) -> None:
    recipient = await _get_recipient(recipient_id, auth.tenant_id, session)
    in_use = await session.execute(
        select(DocumentRecipient.id).where(DocumentRecipient.recipient_id == recipient.id).limit(1)
    )
    if in_use.first() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Recipient is attached to documents",
        )
    await session.delete(recipient)
    await session.commit()
