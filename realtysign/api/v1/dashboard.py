"""Dashboard summary — document totals, usage and recent uploads."""

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy import func
from sqlmodel import select

from realtysign.api.deps import Auth, Session, Store
from realtysign.api.v1.usage import current_usage
from realtysign.models.document import Document, DocumentRead, DocumentStatus
from realtysign.models.usage import CurrentUsageRead

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

RECENT_LIMIT = 5


class DocumentTotals(BaseModel):
    total: int = 0
    processing: int = 0
    pending: int = 0
    completed: int = 0
    failed: int = 0


class DashboardResponse(BaseModel):
    documents: DocumentTotals
    usage: CurrentUsageRead
    recent_documents: list[DocumentRead]


@router.get("", response_model=DashboardResponse)
async def get_dashboard(auth: Auth, session: Session, store: Store) -> DashboardResponse:
    counts = await session.execute(
        select(Document.status, func.count())
        .where(Document.tenant_id == auth.tenant_id)
        .group_by(Document.status)
    )
    totals = DocumentTotals()
    for doc_status, count in counts.all():
        setattr(totals, DocumentStatus(doc_status).value, count)
        totals.total += count

    recent = await session.execute(
        select(Document)
        .where(Document.tenant_id == auth.tenant_id)
        .order_by(Document.created_at.desc())
        .limit(RECENT_LIMIT)
    )
    return DashboardResponse(
        documents=totals,
        usage=await current_usage(store, auth.tenant_id),
        recent_documents=[DocumentRead.model_validate(d) for d in recent.scalars().all()],
    )
