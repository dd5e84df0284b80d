"""Import all models so SQLModel.metadata picks them up."""

from realtysign.models.billing import BillingRecord, BillingRecordRead, BillingStatus
from realtysign.models.document import (
    AWAITING_SIGNATURE,
    Document,
    DocumentDetail,
    DocumentRead,
    DocumentRecipient,
    DocumentRecipientRead,
    DocumentStatus,
    SignatureStatus,
    SignatureStatusUpdate,
    SignerInput,
)
from realtysign.models.plan import PlanRead, SubscriptionPlan
from realtysign.models.recipient import (
    Recipient,
    RecipientCreate,
    RecipientRead,
    RecipientRole,
    RecipientUpdate,
)
from realtysign.models.tenant import Tenant, TenantPlanUpdate, TenantRead
from realtysign.models.usage import (
    ActionKind,
    CurrentUsageRead,
    ResourceKind,
    ResourceUsage,
    UsageAlert,
    UsageAlertRead,
    UsageRecord,
)
from realtysign.models.user import User, UserRead, UserRole

__all__ = [
    "AWAITING_SIGNATURE",
    "ActionKind",
    "BillingRecord",
    "BillingRecordRead",
    "BillingStatus",
    "CurrentUsageRead",
    "Document",
    "DocumentDetail",
    "DocumentRead",
    "DocumentRecipient",
    "DocumentRecipientRead",
    "DocumentStatus",
    "PlanRead",
    "Recipient",
    "RecipientCreate",
    "RecipientRead",
    "RecipientRole",
    "RecipientUpdate",
    "ResourceKind",
    "ResourceUsage",
    "SignatureStatus",
    "SignatureStatusUpdate",
    "SignerInput",
    "SubscriptionPlan",
    "Tenant",
    "TenantPlanUpdate",
    "TenantRead",
    "UsageAlert",
    "UsageAlertRead",
    "UsageRecord",
    "User",
    "UserRead",
    "UserRole",
]
