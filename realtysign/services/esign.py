"""E-signature client — envelope creation against the DocuSign REST API.

Credential resolution: the tenant's own connected account, then the
platform account from settings. With neither, envelopes are created in
sandbox mode (a local envelope id, nothing leaves the process).
"""

from __future__ import annotations

import base64
import logging
import secrets
import time
from dataclasses import dataclass, field
from pathlib import Path

import httpx

from realtysign.core.config import get_settings
from realtysign.core.errors import UpstreamServiceFailure
from realtysign.core.security import decrypt_credentials
from realtysign.models.tenant import Tenant

logger = logging.getLogger(__name__)


@dataclass
class EnvelopeSigner:
    name: str
    email: str
    role: str
    routing_order: int = 1


@dataclass
class EnvelopeRequest:
    document_name: str
    document_content: bytes
    email_subject: str
    email_message: str
    signers: list[EnvelopeSigner] = field(default_factory=list)


@dataclass
class Envelope:
    envelope_id: str
    status: str
    recipients: list[dict] = field(default_factory=list)
    sandbox: bool = False


@dataclass
class ProviderCredentials:
    access_token: str
    account_id: str


def resolve_credentials(tenant: Tenant | None) -> ProviderCredentials | None:
    """Tenant credentials first, then the platform account, else None."""
    if tenant is not None and tenant.encrypted_esign_credentials:
        try:
            data = decrypt_credentials(tenant.encrypted_esign_credentials)
        except Exception:
            logger.exception("Could not decrypt e-sign credentials for tenant %s", tenant.id)
        else:
            if data.get("access_token") and data.get("account_id"):
                return ProviderCredentials(data["access_token"], data["account_id"])

    settings = get_settings()
    if settings.esign_access_token and settings.esign_account_id:
        return ProviderCredentials(settings.esign_access_token, settings.esign_account_id)
    return None


def _envelope_payload(request: EnvelopeRequest) -> dict:
    extension = Path(request.document_name).suffix.lstrip(".").lower() or "pdf"
    return {
        "emailSubject": request.email_subject,
        "emailBlurb": request.email_message,
        "status": "sent",
        "documents": [
            {
                "documentId": "1",
                "name": request.document_name,
                "fileExtension": extension,
                "documentBase64": base64.b64encode(request.document_content).decode(),
            }
        ],
        "recipients": {
            "signers": [
                {
                    "recipientId": str(index),
                    "name": signer.name,
                    "email": signer.email,
                    "roleName": signer.role,
                    "routingOrder": str(signer.routing_order),
                }
                for index, signer in enumerate(request.signers, start=1)
            ]
        },
    }


def _sandbox_envelope(request: EnvelopeRequest) -> Envelope:
    envelope_id = f"envelope_{int(time.time() * 1000)}_{secrets.token_hex(5)}"
    logger.info("Sandbox envelope %s created for %r", envelope_id, request.document_name)
    return Envelope(
        envelope_id=envelope_id,
        status="sent",
        recipients=[
            {"recipient_id": str(i), "email": s.email, "name": s.name}
            for i, s in enumerate(request.signers, start=1)
        ],
        sandbox=True,
    )


async def create_envelope(request: EnvelopeRequest, tenant: Tenant | None = None) -> Envelope:
    """Route a document to its signers. Raises UpstreamServiceFailure."""
    credentials = resolve_credentials(tenant)
    if credentials is None:
        return _sandbox_envelope(request)

    url = f"{get_settings().esign_base_url}/v2.1/accounts/{credentials.account_id}/envelopes"
    try:
        async with httpx.AsyncClient(timeout=30) as client:
            response = await client.post(
                url,
                json=_envelope_payload(request),
                headers={"Authorization": f"Bearer {credentials.access_token}"},
            )
            response.raise_for_status()
            data = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("Envelope creation failed for %r: %s", request.document_name, exc)
        raise UpstreamServiceFailure("esign", str(exc)) from exc

    envelope_id = data.get("envelopeId")
    if not envelope_id:
        raise UpstreamServiceFailure("esign", "Response carried no envelopeId")
    return Envelope(
        envelope_id=envelope_id,
        status=data.get("status", "sent"),
        recipients=[
            {"recipient_id": str(i), "email": s.email, "name": s.name}
            for i, s in enumerate(request.signers, start=1)
        ],
    )
