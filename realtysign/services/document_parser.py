"""AI document parser — structured fields from a real-estate agreement via LiteLLM."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field

from litellm import acompletion

from realtysign.core.config import get_settings
from realtysign.core.errors import UpstreamServiceFailure

logger = logging.getLogger(__name__)

DOCUMENT_TYPES = (
    "purchase_agreement",
    "listing_agreement",
    "disclosure",
    "addendum",
    "contract",
    "other",
)

SYSTEM_PROMPT = (
    "You are an expert real estate document analyzer. "
    "Always respond with valid JSON only."
)

USER_PROMPT = """Parse the following real estate document named "{filename}" and \
return a JSON object with this structure:
{{
  "documentType": "one of: {types}",
  "propertyAddress": "full property address if found",
  "propertyValue": "numeric property price/value or null",
  "signers": [{{"name": "...", "email": "email or empty string",
               "role": "one of: buyer, seller, agent, witness, other"}}],
  "signatureFields": [{{"signerName": "...", "fieldType": "signature|initial|date|checkbox",
                       "page": 1, "coordinates": {{"x": 100, "y": 200}}}}],
  "keyTerms": {{"closingDate": null, "purchasePrice": null, "earnestMoney": null,
               "listingPrice": null, "commissionRate": null}},
  "confidence": "score from 0.0 to 1.0"
}}

Document content:
{text}"""


@dataclass
class DocumentParsingResult:
    document_type: str = "other"
    property_address: str = ""
    property_value: float | None = None
    signers: list[dict] = field(default_factory=list)
    signature_fields: list[dict] = field(default_factory=list)
    key_terms: dict = field(default_factory=dict)
    confidence: float = 0.5

    def to_dict(self) -> dict:
        return asdict(self)


def _as_float(value: object) -> float | None:
    if value in (None, ""):
        return None
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


def _normalize(raw: dict) -> DocumentParsingResult:
    document_type = raw.get("documentType") or "other"
    if document_type not in DOCUMENT_TYPES:
        document_type = "other"
    confidence = _as_float(raw.get("confidence"))
    return DocumentParsingResult(
        document_type=document_type,
        property_address=raw.get("propertyAddress") or "",
        property_value=_as_float(raw.get("propertyValue")),
        signers=list(raw.get("signers") or []),
        signature_fields=list(raw.get("signatureFields") or []),
        key_terms=dict(raw.get("keyTerms") or {}),
        confidence=max(0.0, min(1.0, 0.5 if confidence is None else confidence)),
    )


async def parse_document(text: str, filename: str) -> DocumentParsingResult:
    """Ask the configured model for the document's structure.

    Only the first ``ai_max_chars`` characters are sent. Raises
    UpstreamServiceFailure when the call fails or the reply is not JSON.
    """
    settings = get_settings()
    prompt = USER_PROMPT.format(
        filename=filename,
        types=", ".join(DOCUMENT_TYPES),
        text=text[: settings.ai_max_chars],
    )
    try:
        response = await acompletion(
            model=settings.ai_model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            response_format={"type": "json_object"},
        )
    except Exception as exc:
        logger.warning("AI parse call failed for %s: %s", filename, exc)
        raise UpstreamServiceFailure("ai_parser", str(exc)) from exc

    content = response.choices[0].message.content or "{}"
    try:
        raw = json.loads(content)
    except json.JSONDecodeError as exc:
        raise UpstreamServiceFailure("ai_parser", f"Invalid JSON reply: {exc}") from exc
    if not isinstance(raw, dict):
        raise UpstreamServiceFailure("ai_parser", "Reply is not a JSON object")
    return _normalize(raw)
