"""Tests for the AI document parser (LiteLLM calls are mocked)."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from realtysign.core.errors import UpstreamServiceFailure
from realtysign.services.document_parser import parse_document


def _reply(content: str) -> SimpleNamespace:
    message = SimpleNamespace(content=content)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


@pytest.mark.asyncio
async def test_parse_document_fields():
    payload = {
        "documentType": "purchase_agreement",
        "propertyAddress": "12 Elm St, Springfield",
        "propertyValue": "450000",
        "signers": [{"name": "Bea Buyer", "email": "bea@buyer.com", "role": "buyer"}],
        "keyTerms": {"closingDate": "2026-12-01"},
        "confidence": 0.92,
    }
    mock = AsyncMock(return_value=_reply(json.dumps(payload)))
    with patch("realtysign.services.document_parser.acompletion", mock):
        result = await parse_document("PURCHASE AGREEMENT ...", "offer.pdf")

    assert result.document_type == "purchase_agreement"
    assert result.property_address == "12 Elm St, Springfield"
    assert result.property_value == 450000.0
    assert result.signers[0]["email"] == "bea@buyer.com"
    assert result.signature_fields == []
    assert result.key_terms == {"closingDate": "2026-12-01"}
    assert result.confidence == 0.92
    assert mock.await_args.kwargs["response_format"] == {"type": "json_object"}


@pytest.mark.asyncio
async def test_unknown_values_are_normalized():
    payload = {"documentType": "lease", "propertyValue": "n/a", "confidence": 7}
    with patch(
        "realtysign.services.document_parser.acompletion",
        AsyncMock(return_value=_reply(json.dumps(payload))),
    ):
        result = await parse_document("text", "lease.txt")

    assert result.document_type == "other"
    assert result.property_value is None
    assert result.confidence == 1.0
    assert result.to_dict()["property_address"] == ""


@pytest.mark.asyncio
async def test_long_documents_are_truncated():
    mock = AsyncMock(return_value=_reply("{}"))
    with patch("realtysign.services.document_parser.acompletion", mock):
        await parse_document("A" * 10_000 + "B" * 500, "long.txt")

    prompt = mock.await_args.kwargs["messages"][1]["content"]
    assert "A" * 100 in prompt
    assert "B" not in prompt.split("Document content:")[1]


@pytest.mark.asyncio
@pytest.mark.parametrize("content", ["not json", "[1, 2]"])
async def test_bad_reply_raises(content):
    with patch(
        "realtysign.services.document_parser.acompletion",
        AsyncMock(return_value=_reply(content)),
    ):
        with pytest.raises(UpstreamServiceFailure) as exc_info:
            await parse_document("text", "doc.txt")
    assert exc_info.value.service == "ai_parser"


@pytest.mark.asyncio
async def test_call_failure_raises():
    with patch(
        "realtysign.services.document_parser.acompletion",
        AsyncMock(side_effect=RuntimeError("rate limited")),
    ):
        with pytest.raises(UpstreamServiceFailure, match="rate limited"):
            await parse_document("text", "doc.txt")
