"""Tests for realtysign.services.extract — text extraction from uploaded agreements."""

from io import BytesIO

import pytest
from pypdf import PdfWriter
from pypdf.generic import DecodedStreamObject, DictionaryObject, NameObject

from realtysign.services.extract import extract_text


def _pdf_with_text(*lines: str) -> bytes:
    """One-page PDF drawing each line with Helvetica."""
    writer = PdfWriter()
    page = writer.add_blank_page(width=300, height=300)

    font = DictionaryObject({
        NameObject("/Type"): NameObject("/Font"),
        NameObject("/Subtype"): NameObject("/Type1"),
        NameObject("/BaseFont"): NameObject("/Helvetica"),
    })
    page[NameObject("/Resources")] = DictionaryObject({
        NameObject("/Font"): DictionaryObject({NameObject("/F1"): font}),
    })

    ops = [f"BT /F1 12 Tf 10 {250 - 20 * i} Td ({line}) Tj ET" for i, line in enumerate(lines)]
    stream = DecodedStreamObject()
    stream.set_data("\n".join(ops).encode())
    page[NameObject("/Contents")] = stream

    buf = BytesIO()
    writer.write(buf)
    return buf.getvalue()


def test_extract_txt():
    text = extract_text("listing.txt", b"Listing agreement for 12 Elm St")
    assert text == "Listing agreement for 12 Elm St"


def test_extract_txt_replaces_invalid_bytes():
    text = extract_text("offer.TXT", b"Price: \xff500,000")
    assert text.startswith("Price: ")
    assert "500,000" in text


def test_extract_pdf():
    text = extract_text("agreement.pdf", _pdf_with_text("Purchase Agreement", "12 Elm St"))
    assert "Purchase Agreement" in text
    assert "12 Elm St" in text


def test_unreadable_pdf():
    with pytest.raises(ValueError, match="Unreadable PDF"):
        extract_text("broken.pdf", b"this is not a pdf")


@pytest.mark.parametrize("filename", ["notes.md", "data.csv", "report.docx", "malware.exe"])
def test_unsupported_extension(filename):
    with pytest.raises(ValueError, match="Unsupported file type"):
        extract_text(filename, b"\x00\x01\x02")
