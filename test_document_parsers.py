"""
Tests for document text extraction
"""
import pytest
from docx import Document as DocxDocument

from policy_query.document_parsers import DocumentParserFactory, DocumentParsingError


@pytest.fixture
def factory():
    return DocumentParserFactory()


def test_plain_text_keeps_paragraph_breaks(factory, tmp_path):
    path = tmp_path / "policy.txt"
    path.write_text("Clause one   is\tcovered.\r\n\r\n\r\nClause two is excluded.\n", encoding="utf-8")

    assert factory.parse_file(path) == "Clause one is covered.\n\nClause two is excluded."


def test_docx_paragraphs_and_tables(factory, tmp_path):
    doc = DocxDocument()
    doc.add_paragraph("Orthopedic surgeries are covered under surgical benefits.")
    doc.add_paragraph("   ")
    table = doc.add_table(rows=1, cols=2)
    table.rows[0].cells[0].text = "Room rent"
    table.rows[0].cells[1].text = "1% of sum insured"
    path = tmp_path / "policy.docx"
    doc.save(str(path))

    text = factory.parse_file(path)

    assert text == "Orthopedic surgeries are covered under surgical benefits.\n\nRoom rent | 1% of sum insured"


def test_parse_content_from_bytes(factory):
    assert factory.parse_content(b"Dental treatments are excluded.", ".TXT") == "Dental treatments are excluded."


def test_empty_text_file_is_rejected(factory):
    with pytest.raises(DocumentParsingError):
        factory.parse_content(b"  \n ", ".txt")


def test_missing_file_and_unknown_extension(factory, tmp_path):
    with pytest.raises(DocumentParsingError):
        factory.parse_file(tmp_path / "absent.pdf")

    with pytest.raises(DocumentParsingError):
        factory.get_parser(".doc")


def test_invalid_pdf_is_rejected(factory):
    with pytest.raises(DocumentParsingError):
        factory.parse_content(b"this is not a pdf", ".pdf")


@pytest.mark.parametrize("name,mime", [
    ("policy.pdf", None),
    ("policy.DOCX", None),
    ("policy", "application/pdf"),
    ("scan.bin", "application/octet-stream"),
])
def test_accepted_uploads(factory, name, mime):
    factory.validate_upload(name, 1024, mime)


def test_upload_size_limit(factory):
    with pytest.raises(DocumentParsingError):
        factory.validate_upload("policy.pdf", 10 * 1024 * 1024 + 1, "application/pdf")
