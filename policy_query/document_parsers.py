"""
Document parsers for policy files (PDF, DOCX, plain text)
"""
import io
import re
from typing import Dict, Union
from pathlib import Path
import logging

# PDF parsing
import PyPDF2

# DOCX parsing
from docx import Document as DocxDocument

from .config import config

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = ['.pdf', '.doc', '.docx', '.txt']

ALLOWED_MIME_TYPES = [
    'application/pdf',
    'application/msword',
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'text/plain',
    'application/octet-stream'  # Some clients report a generic type
]


class DocumentParsingError(Exception):
    """Custom exception for document parsing errors"""
    pass


class BaseDocumentParser:
    """Base class for document parsers"""

    def __init__(self):
        self.supported_extensions = []

    def parse(self, content: Union[str, bytes], filename: str = "") -> str:
        """Parse document content and return its text"""
        raise NotImplementedError

    def _clean_text(self, text: str) -> str:
        """Normalize whitespace while keeping line structure for clause segmentation"""
        text = text.replace('\r\n', '\n').replace('\r', '\n')
        # Collapse runs of spaces and tabs
        text = re.sub(r'[ \t\f\v]+', ' ', text)
        # At most one blank line between paragraphs
        text = re.sub(r'\n\s*\n\s*', '\n\n', text)
        return text.strip()


class PDFParser(BaseDocumentParser):
    """Parser for PDF documents"""

    def __init__(self):
        super().__init__()
        self.supported_extensions = ['.pdf']

    def parse(self, content: Union[str, bytes], filename: str = "") -> str:
        """Parse PDF content"""
        try:
            if isinstance(content, str):
                # If content is a file path
                with open(content, 'rb') as file:
                    pdf_content = file.read()
            else:
                pdf_content = content

            pdf_reader = PyPDF2.PdfReader(io.BytesIO(pdf_content))

            # Extract text from all pages
            pages = []
            for page_num, page in enumerate(pdf_reader.pages):
                try:
                    page_text = page.extract_text() or ""
                except Exception as e:
                    logger.warning(f"Failed to extract text from page {page_num + 1}: {e}")
                    continue
                if page_text.strip():
                    pages.append(page_text)

            text_content = self._clean_text("\n\n".join(pages))
            if not text_content:
                raise DocumentParsingError("No text content could be extracted from PDF")

            logger.info(f"Extracted {len(text_content)} characters from {len(pdf_reader.pages)} PDF pages")
            return text_content

        except DocumentParsingError:
            raise
        except Exception as e:
            logger.error(f"Error parsing PDF {filename}: {e}")
            raise DocumentParsingError(f"Failed to parse PDF: {str(e)}") from e


class DOCXParser(BaseDocumentParser):
    """Parser for DOCX documents"""

    def __init__(self):
        super().__init__()
        self.supported_extensions = ['.docx']

    def parse(self, content: Union[str, bytes], filename: str = "") -> str:
        """Parse DOCX content"""
        try:
            if isinstance(content, str):
                doc = DocxDocument(content)
            else:
                doc = DocxDocument(io.BytesIO(content))

            paragraphs = [p.text.strip() for p in doc.paragraphs if p.text.strip()]

            # Table rows often hold schedule entries such as sub-limits
            for table in doc.tables:
                for row in table.rows:
                    cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                    if cells:
                        paragraphs.append(" | ".join(cells))

            text_content = self._clean_text("\n\n".join(paragraphs))
            if not text_content:
                raise DocumentParsingError("No text content could be extracted from DOCX")

            return text_content

        except DocumentParsingError:
            raise
        except Exception as e:
            logger.error(f"Error parsing DOCX {filename}: {e}")
            raise DocumentParsingError(f"Failed to parse DOCX: {str(e)}") from e


class PlainTextParser(BaseDocumentParser):
    """Parser for plain text policy wordings"""

    def __init__(self):
        super().__init__()
        self.supported_extensions = ['.txt']

    def parse(self, content: Union[str, bytes], filename: str = "") -> str:
        try:
            if isinstance(content, str):
                content = Path(content).read_bytes()
            text_content = self._clean_text(content.decode('utf-8', errors='ignore'))
        except OSError as e:
            raise DocumentParsingError(f"Failed to read text file: {str(e)}") from e

        if not text_content:
            raise DocumentParsingError("Text file is empty")
        return text_content


class DocumentParserFactory:
    """Factory class for creating appropriate document parsers"""

    def __init__(self, max_upload_bytes: int = None):
        self.max_upload_bytes = max_upload_bytes or config.max_upload_bytes
        self.parsers: Dict[str, BaseDocumentParser] = {
            '.pdf': PDFParser(),
            '.docx': DOCXParser(),
            '.txt': PlainTextParser(),
        }

    def validate_upload(self, original_name: str, size: int, mime_type: str = None):
        """Reject uploads that are too large or of an unsupported type"""
        if size > self.max_upload_bytes:
            raise DocumentParsingError(
                f"File too large: {size} bytes exceeds the {self.max_upload_bytes} byte limit"
            )

        extension = Path(original_name).suffix.lower()
        if extension not in ALLOWED_EXTENSIONS and mime_type not in ALLOWED_MIME_TYPES:
            raise DocumentParsingError("Invalid file type. Only PDF, DOC, DOCX and TXT files are allowed.")

    def get_parser(self, file_extension: str) -> BaseDocumentParser:
        """Get appropriate parser for file extension"""
        extension = file_extension.lower()
        if extension not in self.parsers:
            raise DocumentParsingError(f"No parser available for extension: {extension}")
        return self.parsers[extension]

    def parse_file(self, file_path: Union[str, Path]) -> str:
        """Parse document text from a file path"""
        path = Path(file_path)
        if not path.exists():
            raise DocumentParsingError(f"File not found: {file_path}")

        parser = self.get_parser(path.suffix)
        return parser.parse(str(path), filename=path.name)

    def parse_content(self, content: bytes, file_extension: str, filename: str = "") -> str:
        """Parse document text from raw bytes"""
        parser = self.get_parser(file_extension)
        return parser.parse(content, filename=filename)
