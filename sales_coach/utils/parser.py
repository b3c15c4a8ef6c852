"""
Document parser
Turns uploaded .md, .txt, .pdf and .docx files into text for ingestion.
"""
import io
from typing import Optional

import docx
import pdfplumber

from sales_coach.errors import ValidationFailed

ALLOWED_FILE_TYPES = {
    "text/markdown": ".md",
    "text/plain": ".txt",
    "application/pdf": ".pdf",
    "application/msword": ".doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": ".docx",
}

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB

_EXTENSION_TYPES = {ext: mime for mime, ext in ALLOWED_FILE_TYPES.items()}


class DocumentParser:
    """Parser for the document types accepted by the upload endpoint."""

    def parse(self, data: bytes, file_name: str, content_type: Optional[str] = None) -> str:
        """
        Extract text from a file's bytes.

        Args:
            data: Raw file content
            file_name: Name used to infer the type when content_type is missing
            content_type: MIME type reported by the store

        Returns:
            The document text (Markdown is returned as-is)
        """
        file_type = self._get_file_type(file_name, content_type)

        if file_type in (".md", ".txt"):
            return self._parse_text(data)
        if file_type == ".pdf":
            return self._parse_pdf(data)
        if file_type == ".docx":
            return self._parse_docx(data)
        raise ValidationFailed(f"Unsupported file type: {file_type or file_name}")

    def _get_file_type(self, file_name: str, content_type: Optional[str]) -> str:
        if content_type in ALLOWED_FILE_TYPES:
            return ALLOWED_FILE_TYPES[content_type]
        if "." in file_name:
            ext = "." + file_name.rsplit(".", 1)[-1].lower()
            if ext in _EXTENSION_TYPES:
                return ext
        return ""

    def _parse_text(self, data: bytes) -> str:
        return data.decode("utf-8", errors="replace")

    def _parse_pdf(self, data: bytes) -> str:
        """Page texts joined by blank lines so pages become paragraph breaks."""
        pages = []
        with pdfplumber.open(io.BytesIO(data)) as pdf:
            for page in pdf.pages:
                text = page.extract_text()
                if text:
                    pages.append(text)
        return "\n\n".join(pages)

    def _parse_docx(self, data: bytes) -> str:
        document = docx.Document(io.BytesIO(data))
        return "\n".join(para.text for para in document.paragraphs)
