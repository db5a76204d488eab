"""Plain-text extraction from uploaded files.

PDFs are read with pypdf, DOCX files with python-docx. Anything that cannot
be parsed or yields too little text is replaced with a placeholder naming
the file, so ingestion always has something to chunk.
"""

import asyncio
import io

from docx import Document as DocxDocument
from pypdf import PdfReader

from shared.helper.HelperConfig import HelperConfig

MIME_TEXT = "text/plain"
MIME_PDF = "application/pdf"
MIME_DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def _count_letters(text: str) -> int:
    return sum(1 for ch in text if ch.isalpha())


class TextExtractor:
    """Turns raw upload bytes into text according to their media type."""

    def __init__(self, helper_config: HelperConfig) -> None:
        self.logging = helper_config.get_logger()
        self.pdf_min_chars = helper_config.get_number_val("EXTRACT_PDF_MIN_CHARS", default=100)
        self.docx_min_chars = helper_config.get_number_val("EXTRACT_DOCX_MIN_CHARS", default=50)

    async def do_extract(self, data: bytes, mime_type: str, filename: str) -> str:
        """Extract the text of an uploaded file without blocking the event loop.

        Args:
            data (bytes): The raw file content.
            mime_type (str): The declared media type.
            filename (str): The original filename, used in placeholders.

        Returns:
            str: The extracted text, or a placeholder if extraction yielded too little.
        """
        text = await asyncio.to_thread(self.extract, data, mime_type, filename)
        self.logging.debug("Extracted %d characters from '%s' (%s)", len(text), filename, mime_type)
        return text

    def extract(self, data: bytes, mime_type: str, filename: str) -> str:
        if mime_type == MIME_TEXT:
            return data.decode("utf-8", errors="replace")
        if mime_type == MIME_PDF:
            return self._extract_pdf(data, filename)
        if mime_type == MIME_DOCX:
            return self._extract_docx(data, filename)
        self.logging.warning("No extractor for media type '%s' of '%s'", mime_type, filename)
        return f"Document content could not be extracted from {filename}: unsupported type {mime_type}."

    ##########################################
    ################# FORMATS ################
    ##########################################

    def _extract_pdf(self, data: bytes, filename: str) -> str:
        try:
            reader = PdfReader(io.BytesIO(data))
            pages = [(page.extract_text() or "").strip() for page in reader.pages]
        except Exception as e:
            # damaged, encrypted or truncated files
            self.logging.warning("PDF '%s' could not be parsed: %s", filename, e)
            pages = []
        text = "\n\n".join(page for page in pages if page)

        if _count_letters(text) < self.pdf_min_chars:
            self.logging.info("PDF '%s' yielded too little text, using placeholder", filename)
            return (
                f"Document content could not be extracted from PDF: {filename}. "
                "This appears to be a PDF file that requires specialized parsing."
            )
        return text

    def _extract_docx(self, data: bytes, filename: str) -> str:
        try:
            document = DocxDocument(io.BytesIO(data))
            paragraphs = [paragraph.text.strip() for paragraph in document.paragraphs]
        except Exception as e:
            # zip, zlib and package errors all end up here
            self.logging.warning("DOCX '%s' could not be parsed: %s", filename, e)
            paragraphs = []
        text = "\n\n".join(paragraph for paragraph in paragraphs if paragraph)

        if _count_letters(text) < self.docx_min_chars:
            self.logging.info("DOCX '%s' yielded too little text, using placeholder", filename)
            return (
                f"Document content from DOCX file: {filename}. "
                "This file requires specialized parsing for full text extraction."
            )
        return text
