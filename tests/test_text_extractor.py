import io
import zipfile

import pytest

from conftest import corrupt_zip_member, make_docx, make_pdf
from services.ingestion.TextExtractor import MIME_DOCX, MIME_PDF, MIME_TEXT, TextExtractor


@pytest.fixture
def extractor(helper_config) -> TextExtractor:
    return TextExtractor(helper_config=helper_config)


class TestPlainText:
    def test_utf8(self, extractor):
        assert extractor.extract("Grüße\nzweite Zeile".encode("utf-8"), MIME_TEXT, "a.txt") == "Grüße\nzweite Zeile"

    def test_invalid_bytes_are_replaced(self, extractor):
        text = extractor.extract(b"ok \xff\xfe end", MIME_TEXT, "a.txt")

        assert text.startswith("ok ")
        assert text.endswith(" end")
        assert "�" in text


REPORT_LINES = [
    "The quarterly revenue grew in every region we operate in",
    "Operating costs stayed flat compared to the previous year",
    "Headcount increased slightly in the support organisation",
]


class TestPdf:
    @pytest.mark.parametrize("compress", [True, False])
    def test_text_of_content_stream_is_extracted(self, extractor, compress):
        text = extractor.extract(make_pdf(REPORT_LINES, compress=compress), MIME_PDF, "report.pdf")

        assert "could not be extracted" not in text
        for line in REPORT_LINES:
            assert line in text

    def test_too_little_text_gives_placeholder(self, extractor):
        text = extractor.extract(make_pdf(["Hello world"]), MIME_PDF, "scan.pdf")

        assert "scan.pdf" in text
        assert "could not be extracted" in text

    def test_unparseable_file_gives_placeholder(self, extractor):
        text = extractor.extract(b"%PDF-1.4\nthis is not really a pdf", MIME_PDF, "broken.pdf")

        assert text.startswith("Document content could not be extracted from PDF: broken.pdf.")


class TestDocx:
    def test_paragraphs_are_joined_with_blank_lines(self, extractor):
        paragraphs = [
            "Introduction to the onboarding process for new staff members.",
            "",
            "Every employee receives a laptop & an access badge on day one.",
        ]

        text = extractor.extract(make_docx(paragraphs), MIME_DOCX, "guide.docx")

        assert text == (
            "Introduction to the onboarding process for new staff members.\n\n"
            "Every employee receives a laptop & an access badge on day one."
        )

    def test_broken_archive_gives_placeholder(self, extractor):
        text = extractor.extract(b"not a zip file at all", MIME_DOCX, "broken.docx")

        assert "broken.docx" in text
        assert "specialized parsing" in text

    def test_corrupted_member_gives_placeholder(self, extractor):
        data = corrupt_zip_member(make_docx(["A paragraph that is long enough to pass the threshold easily."]), "word/document.xml")

        text = extractor.extract(data, MIME_DOCX, "damaged.docx")

        assert text.startswith("Document content from DOCX file: damaged.docx.")

    def test_zip_without_document_part_gives_placeholder(self, extractor):
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as archive:
            archive.writestr("notes.txt", "just a zip")

        text = extractor.extract(buffer.getvalue(), MIME_DOCX, "plain.docx")

        assert "plain.docx" in text

    def test_short_document_gives_placeholder(self, extractor):
        text = extractor.extract(make_docx(["Hi"]), MIME_DOCX, "short.docx")

        assert "short.docx" in text


class TestUnknownType:
    def test_placeholder(self, extractor):
        text = extractor.extract(b"\x89PNG", "image/png", "photo.png")

        assert "photo.png" in text

    @pytest.mark.asyncio
    async def test_async_extraction(self, extractor):
        assert await extractor.do_extract(b"hello", MIME_TEXT, "a.txt") == "hello"
