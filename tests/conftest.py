"""
Shared fixtures for the docqa_bridge test suite.

Provides:
- an isolated ROOT_DIR so log files land in a temporary directory
- FakeLLMClient: deterministic bag-of-words embedder and scripted token stream
- make_pdf / make_docx / corrupt_zip_member: real upload payloads for the extractor
- helper_config / store / repository fixtures
"""
import io
import logging
import os
import re
import struct
import tempfile
import zipfile
import zlib

import httpx
import pytest
from docx import Document as DocxDocument

# logging_setup writes to <ROOT_DIR>/logs, keep test runs out of the working tree
os.environ.setdefault("ROOT_DIR", tempfile.mkdtemp(prefix="docqa_tests_"))

from shared.helper.HelperConfig import HelperConfig
from shared.stores.ScopedRepository import ScopedRepository
from shared.stores.memory.StoreMemory import StoreMemory

VOCABULARY = ("alpha", "bravo", "charlie", "delta")
_WORD = re.compile(r"[a-z]+")


def embed_words(text: str) -> list[float]:
    """Count vocabulary words in text, one dimension per word."""
    words = _WORD.findall(text.lower())
    return [float(words.count(term)) for term in VOCABULARY]


def three_topic_text() -> str:
    """Three paragraphs that the default splitter turns into exactly three chunks.

    Chunk 0 is about alpha, chunk 1 about bravo, chunk 2 about charlie
    (each chunk also carries a short overlap from the paragraph before).
    """
    return "\n\n".join([
        " ".join(["alpha"] * 70),
        " ".join(["bravo"] * 70),
        " ".join(["charlie"] * 50),
    ])


def make_pdf(lines: list[str], compress: bool = True) -> bytes:
    """Single-page PDF showing each line with Helvetica, content stream FlateDecode'd by default."""
    operators = ["BT /F1 12 Tf 72 720 Td"]
    for index, line in enumerate(lines):
        if index:
            operators.append("0 -16 Td")
        operators.append(f"({line}) Tj")
    operators.append("ET")
    content = " ".join(operators).encode("latin-1")
    stream_filter = ""
    if compress:
        content = zlib.compress(content)
        stream_filter = " /Filter /FlateDecode"

    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        b"/Resources << /Font << /F1 4 0 R >> >> /Contents 5 0 R >>",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
        f"<< /Length {len(content)}{stream_filter} >>\nstream\n".encode("ascii") + content + b"\nendstream",
    ]
    pdf = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(pdf))
        pdf += f"{number} 0 obj\n".encode("ascii") + body + b"\nendobj\n"
    xref_offset = len(pdf)
    pdf += f"xref\n0 {len(objects) + 1}\n0000000000 65535 f \n".encode("ascii")
    for offset in offsets:
        pdf += f"{offset:010d} 00000 n \n".encode("ascii")
    pdf += f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\nstartxref\n{xref_offset}\n%%EOF\n".encode("ascii")
    return bytes(pdf)


def make_docx(paragraphs: list[str]) -> bytes:
    document = DocxDocument()
    for text in paragraphs:
        document.add_paragraph(text)
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def corrupt_zip_member(data: bytes, member: str, length: int = 20) -> bytes:
    """Flip the first bytes of a member's compressed payload, leaving the archive directory intact."""
    info = zipfile.ZipFile(io.BytesIO(data)).getinfo(member)
    name_length, extra_length = struct.unpack("<HH", data[info.header_offset + 26:info.header_offset + 30])
    start = info.header_offset + 30 + name_length + extra_length
    corrupted = bytearray(data)
    for position in range(start, start + min(length, info.compress_size)):
        corrupted[position] ^= 0xFF
    return bytes(corrupted)


class FakeLLMClient:
    """Stands in for an LLM client without any network access.

    Args:
        reply: Fragments yielded by do_chat_stream().
        fail_embed_for: Texts containing any of these markers fail to embed.
        fail_chat_at: Index of the fragment at which the stream raises, None to never fail.
    """

    embed_model = "fake-embed"
    chat_model = "fake-chat"

    def __init__(self, reply=("Hello", " world"), fail_embed_for=(), fail_chat_at=None):
        self.reply = list(reply)
        self.fail_embed_for = tuple(fail_embed_for)
        self.fail_chat_at = fail_chat_at
        self.embedded: list[str] = []
        self.chat_calls: list[list[dict]] = []
        self.booted = False
        self.closed = False

    async def boot(self, transport=None) -> None:
        self.booted = True

    async def close(self) -> None:
        self.closed = True

    async def do_healthcheck(self) -> httpx.Response:
        return httpx.Response(200)

    async def do_embed_text(self, text: str) -> list[float]:
        self.embedded.append(text)
        if any(marker in text for marker in self.fail_embed_for):
            raise Exception("embedding backend unavailable")
        return embed_words(text)

    async def do_embed(self, texts: list[str]) -> list[list[float]]:
        return [await self.do_embed_text(text) for text in texts]

    async def do_chat_stream(self, messages: list[dict]):
        self.chat_calls.append(messages)
        for index, fragment in enumerate(self.reply):
            if index == self.fail_chat_at:
                raise Exception("generator failed")
            yield fragment


@pytest.fixture
def helper_config() -> HelperConfig:
    return HelperConfig(logger=logging.getLogger("docqa_bridge.tests"))


@pytest.fixture
def store(helper_config) -> StoreMemory:
    return StoreMemory(helper_config=helper_config)


@pytest.fixture
def llm_client() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
def repository(store) -> ScopedRepository:
    return ScopedRepository(store, "user_1_aaaaaaaaa")
