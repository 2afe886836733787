"""Shared fixtures: generated PDFs and a scriptable decoding engine."""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

import fitz  # PyMuPDF
import pytest

from pdftextmap.engine import DecodedDocument, DecodingEngine, DocumentInfo, RasterBuffer
from pdftextmap.exceptions import LoadError
from pdftextmap.models import BBox, GlyphBox, PageInfo
from pdftextmap.rasterizer import target_size

STUB_BYTES = b"%STUB"


def make_glyph(text: str, x: float, y: float = 0.0, width: float = 0.5, height: float = 2.0) -> GlyphBox:
    return GlyphBox(text=text, bbox=BBox(x, y, width, height), baseline=y + height)


class StubEngine(DecodingEngine):
    """In-memory engine serving hand-built pages."""

    def __init__(
        self,
        pages: Sequence[Tuple[PageInfo, List[GlyphBox]]],
        password: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
        render_failure: Optional[Exception] = None,
        page_failure: Optional[Exception] = None,
        glyph_failure: Optional[Exception] = None
    ):
        self.pages = list(pages)
        self.password = password
        self.metadata = metadata or {}
        self.render_failure = render_failure
        self.page_failure = page_failure
        self.glyph_failure = glyph_failure
        self.glyph_calls = 0
        self.closed = False

    def open(self, data, password=None):
        if data != STUB_BYTES:
            raise LoadError("not a stub document")
        locked = self.password is not None and password != self.password
        if locked:
            return DecodedDocument(handle=self, locked=True)
        return DecodedDocument(handle=self, locked=False, info=self.describe(self))

    def describe(self, handle):
        return DocumentInfo(page_count=len(self.pages), metadata=dict(self.metadata))

    def validate_password(self, handle, password):
        return password == self.password

    def page_info(self, handle, index):
        if self.page_failure is not None:
            raise self.page_failure
        return self.pages[index][0]

    def glyph_boxes(self, handle, index):
        self.glyph_calls += 1
        if self.glyph_failure is not None:
            raise self.glyph_failure
        return list(self.pages[index][1])

    def render_page(self, handle, index, dpi, rotation):
        if self.render_failure is not None:
            raise self.render_failure
        info = self.pages[index][0]
        width, height = target_size(info.width, info.height, dpi, rotation)
        stride = width * 3
        return RasterBuffer(data=bytes(stride * height), width=width, height=height, stride=stride, format='RGB24')

    def close(self, handle):
        self.closed = True


@pytest.fixture
def hello_glyphs():
    """Glyphs for "Hello" (gaps <= 0.4) followed by a distant "W"."""
    return [
        make_glyph("H", 10.0),
        make_glyph("e", 10.9),
        make_glyph("l", 11.6),
        make_glyph("l", 12.1),
        make_glyph("o", 12.6),
        make_glyph("W", 20.0),
    ]


@pytest.fixture
def stub_engine(hello_glyphs):
    return StubEngine(
        pages=[
            (PageInfo(width=100.0, height=50.0), hello_glyphs),
            (PageInfo(width=100.0, height=50.0, rotation=90, duration=2.5), []),
        ],
        metadata={"Title": "Stub"}
    )


def _make_sample_pdf() -> fitz.Document:
    doc = fitz.open()
    page = doc.new_page(width=200, height=300)
    page.insert_text((20, 40), "Hello World", fontsize=12)
    page.insert_text((20, 80), "Second line", fontsize=12)
    doc.xref_set_key(page.xref, "Dur", "5")
    doc.new_page(width=200, height=300)
    doc.set_metadata({"title": "Sample", "author": "Tester"})
    return doc


@pytest.fixture
def sample_pdf_bytes():
    """Two pages: text on the first, blank second page."""
    doc = _make_sample_pdf()
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def sample_pdf_path(tmp_path, sample_pdf_bytes):
    path = tmp_path / "sample.pdf"
    path.write_bytes(sample_pdf_bytes)
    return path


@pytest.fixture
def encrypted_pdf_bytes():
    """One-page PDF that needs the user password "secret"."""
    doc = fitz.open()
    page = doc.new_page(width=200, height=300)
    page.insert_text((20, 40), "Confidential", fontsize=12)
    data = doc.tobytes(
        encryption=fitz.PDF_ENCRYPT_AES_256,
        owner_pw="owner",
        user_pw="secret"
    )
    doc.close()
    return data


@pytest.fixture
def rotated_pdf_bytes():
    """One 200x300 page with /Rotate 90 and text placed before rotating."""
    doc = fitz.open()
    page = doc.new_page(width=200, height=300)
    page.insert_text((20, 40), "Rotated text", fontsize=12)
    page.set_rotation(90)
    data = doc.tobytes()
    doc.close()
    return data
