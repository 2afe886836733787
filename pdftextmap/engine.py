"""Decoding engine boundary and its PyMuPDF implementation."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import fitz  # PyMuPDF

from .exceptions import DecodeError, LoadError, RenderError
from .models import BBox, GlyphBox, PageInfo
from .rasterizer import target_size

logger = logging.getLogger(__name__)

# PDF Info dictionary names for PyMuPDF metadata keys
METADATA_KEYS = (
    ('title', 'Title'),
    ('author', 'Author'),
    ('subject', 'Subject'),
    ('keywords', 'Keywords'),
    ('creator', 'Creator'),
    ('producer', 'Producer'),
    ('creationDate', 'CreationDate'),
    ('modDate', 'ModDate'),
    ('trapped', 'Trapped'),
)

GLYPH_FLAGS = (
    fitz.TEXT_PRESERVE_WHITESPACE
    | fitz.TEXT_PRESERVE_LIGATURES
    | fitz.TEXT_MEDIABOX_CLIP
)


@dataclass
class DocumentInfo:
    """Document-level facts available once a document is unlocked."""
    page_count: int = 0
    metadata: Dict[str, str] = field(default_factory=dict)


@dataclass
class DecodedDocument:
    """Result of opening a document: an opaque engine handle plus lock state."""
    handle: Any
    locked: bool
    info: DocumentInfo = field(default_factory=DocumentInfo)


@dataclass
class RasterBuffer:
    """Raw pixels as produced by an engine."""
    data: bytes = field(repr=False)
    width: int
    height: int
    stride: int
    format: str


class DecodingEngine(ABC):
    """
    Capability that turns raw document bytes into pages, glyphs and pixels.

    Handles returned by open() are opaque to callers and only passed back
    into the same engine.
    """

    @abstractmethod
    def open(self, data: bytes, password: Optional[str] = None) -> DecodedDocument:
        """
        Open a document from bytes.

        Raises:
            LoadError: If the bytes are not a readable document
        """

    @abstractmethod
    def describe(self, handle: Any) -> DocumentInfo:
        """Read page count and metadata of an unlocked document."""

    @abstractmethod
    def validate_password(self, handle: Any, password: str) -> bool:
        """Try a password; True unlocks the handle."""

    @abstractmethod
    def page_info(self, handle: Any, index: int) -> PageInfo:
        """Geometry of one page."""

    @abstractmethod
    def glyph_boxes(self, handle: Any, index: int) -> List[GlyphBox]:
        """Glyph boxes of one page in unrotated page space."""

    @abstractmethod
    def render_page(self, handle: Any, index: int, dpi: float, rotation: int) -> RasterBuffer:
        """Rasterize one page."""

    def close(self, handle: Any) -> None:
        """Release the native resources behind a handle."""


class PyMuPDFEngine(DecodingEngine):
    """DecodingEngine backed by PyMuPDF (fitz)."""

    def open(self, data: bytes, password: Optional[str] = None) -> DecodedDocument:
        """
        Open PDF bytes and authenticate when a password is given.

        Args:
            data: Raw document bytes
            password: Optional password for encrypted documents

        Returns:
            DecodedDocument, locked when a required password is missing or wrong

        Raises:
            LoadError: If bytes are empty, unreadable or hold no pages
        """
        if not data:
            error_msg = "Document buffer is empty"
            logger.error(error_msg)
            raise LoadError(error_msg)

        try:
            pdf_document = fitz.open(stream=bytes(data), filetype="pdf")
        except Exception as e:
            error_msg = f"Failed to open document. Error: {str(e)}"
            logger.error(error_msg)
            raise LoadError(error_msg) from e

        locked = bool(pdf_document.needs_pass)
        if locked and password is not None:
            if pdf_document.authenticate(password):
                locked = False
                logger.info("Document decrypted successfully")
            else:
                logger.warning("Supplied password was rejected, document stays locked")

        if locked:
            logger.info("Document is encrypted and requires a password")
            return DecodedDocument(handle=pdf_document, locked=True)

        info = self.describe(pdf_document)
        if info.page_count == 0:
            pdf_document.close()
            error_msg = "Document contains no pages"
            logger.error(error_msg)
            raise LoadError(error_msg)

        logger.info(f"Document opened successfully ({info.page_count} page(s))")
        return DecodedDocument(handle=pdf_document, locked=False, info=info)

    def describe(self, handle: fitz.Document) -> DocumentInfo:
        """
        Read page count and Info dictionary metadata.

        Standard keys come from PyMuPDF's decoded metadata; any other Info
        entries with scalar values follow under their own names. Empty
        values are omitted.
        """
        metadata = {}
        raw_metadata = handle.metadata or {}
        for source_key, info_key in METADATA_KEYS:
            self._add_metadata(metadata, info_key, raw_metadata.get(source_key))

        for info_key, value in self._custom_info_entries(handle):
            self._add_metadata(metadata, info_key, value)

        return DocumentInfo(page_count=handle.page_count, metadata=metadata)

    def _add_metadata(self, metadata: Dict[str, str], key: str, value: Any) -> None:
        if value is None or key in metadata:
            return
        value = str(value).strip()
        if value:
            metadata[key] = value

    def _custom_info_entries(self, handle: fitz.Document) -> List[Tuple[str, str]]:
        """Collect trailer /Info entries beyond the standard keys."""
        try:
            kind, ref = handle.xref_get_key(-1, "Info")
            if kind != 'xref':
                return []
            info_xref = int(ref.split()[0])
            keys = handle.xref_get_keys(info_xref)
        except Exception as e:
            logger.warning(f"Could not read the document Info dictionary: {e}")
            return []

        standard = {info_key for _, info_key in METADATA_KEYS}
        entries = []
        for key in keys:
            if key in standard:
                continue
            kind, value = handle.xref_get_key(info_xref, key)
            if kind in ('string', 'int', 'float', 'real', 'bool'):
                entries.append((key, value))
            elif kind == 'name':
                entries.append((key, value.lstrip('/')))
        return entries

    def validate_password(self, handle: fitz.Document, password: str) -> bool:
        try:
            return bool(handle.authenticate(password))
        except Exception as e:
            logger.warning(f"Password validation failed: {e}")
            return False

    def page_info(self, handle: fitz.Document, index: int) -> PageInfo:
        """
        Get unrotated page geometry, rotation and presentation duration.

        Raises:
            DecodeError: If the page cannot be loaded
        """
        try:
            page = handle.load_page(index)
            rect = page.cropbox
            return PageInfo(
                width=rect.width,
                height=rect.height,
                rotation=page.rotation % 360,
                duration=self._page_duration(handle, page),
                x=rect.x0,
                y=rect.y0
            )
        except Exception as e:
            error_msg = f"Failed to read page {index}: {str(e)}"
            logger.error(error_msg)
            raise DecodeError(error_msg) from e

    def _page_duration(self, handle: fitz.Document, page: fitz.Page) -> float:
        """Read the /Dur page key (seconds), 0.0 when absent."""
        kind, value = handle.xref_get_key(page.xref, "Dur")
        if kind in ('int', 'float', 'real'):
            return max(float(value), 0.0)
        return 0.0

    def glyph_boxes(self, handle: fitz.Document, index: int) -> List[GlyphBox]:
        """
        Extract character-level glyph boxes from a page.

        PyMuPDF reports character boxes in unrotated page space, so rotated
        pages need no extra transform; rotation stays page metadata.

        Args:
            handle: Open PyMuPDF document
            index: Page number (0-indexed)

        Returns:
            Glyph boxes in content-stream order

        Raises:
            DecodeError: If text extraction fails
        """
        try:
            page = handle.load_page(index)
            raw = page.get_text("rawdict", flags=GLYPH_FLAGS)
        except Exception as e:
            error_msg = f"Failed to extract glyphs from page {index}: {str(e)}"
            logger.error(error_msg)
            raise DecodeError(error_msg) from e

        glyphs = []
        for block in raw.get("blocks", []):
            # Image blocks carry no characters
            if block.get("type", 0) != 0:
                continue

            for line in block.get("lines", []):
                for span in line.get("spans", []):
                    for char in span.get("chars", []):
                        glyph = self._make_glyph(char)
                        if glyph is not None:
                            glyphs.append(glyph)

        logger.debug(f"Extracted {len(glyphs)} glyph boxes from page {index}")
        return glyphs

    def _make_glyph(self, char: Dict[str, Any]) -> Optional[GlyphBox]:
        text = char.get("c", "")
        if not text:
            return None

        rect = fitz.Rect(char["bbox"])
        origin = fitz.Point(char["origin"])

        try:
            bbox = BBox.from_corners(rect.x0, rect.y0, rect.x1, rect.y1)
        except ValueError as e:
            logger.warning(f"Skipping glyph {text!r} with invalid bbox {tuple(rect)}: {e}")
            return None

        return GlyphBox(text=text, bbox=bbox, baseline=origin.y)

    def render_page(self, handle: fitz.Document, index: int, dpi: float, rotation: int) -> RasterBuffer:
        """
        Rasterize a page in unrotated orientation, then apply the requested rotation.

        The scale is chosen so the unrotated pixmap measures exactly
        ceil(points * dpi / 72) on each side.

        Raises:
            RenderError: If PyMuPDF cannot produce a pixmap
        """
        try:
            page = handle.load_page(index)
            rect = page.cropbox
            width_px, height_px = target_size(rect.width, rect.height, dpi, 0)

            matrix = page.derotation_matrix * fitz.Matrix(
                width_px / rect.width, height_px / rect.height
            )
            if rotation:
                matrix = matrix * fitz.Matrix(rotation)

            pixmap = page.get_pixmap(matrix=matrix, alpha=False)
        except Exception as e:
            error_msg = f"Failed to render page {index} at {dpi} dpi: {str(e)}"
            logger.error(error_msg)
            raise RenderError(error_msg) from e

        pixel_format = {3: 'RGB24', 4: 'RGBA32', 1: 'GRAY8'}.get(pixmap.n, f'N{pixmap.n}')
        return RasterBuffer(
            data=pixmap.samples,
            width=pixmap.width,
            height=pixmap.height,
            stride=pixmap.stride,
            format=pixel_format
        )

    def close(self, handle: fitz.Document) -> None:
        handle.close()
        logger.info("PDF document closed")
