"""Positioned text extraction and page rasterization for PDF documents."""

from __future__ import annotations

from .clustering import GlyphClusterer
from .config import ClusteringConfig, RenderConfig, configure_logging
from .document import Document, Page
from .engine import DecodingEngine, PyMuPDFEngine
from .exceptions import (
    DecodeError,
    DocumentClosedError,
    IndexOutOfRangeError,
    JSONExportError,
    LoadError,
    LockedDocumentError,
    PDFTextMapException,
    RenderError,
)
from .json_exporter import JSONExporter
from .models import BBox, GlyphBox, Line, PageInfo, PageLayout, PageSize, RenderedImage, Word
from .rasterizer import PageRasterizer, RenderOptions

__version__ = "0.1.0"

__all__ = [
    "BBox",
    "ClusteringConfig",
    "DecodeError",
    "DecodingEngine",
    "Document",
    "DocumentClosedError",
    "GlyphBox",
    "GlyphClusterer",
    "IndexOutOfRangeError",
    "JSONExportError",
    "JSONExporter",
    "Line",
    "LoadError",
    "LockedDocumentError",
    "PDFTextMapException",
    "Page",
    "PageInfo",
    "PageLayout",
    "PageRasterizer",
    "PageSize",
    "PyMuPDFEngine",
    "RenderConfig",
    "RenderError",
    "RenderOptions",
    "RenderedImage",
    "Word",
    "configure_logging",
    "__version__",
]
