"""Custom exception classes for pdftextmap errors."""

from __future__ import annotations


class PDFTextMapException(Exception):
    """Base exception for pdftextmap errors."""
    pass


class LoadError(PDFTextMapException):
    """Raised when a document cannot be opened or is corrupt."""
    pass


class LockedDocumentError(PDFTextMapException):
    """Raised when an operation needs an unlocked document."""
    pass


class IndexOutOfRangeError(PDFTextMapException, IndexError):
    """Raised when a page index is outside the document."""
    pass


class RenderError(PDFTextMapException):
    """Raised when rasterization fails or render options are invalid."""
    pass


class DecodeError(PDFTextMapException):
    """Raised when the decoding engine fails while querying a page."""
    pass


class DocumentClosedError(DecodeError):
    """Raised when a closed document is queried."""
    pass


class JSONExportError(PDFTextMapException):
    """Raised when JSON export fails."""
    pass
