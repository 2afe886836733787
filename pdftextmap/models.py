"""Data models for positioned text and rendered page images."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from shapely.geometry import MultiPoint

from .config import VALID_ROTATIONS

# Float slack for containment checks on union boxes
_EPSILON = 1e-9


@dataclass(frozen=True)
class BBox:
    """Axis-aligned rectangle in page space (origin top-left, units = points)."""
    x: float
    y: float
    width: float
    height: float

    def __post_init__(self) -> None:
        """Validate BBox data after initialization."""
        coords = (self.x, self.y, self.width, self.height)
        if not all(math.isfinite(coord) for coord in coords):
            raise ValueError(f"BBox contains non-finite values: {coords}")

        if self.width < 0 or self.height < 0:
            raise ValueError(
                f"BBox dimensions must be non-negative: "
                f"width={self.width}, height={self.height}"
            )

    @classmethod
    def from_corners(cls, x0: float, y0: float, x1: float, y1: float) -> BBox:
        """Build a box from two opposite corners in any order."""
        return cls(min(x0, x1), min(y0, y1), abs(x1 - x0), abs(y1 - y0))

    @classmethod
    def union(cls, boxes: Iterable[BBox]) -> BBox:
        """
        Compute the minimal rectangle covering all boxes.

        Degenerate boxes contribute their point location only.

        Args:
            boxes: Boxes to cover

        Returns:
            Union bounding box

        Raises:
            ValueError: If no boxes are given
        """
        points = [point for box in boxes for point in box.corners()]
        if not points:
            raise ValueError("Cannot compute the union of an empty box list")

        x0, y0, x1, y1 = MultiPoint(points).bounds
        return cls.from_corners(x0, y0, x1, y1)

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def is_degenerate(self) -> bool:
        return self.width == 0 or self.height == 0

    def corners(self) -> List[Tuple[float, float]]:
        return [(self.x, self.y), (self.right, self.bottom)]

    def vertical_overlap(self, other: BBox) -> float:
        """Signed overlap of the two vertical bands (negative when apart)."""
        return min(self.bottom, other.bottom) - max(self.y, other.y)

    def contains(self, other: BBox) -> bool:
        return (
            other.x >= self.x - _EPSILON
            and other.y >= self.y - _EPSILON
            and other.right <= self.right + _EPSILON
            and other.bottom <= self.bottom + _EPSILON
        )


@dataclass(frozen=True)
class GlyphBox:
    """
    Smallest positioned unit of decoded text, as delivered by the engine.

    Attributes:
        text: One or more characters
        bbox: Glyph rectangle in unrotated page space
        baseline: Optional baseline y-coordinate hint
    """
    text: str
    bbox: BBox
    baseline: Optional[float] = None

    def __post_init__(self) -> None:
        if not self.text:
            raise ValueError("GlyphBox text must not be empty")

    @property
    def is_whitespace(self) -> bool:
        return not self.text.strip()


@dataclass(frozen=True)
class Word:
    """Glyph boxes merged by adjacency, with their union bounding box."""
    text: str
    bbox: BBox
    glyphs: Tuple[GlyphBox, ...] = ()

    @classmethod
    def from_glyphs(cls, glyphs: Iterable[GlyphBox]) -> Word:
        glyphs = tuple(glyphs)
        if not glyphs:
            raise ValueError("Cannot create word from empty glyph list")

        return cls(
            text=''.join(glyph.text for glyph in glyphs),
            bbox=BBox.union(glyph.bbox for glyph in glyphs),
            glyphs=glyphs
        )


@dataclass(frozen=True)
class Line:
    """Words sharing a horizontal band, ordered left to right."""
    text: str
    bbox: BBox
    words: Tuple[Word, ...] = ()

    @classmethod
    def from_words(cls, words: Iterable[Word]) -> Line:
        """Create a Line, sorting words by x (then y) regardless of input order."""
        ordered = tuple(sorted(words, key=lambda w: (w.bbox.x, w.bbox.y)))
        if not ordered:
            raise ValueError("Cannot create line from empty word list")

        return cls(
            text=' '.join(word.text for word in ordered),
            bbox=BBox.union(word.bbox for word in ordered),
            words=ordered
        )


@dataclass(frozen=True)
class PageLayout:
    """Clustering output for one page: lines in reading order."""
    lines: Tuple[Line, ...] = ()

    @property
    def words(self) -> List[Word]:
        """All words across all lines, in reading order."""
        return [word for line in self.lines for word in line.words]

    @property
    def text(self) -> str:
        return '\n'.join(line.text for line in self.lines)


@dataclass(frozen=True)
class PageInfo:
    """Page geometry reported by the engine (unrotated space)."""
    width: float
    height: float
    rotation: int = 0
    duration: float = 0.0
    x: float = 0.0
    y: float = 0.0

    def __post_init__(self) -> None:
        """Validate PageInfo data after initialization."""
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Invalid page dimensions: {self.width}x{self.height}")

        if self.rotation not in VALID_ROTATIONS:
            raise ValueError(f"Invalid page rotation: {self.rotation}")

        if self.duration < 0:
            raise ValueError(f"duration must be non-negative, got {self.duration}")


@dataclass(frozen=True)
class PageSize:
    """Page dimensions and position."""
    width: float
    height: float
    x: float = 0.0
    y: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {'width': self.width, 'height': self.height, 'x': self.x, 'y': self.y}


@dataclass
class RenderedImage:
    """
    Pixel buffer produced by a render call.

    Attributes:
        data: Raw pixel rows, top to bottom
        width: Image width in pixels
        height: Image height in pixels
        bytes_per_row: Row stride in bytes
        format: Pixel format tag chosen by the engine (e.g. "RGB24")
    """
    data: bytes = field(repr=False)
    width: int
    height: int
    bytes_per_row: int
    format: str

    def __post_init__(self) -> None:
        """Validate RenderedImage data after initialization."""
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"Invalid image dimensions: {self.width}x{self.height}")

        if self.bytes_per_row <= 0:
            raise ValueError(f"bytes_per_row must be positive, got {self.bytes_per_row}")

        expected = self.height * self.bytes_per_row
        if len(self.data) < expected:
            raise ValueError(
                f"Pixel buffer too short: {len(self.data)} bytes, expected at least {expected}"
            )
