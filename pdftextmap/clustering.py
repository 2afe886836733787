"""Grouping of glyph boxes into words and lines in reading order."""

from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

from .config import ClusteringConfig
from .models import BBox, GlyphBox, Line, PageLayout, Word

logger = logging.getLogger(__name__)


def bands_overlap(box1: BBox, box2: BBox, fraction: float) -> bool:
    """
    Check whether two boxes share a horizontal band.

    The vertical overlap must exceed `fraction` of the shorter height. A
    zero-height box only needs its point location to fall inside the band.

    Args:
        box1: First box
        box2: Second box
        fraction: Required overlap as a fraction of the shorter height (0.0-1.0)

    Returns:
        True if the boxes overlap enough vertically
    """
    overlap = box1.vertical_overlap(box2)
    shorter = min(box1.height, box2.height)
    if shorter <= 0:
        return overlap >= 0
    return overlap > fraction * shorter


def overlap_ratio(box1: BBox, box2: BBox) -> float:
    """Vertical overlap as a fraction of the shorter height (1.0 for a contained point)."""
    shorter = min(box1.height, box2.height)
    if shorter <= 0:
        return 1.0 if box1.vertical_overlap(box2) >= 0 else 0.0
    return box1.vertical_overlap(box2) / shorter


def horizontal_gap(left: BBox, right: BBox) -> float:
    """Distance from the right edge of `left` to the left edge of `right`."""
    return right.x - left.right


class GlyphClusterer:
    """Cluster glyph boxes into words, and words into lines."""

    def __init__(self, config: Optional[ClusteringConfig] = None):
        """
        Initialize GlyphClusterer.

        Args:
            config: Clustering thresholds. Defaults to ClusteringConfig().
        """
        self.config = config or ClusteringConfig()

    def cluster(self, glyphs: Iterable[GlyphBox]) -> PageLayout:
        """
        Build the line/word hierarchy for one page.

        Args:
            glyphs: Glyph boxes as delivered by the decoding engine

        Returns:
            PageLayout with lines in reading order (empty for no glyphs)
        """
        glyphs = list(glyphs)
        if not glyphs:
            return PageLayout()

        if self.config.sort_glyphs:
            glyphs = self.order_glyphs(glyphs)

        words = self.form_words(glyphs)
        lines = self.form_lines(words)

        logger.debug(
            f"Clustered {len(glyphs)} glyphs into {len(words)} words "
            f"and {len(lines)} lines"
        )
        return PageLayout(lines=tuple(lines))

    def order_glyphs(self, glyphs: Sequence[GlyphBox]) -> List[GlyphBox]:
        """
        Sort glyphs into reading order.

        Glyphs are collected into horizontal bands using the word overlap
        rule; bands are ordered top to bottom, glyphs in a band left to right.

        Each band keeps the box of the glyph that started it. Shorter glyphs
        start bands first, so a drop cap or a tall bracket spanning several
        lines joins the band it overlaps best instead of fusing those lines.

        Args:
            glyphs: Glyph boxes in any order

        Returns:
            New list of the same glyph boxes in reading order
        """
        fraction = self.config.word_vertical_overlap
        seed_boxes: List[BBox] = []
        band_glyphs: List[List[GlyphBox]] = []

        # Zero-height glyphs go last so they join a band instead of starting one
        seed_order = sorted(
            glyphs,
            key=lambda g: (g.bbox.height == 0, g.bbox.height, g.bbox.y, g.bbox.x)
        )
        for glyph in seed_order:
            best, best_score = None, -1.0
            for i, seed_box in enumerate(seed_boxes):
                if not bands_overlap(seed_box, glyph.bbox, fraction):
                    continue
                score = overlap_ratio(seed_box, glyph.bbox)
                if score > best_score:
                    best, best_score = i, score

            if best is None:
                seed_boxes.append(glyph.bbox)
                band_glyphs.append([glyph])
            else:
                band_glyphs[best].append(glyph)

        band_boxes = [BBox.union([g.bbox for g in members]) for members in band_glyphs]
        order = sorted(range(len(band_boxes)), key=lambda i: (band_boxes[i].y, band_boxes[i].x))

        ordered = []
        for i in order:
            ordered.extend(sorted(band_glyphs[i], key=lambda g: (g.bbox.x, g.bbox.y)))
        return ordered

    def continues_word(self, previous: GlyphBox, glyph: GlyphBox) -> bool:
        """
        Check whether `glyph` extends the word ending with `previous`.

        Args:
            previous: Last glyph of the current word
            glyph: Candidate glyph

        Returns:
            True if both glyphs share a band and the gap is small enough
        """
        if not bands_overlap(previous.bbox, glyph.bbox, self.config.word_vertical_overlap):
            return False

        # Never merge backwards
        if glyph.bbox.x < previous.bbox.x:
            return False

        local_height = max(previous.bbox.height, glyph.bbox.height)
        threshold = self.config.horizontal_gap_factor * local_height
        return horizontal_gap(previous.bbox, glyph.bbox) <= threshold

    def form_words(self, glyphs: Iterable[GlyphBox]) -> List[Word]:
        """
        Merge consecutive glyphs into words.

        Whitespace glyphs end the current word and are not part of any word.

        Args:
            glyphs: Glyph boxes in scan order

        Returns:
            Words in scan order
        """
        words = []
        current: List[GlyphBox] = []

        for glyph in glyphs:
            if glyph.is_whitespace:
                if current:
                    words.append(Word.from_glyphs(current))
                current = []
                continue

            if current and self.continues_word(current[-1], glyph):
                current.append(glyph)
            else:
                if current:
                    words.append(Word.from_glyphs(current))
                current = [glyph]

        if current:
            words.append(Word.from_glyphs(current))

        return words

    def form_lines(self, words: Iterable[Word]) -> List[Line]:
        """
        Group words sharing a horizontal band into lines.

        Args:
            words: Words in any order

        Returns:
            Lines ordered by y then x, words in each line ordered by x
        """
        fraction = self.config.line_vertical_overlap
        groups: List[List[Word]] = []
        boxes: List[BBox] = []

        for word in sorted(words, key=lambda w: (w.bbox.y + w.bbox.height / 2, w.bbox.x)):
            for i, box in enumerate(boxes):
                if bands_overlap(box, word.bbox, fraction):
                    groups[i].append(word)
                    boxes[i] = BBox.union([box, word.bbox])
                    break
            else:
                groups.append([word])
                boxes.append(word.bbox)

        self._merge_overlapping_groups(groups, boxes)

        lines = [Line.from_words(group) for group in groups]
        lines.sort(key=lambda line: (line.bbox.y, line.bbox.x))
        return lines

    def _merge_overlapping_groups(self, groups: List[List[Word]], boxes: List[BBox]) -> None:
        """
        Merge word groups whose boxes grew into each other's band.

        Works in place until no two boxes overlap beyond the line tolerance.
        """
        fraction = self.config.line_vertical_overlap
        merged = True
        while merged:
            merged = False
            for i in range(len(boxes)):
                for j in range(i + 1, len(boxes)):
                    if bands_overlap(boxes[i], boxes[j], fraction):
                        groups[i].extend(groups.pop(j))
                        boxes[i] = BBox.union([boxes[i], boxes.pop(j)])
                        logger.debug(f"Merged overlapping line groups {i} and {j}")
                        merged = True
                        break
                if merged:
                    break
