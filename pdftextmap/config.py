"""Tunable settings for clustering and rendering, plus logging setup."""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Default clustering thresholds
VERTICAL_OVERLAP_DEFAULT = 0.5
HORIZONTAL_GAP_FACTOR_DEFAULT = 0.35

# Default render settings
DEFAULT_DPI = 150.0
MAX_RENDER_DIMENSION_DEFAULT = 20000
VALID_ROTATIONS = (0, 90, 180, 270)

LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR')
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


@dataclass(frozen=True)
class ClusteringConfig:
    """Thresholds used when grouping glyph boxes into words and lines.

    Attributes:
        word_vertical_overlap: Fraction of the shorter glyph height two glyphs
            must overlap vertically to belong to the same word (0.0-1.0)
        line_vertical_overlap: Fraction of the shorter word height two words
            must overlap vertically to share a line (0.0-1.0)
        horizontal_gap_factor: Largest gap between consecutive glyphs of one
            word, as a multiple of the local glyph height
        sort_glyphs: Re-sort glyphs into reading order before clustering
            instead of trusting the engine's delivery order
    """
    word_vertical_overlap: float = VERTICAL_OVERLAP_DEFAULT
    line_vertical_overlap: float = VERTICAL_OVERLAP_DEFAULT
    horizontal_gap_factor: float = HORIZONTAL_GAP_FACTOR_DEFAULT
    sort_glyphs: bool = True

    def __post_init__(self) -> None:
        """Validate threshold ranges."""
        for name in ('word_vertical_overlap', 'line_vertical_overlap'):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be between 0.0 and 1.0, got {value}")

        if self.horizontal_gap_factor < 0.0:
            raise ValueError(
                f"horizontal_gap_factor must be non-negative, got {self.horizontal_gap_factor}"
            )


@dataclass(frozen=True)
class RenderConfig:
    """Rasterization defaults and limits.

    Attributes:
        default_dpi: Resolution used when a render call gives none
        max_dimension: Largest allowed width or height of a rendered image, in pixels
    """
    default_dpi: float = DEFAULT_DPI
    max_dimension: int = MAX_RENDER_DIMENSION_DEFAULT

    def __post_init__(self) -> None:
        if self.default_dpi <= 0:
            raise ValueError(f"default_dpi must be positive, got {self.default_dpi}")
        if self.max_dimension < 1:
            raise ValueError(f"max_dimension must be at least 1, got {self.max_dimension}")


def configure_logging(log_level: str = 'INFO') -> None:
    """
    Configure root logging with the package's format.

    Args:
        log_level: One of DEBUG, INFO, WARNING, ERROR

    Raises:
        ValueError: If log_level is not supported
    """
    level_name = log_level.upper()
    if level_name not in LOG_LEVELS:
        raise ValueError(f"Unsupported log level: {log_level}")

    logging.basicConfig(
        level=getattr(logging, level_name),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT
    )
    logger.debug(f"Logging configured at level {level_name}")
