"""Page rasterization at a chosen DPI and rotation."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Mapping, Optional, Tuple, Union

from .config import DEFAULT_DPI, VALID_ROTATIONS, RenderConfig
from .exceptions import RenderError
from .models import PageInfo, RenderedImage

if TYPE_CHECKING:
    from .engine import DecodingEngine

logger = logging.getLogger(__name__)

POINTS_PER_INCH = 72.0


def target_size(width: float, height: float, dpi: float, rotation: int) -> Tuple[int, int]:
    """
    Compute output pixel dimensions for a page.

    Args:
        width: Page width in points
        height: Page height in points
        dpi: Render resolution
        rotation: Output rotation in degrees (0, 90, 180, 270)

    Returns:
        Tuple of (width, height) in pixels, swapped for 90 and 270
    """
    # Rounding absorbs float noise such as 1275.0000000002
    px_width = math.ceil(round(width * dpi / POINTS_PER_INCH, 6))
    px_height = math.ceil(round(height * dpi / POINTS_PER_INCH, 6))
    if rotation in (90, 270):
        return px_height, px_width
    return px_width, px_height


@dataclass(frozen=True)
class RenderOptions:
    """Resolution and rotation for a single render call."""
    dpi: float = DEFAULT_DPI
    rotation: int = 0

    def __post_init__(self) -> None:
        """Validate render options, raising RenderError for bad values."""
        dpi = self.dpi
        if isinstance(dpi, bool) or not isinstance(dpi, (int, float)) or not math.isfinite(dpi):
            raise RenderError(f"dpi must be a finite number, got {dpi!r}")
        if dpi <= 0:
            raise RenderError(f"dpi must be positive, got {dpi}")

        if isinstance(self.rotation, bool) or self.rotation not in VALID_ROTATIONS:
            raise RenderError(
                f"rotation must be one of {VALID_ROTATIONS}, got {self.rotation!r}"
            )

    @classmethod
    def coerce(
        cls,
        options: Union[RenderOptions, Mapping[str, Any], None] = None,
        default_dpi: float = DEFAULT_DPI
    ) -> RenderOptions:
        """
        Build RenderOptions from None, a mapping or an existing instance.

        Args:
            options: {"dpi": ..., "rotation": ...} mapping, instance, or None
            default_dpi: dpi used when the mapping has none

        Returns:
            Validated RenderOptions

        Raises:
            RenderError: If options hold unknown keys or invalid values
        """
        if isinstance(options, RenderOptions):
            return options

        if options is None:
            return cls(dpi=default_dpi)

        if not isinstance(options, Mapping):
            raise RenderError(
                f"Render options must be a mapping or RenderOptions, got {type(options).__name__}"
            )

        unknown = set(options) - {'dpi', 'rotation'}
        if unknown:
            raise RenderError(f"Unknown render options: {sorted(unknown)}")

        dpi = options.get('dpi')
        rotation = options.get('rotation')
        return cls(
            dpi=default_dpi if dpi is None else dpi,
            rotation=0 if rotation is None else rotation
        )


class PageRasterizer:
    """Request pixel buffers from the decoding engine and wrap them."""

    def __init__(self, engine: DecodingEngine, config: Optional[RenderConfig] = None):
        """
        Initialize PageRasterizer.

        Args:
            engine: Engine that produces the pixels
            config: Render defaults and limits. Defaults to RenderConfig().
        """
        self.engine = engine
        self.config = config or RenderConfig()

    def render(
        self,
        handle: Any,
        index: int,
        page_info: PageInfo,
        options: Union[RenderOptions, Mapping[str, Any], None] = None
    ) -> RenderedImage:
        """
        Render one page.

        Args:
            handle: Engine handle of the open document
            index: Page number (0-indexed)
            page_info: Geometry of the page
            options: Render options (dpi, rotation)

        Returns:
            RenderedImage with dimensions, stride and format

        Raises:
            RenderError: If options are invalid, the target is too large,
                or the engine fails
        """
        opts = RenderOptions.coerce(options, default_dpi=self.config.default_dpi)
        width, height = target_size(page_info.width, page_info.height, opts.dpi, opts.rotation)

        if max(width, height) > self.config.max_dimension:
            error_msg = (
                f"Render target {width}x{height} exceeds the maximum dimension "
                f"of {self.config.max_dimension} pixels"
            )
            logger.error(error_msg)
            raise RenderError(error_msg)

        try:
            buffer = self.engine.render_page(handle, index, opts.dpi, opts.rotation)
        except RenderError:
            raise
        except Exception as e:
            error_msg = f"Failed to render page {index}: {str(e)}"
            logger.error(error_msg)
            raise RenderError(error_msg) from e

        if (buffer.width, buffer.height) != (width, height):
            logger.warning(
                f"Engine produced {buffer.width}x{buffer.height} pixels for page {index}, "
                f"expected {width}x{height}"
            )

        try:
            image = RenderedImage(
                data=buffer.data,
                width=buffer.width,
                height=buffer.height,
                bytes_per_row=buffer.stride,
                format=buffer.format
            )
        except ValueError as e:
            error_msg = f"Engine returned an invalid buffer for page {index}: {str(e)}"
            logger.error(error_msg)
            raise RenderError(error_msg) from e

        logger.debug(
            f"Rendered page {index} at {opts.dpi} dpi, rotation {opts.rotation}: "
            f"{image.width}x{image.height} {image.format}"
        )
        return image
