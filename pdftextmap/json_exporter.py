"""Format extracted page layouts as JSON-ready trees."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional

from .exceptions import JSONExportError
from .models import BBox, Line, PageInfo, PageLayout, Word

if TYPE_CHECKING:
    from .document import Document

logger = logging.getLogger(__name__)


class JSONExporter:
    """Export page layouts to the page-level JSON tree."""

    @staticmethod
    def format_bbox(bbox: BBox) -> Dict[str, float]:
        return {"x": bbox.x, "y": bbox.y, "width": bbox.width, "height": bbox.height}

    def format_word(self, word: Word) -> Dict[str, Any]:
        return {"text": word.text, "bbox": self.format_bbox(word.bbox)}

    def format_line(self, line: Line) -> Dict[str, Any]:
        return {
            "text": line.text,
            "bbox": self.format_bbox(line.bbox),
            "words": [self.format_word(word) for word in line.words]
        }

    def format_page(self, page_info: PageInfo, layout: PageLayout) -> Dict[str, Any]:
        """
        Format one page's metadata and line/word hierarchy.

        Args:
            page_info: Page geometry
            layout: Clustering output for the page

        Returns:
            Dictionary {"page": {...}, "lines": [...]}, built fresh on every call
        """
        return {
            "page": {
                "width": page_info.width,
                "height": page_info.height,
                "rotation": page_info.rotation
            },
            "lines": [self.format_line(line) for line in layout.lines]
        }

    def format_text_boxes(self, words: Iterable[Word]) -> List[Dict[str, Any]]:
        """Format a flat word list as [{"text", "bbox"}]."""
        return [self.format_word(word) for word in words]

    def format_document(
        self,
        document: Document,
        page_indices: Optional[List[int]] = None
    ) -> Dict[str, Any]:
        """
        Format several pages of an unlocked document.

        Args:
            document: Unlocked Document
            page_indices: Optional list of page numbers (0-indexed).
                         If None, formats all pages.

        Returns:
            Dictionary with name, page count, metadata and page trees
        """
        total_pages = document.get_page_count()

        if page_indices is None:
            pages_to_process = list(range(total_pages))
        else:
            pages_to_process = []
            for page_num in page_indices:
                if page_num < 0 or page_num >= total_pages:
                    logger.warning(f"Page {page_num} is out of range (0-{total_pages-1}), skipping")
                    continue
                pages_to_process.append(page_num)

        pages = [document.get_page(page_num).export_to_json() for page_num in pages_to_process]
        logger.info(f"Formatted {len(pages)} page(s) of {document.name}")

        return {
            "name": document.name,
            "page_count": total_pages,
            "metadata": document.get_metadata(),
            "pages": pages
        }

    def to_json(self, data: Dict[str, Any], indent: Optional[int] = 2) -> str:
        """
        Serialize a formatted tree to JSON text.

        Args:
            data: Tree returned by one of the format_* methods
            indent: Indentation width, None for compact output

        Returns:
            JSON string

        Raises:
            JSONExportError: If the data cannot be serialized
        """
        try:
            return json.dumps(data, indent=indent, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            error_msg = f"Failed to export JSON: {str(e)}"
            logger.error(error_msg)
            raise JSONExportError(error_msg) from e
