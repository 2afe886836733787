"""Document and page object model."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Union

from .clustering import GlyphClusterer
from .config import ClusteringConfig, RenderConfig
from .engine import DecodedDocument, DecodingEngine, PyMuPDFEngine
from .exceptions import (
    DocumentClosedError,
    IndexOutOfRangeError,
    LoadError,
    LockedDocumentError,
)
from .json_exporter import JSONExporter
from .models import PageInfo, PageLayout, PageSize, RenderedImage, Word
from .rasterizer import PageRasterizer, RenderOptions

logger = logging.getLogger(__name__)

BUFFER_NAME = "<buffer>"


class Document:
    """
    A loaded document and its lock state.

    Use load_from_file() or load_from_buffer() to create one. The document
    owns its engine handle; release it with close() or a `with` block.
    Engine calls are serialized per document, so pages of one document can
    be queried from several threads.
    """

    def __init__(
        self,
        decoded: DecodedDocument,
        engine: DecodingEngine,
        name: str = BUFFER_NAME,
        clustering_config: Optional[ClusteringConfig] = None,
        render_config: Optional[RenderConfig] = None
    ):
        self._handle = decoded.handle
        self._locked = decoded.locked
        self._page_count = decoded.info.page_count
        self._metadata = dict(decoded.info.metadata)
        self._engine = engine
        self._name = name
        self._closed = False
        self._lock = threading.RLock()
        self._layouts: Dict[int, PageLayout] = {}

        self.clusterer = GlyphClusterer(clustering_config)
        self.rasterizer = PageRasterizer(engine, render_config)
        self.exporter = JSONExporter()

    @classmethod
    def load_from_file(
        cls,
        path: Union[str, Path],
        password: Optional[str] = None,
        engine: Optional[DecodingEngine] = None,
        clustering_config: Optional[ClusteringConfig] = None,
        render_config: Optional[RenderConfig] = None
    ) -> Document:
        """
        Load a document from a file path.

        Args:
            path: Path to the document
            password: Optional password for encrypted documents
            engine: Decoding engine, PyMuPDFEngine by default
            clustering_config: Word/line clustering thresholds
            render_config: Render defaults and limits

        Returns:
            Document, locked if a required password is missing or wrong

        Raises:
            LoadError: If the file is missing or not a readable document
        """
        path = Path(path)
        if not path.exists():
            error_msg = f"PDF file not found: {path}"
            logger.error(error_msg)
            raise LoadError(error_msg)

        if not path.is_file():
            error_msg = f"Path is not a file: {path}"
            logger.error(error_msg)
            raise LoadError(error_msg)

        try:
            data = path.read_bytes()
        except OSError as e:
            error_msg = f"Failed to read PDF file: {path}. Error: {str(e)}"
            logger.error(error_msg)
            raise LoadError(error_msg) from e

        logger.info(f"Loading PDF: {path}")
        return cls._load(data, password, engine, path.name, clustering_config, render_config)

    @classmethod
    def load_from_buffer(
        cls,
        data: bytes,
        password: Optional[str] = None,
        engine: Optional[DecodingEngine] = None,
        clustering_config: Optional[ClusteringConfig] = None,
        render_config: Optional[RenderConfig] = None
    ) -> Document:
        """
        Load a document from bytes.

        Same arguments and failures as load_from_file(), with raw bytes
        instead of a path.
        """
        return cls._load(data, password, engine, BUFFER_NAME, clustering_config, render_config)

    @classmethod
    def _load(cls, data, password, engine, name, clustering_config, render_config) -> Document:
        engine = engine or PyMuPDFEngine()
        decoded = engine.open(data, password)
        return cls(
            decoded,
            engine,
            name=name,
            clustering_config=clustering_config,
            render_config=render_config
        )

    @property
    def name(self) -> str:
        return self._name

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise DocumentClosedError(f"Document {self._name} is closed")

    def _check_unlocked(self) -> None:
        self._check_open()
        if self._locked:
            raise LockedDocumentError(f"Document {self._name} is locked, call unlock() first")

    def is_locked(self) -> bool:
        return self._locked

    def unlock(self, password: str) -> bool:
        """
        Unlock an encrypted document.

        Args:
            password: Password to try

        Returns:
            True if the document is unlocked afterwards, False if the password
            was rejected (the document stays locked)
        """
        self._check_open()
        if not self._locked:
            return True

        with self._lock:
            if not self._engine.validate_password(self._handle, password):
                logger.warning(f"Unlock failed for {self._name}: invalid password")
                return False

            info = self._engine.describe(self._handle)
            self._page_count = info.page_count
            self._metadata = dict(info.metadata)
            self._locked = False

        logger.info(f"Document {self._name} unlocked ({self._page_count} page(s))")
        return True

    def get_page_count(self) -> int:
        self._check_unlocked()
        return self._page_count

    def get_page(self, index: int) -> Page:
        """
        Get a page by zero-based index.

        Raises:
            LockedDocumentError: If the document is locked
            IndexOutOfRangeError: If index is outside 0..page_count-1
            TypeError: If index is not an integer
        """
        self._check_unlocked()

        if isinstance(index, bool) or not isinstance(index, int):
            raise TypeError(f"Page index must be an integer, got {type(index).__name__}")

        if index < 0 or index >= self._page_count:
            raise IndexOutOfRangeError(
                f"Page index {index} out of range (0-{self._page_count - 1})"
            )

        with self._lock:
            info = self._engine.page_info(self._handle, index)
        return Page(self, index, info)

    def iter_pages(self) -> Iterator[Page]:
        """Yield every page in order."""
        for index in range(self.get_page_count()):
            yield self.get_page(index)

    def get_metadata(self) -> Dict[str, str]:
        """Best-effort metadata; fields the document lacks are omitted."""
        self._check_open()
        return dict(self._metadata)

    def close(self) -> None:
        """Release the engine handle. Further queries raise DocumentClosedError."""
        with self._lock:
            if self._closed:
                return
            self._engine.close(self._handle)
            self._handle = None
            self._layouts.clear()
            self._closed = True

    def __enter__(self) -> Document:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else ("locked" if self._locked else "unlocked")
        return f"<Document {self._name} {state}>"

    def _page_layout(self, index: int) -> PageLayout:
        """Cluster a page's glyphs once and cache the result by page index."""
        with self._lock:
            self._check_unlocked()
            layout = self._layouts.get(index)
            if layout is None:
                glyphs = self._engine.glyph_boxes(self._handle, index)
                layout = self.clusterer.cluster(glyphs)
                self._layouts[index] = layout
                logger.debug(
                    f"Page {index}: {len(glyphs)} glyphs, {len(layout.lines)} lines"
                )
            return layout

    def _render_page(self, index: int, info: PageInfo, options: Any) -> RenderedImage:
        with self._lock:
            self._check_unlocked()
            return self.rasterizer.render(self._handle, index, info, options)


class Page:
    """One page of a Document. Created by Document.get_page()."""

    def __init__(self, document: Document, index: int, info: PageInfo):
        self._document = document
        self._index = index
        self._info = info

    @property
    def document(self) -> Document:
        return self._document

    @property
    def index(self) -> int:
        return self._index

    @property
    def info(self) -> PageInfo:
        return self._info

    def get_size(self) -> PageSize:
        return PageSize(
            width=self._info.width,
            height=self._info.height,
            x=self._info.x,
            y=self._info.y
        )

    def get_rotation(self) -> int:
        return self._info.rotation

    def get_duration(self) -> float:
        """Presentation advance time in seconds, 0.0 when the page has none."""
        return self._info.duration

    def get_layout(self) -> PageLayout:
        return self._document._page_layout(self._index)

    def get_text(self) -> str:
        """All line texts in reading order, joined by newlines."""
        return self.get_layout().text

    def get_text_boxes(self) -> List[Word]:
        """Flat list of words with bounding boxes, in reading order."""
        return self.get_layout().words

    def render_to_image(
        self,
        options: Union[RenderOptions, Mapping[str, Any], None] = None,
        *,
        dpi: Optional[float] = None,
        rotation: Optional[int] = None
    ) -> RenderedImage:
        """
        Render the page to a pixel buffer.

        Args:
            options: RenderOptions or {"dpi": ..., "rotation": ...} mapping
            dpi: Overrides the dpi in options
            rotation: Overrides the rotation in options

        Returns:
            RenderedImage

        Raises:
            RenderError: If options are invalid or rendering fails
        """
        # Anything else is rejected by RenderOptions.coerce below
        mergeable = options is None or isinstance(options, (RenderOptions, Mapping))
        if mergeable and (dpi is not None or rotation is not None):
            if isinstance(options, RenderOptions):
                merged = {'dpi': options.dpi, 'rotation': options.rotation}
            else:
                merged = dict(options or {})
            if dpi is not None:
                merged['dpi'] = dpi
            if rotation is not None:
                merged['rotation'] = rotation
            options = merged

        return self._document._render_page(self._index, self._info, options)

    def export_to_json(self) -> Dict[str, Any]:
        """Page metadata plus the line/word tree, as plain dicts and lists."""
        return self._document.exporter.format_page(self._info, self.get_layout())

    def to_json(self, indent: Optional[int] = 2) -> str:
        return self._document.exporter.to_json(self.export_to_json(), indent=indent)

    def __repr__(self) -> str:
        return f"<Page {self._index} of {self._document.name}>"
