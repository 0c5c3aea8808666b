"""In-memory history of ingested images and their latest results."""

import logging
import threading
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Optional

from score_cli.buffer import PixelBuffer
from score_cli.crop import ProcessResult
from score_cli.errors import ProcessingError
from score_cli.scheduler import DEFAULT_DELAY, Job, PreviewScheduler
from score_cli.settings import ProcessingSettings

logger = logging.getLogger(__name__)

DEFAULT_NAME = "Image"


class ItemStatus(str, Enum):
    PROCESSING = "processing"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class GalleryItem:
    id: str
    name: str
    source: Optional[PixelBuffer]
    settings_used: ProcessingSettings
    status: ItemStatus = ItemStatus.PROCESSING
    result: Optional[ProcessResult] = None
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)


def item_name(filename: str) -> str:
    """Display name for an upload: the filename up to its first dot."""
    return filename.split(".")[0] or DEFAULT_NAME


def clipboard_filename(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return f"Paste_{now:%H%M%S}.png"


def download_name(item: GalleryItem) -> str:
    return f"{item.name}_{item.settings_used.algorithm.value}.png"


def _new_id() -> str:
    return uuid.uuid4().hex[:9]


class Session:
    """Ingested images, newest first, each with a settings snapshot and result.

    ``settings`` is what new ingestions are stamped with; changing it never
    touches existing items.  Items are replaced wholesale when their state
    changes, so a reader holding a GalleryItem always sees a consistent one.
    """

    def __init__(
        self,
        settings: Optional[ProcessingSettings] = None,
        delay: float = DEFAULT_DELAY,
        **scheduler_options,
    ) -> None:
        self.settings = settings or ProcessingSettings()
        self._lock = threading.Lock()
        self._items: dict[str, GalleryItem] = {}
        self._order: list[str] = []
        # Settings of the newest job issued per item, finished or not.
        self._requested: dict[str, ProcessingSettings] = {}
        self.scheduler = PreviewScheduler(
            on_result=self._apply_result,
            on_error=self._apply_error,
            delay=delay,
            **scheduler_options,
        )

    # ── Ingestion ─────────────────────────────────────────────────────────

    def ingest(self, filename: str, data: bytes) -> GalleryItem:
        """Decode *data* and start processing it with the current settings.

        An undecodable upload is still recorded, with status ``error``.
        """
        snapshot = self.settings
        try:
            source = PixelBuffer.decode(data)
        except ProcessingError as e:
            logger.info("Could not decode %s: %s", filename, e)
            item = GalleryItem(
                id=_new_id(),
                name=item_name(filename),
                source=None,
                settings_used=snapshot,
                status=ItemStatus.ERROR,
                error=str(e),
            )
            self._add(item)
            return item
        return self.ingest_source(filename, source)

    def ingest_source(self, filename: str, source: PixelBuffer) -> GalleryItem:
        item = GalleryItem(
            id=_new_id(),
            name=item_name(filename),
            source=source,
            settings_used=self.settings,
        )
        self._add(item)
        with self._lock:
            self._requested[item.id] = item.settings_used
        self.scheduler.submit_now(item.id, source, item.settings_used)
        return self.get(item.id) or item

    def ingest_clipboard(self, data: bytes, now: Optional[datetime] = None) -> GalleryItem:
        return self.ingest(clipboard_filename(now), data)

    # ── Live preview ──────────────────────────────────────────────────────

    def update_settings(self, item_id: str, settings: ProcessingSettings) -> bool:
        """Recompute *item_id* with *settings* after the debounce delay.

        Returns False when there is nothing to do: unknown item, undecodable
        source, settings equal to the newest request for the item, or settings
        equal to the finished result it already shows.
        """
        with self._lock:
            item = self._items.get(item_id)
            requested = self._requested.get(item_id)
        if item is None or item.source is None:
            return False
        if item.status is not ItemStatus.ERROR and settings == requested:
            return False
        if item.status is ItemStatus.DONE and settings == item.settings_used:
            # Back to what is on screen; drop anything still pending.
            self.scheduler.cancel(item_id)
            with self._lock:
                self._requested[item_id] = settings
            return False
        with self._lock:
            self._requested[item_id] = settings
        self.scheduler.request(item_id, item.source, settings)
        return True

    def _apply_result(self, job: Job, result: ProcessResult) -> None:
        with self._lock:
            item = self._items.get(job.key)
            if item is None:
                return
            self._items[job.key] = replace(
                item,
                result=result,
                settings_used=job.settings,
                status=ItemStatus.DONE,
                error=None,
            )

    def _apply_error(self, job: Job, error: ProcessingError) -> None:
        with self._lock:
            item = self._items.get(job.key)
            if item is None:
                return
            # A failed live preview keeps the last good result on screen.
            if item.result is None:
                self._items[job.key] = replace(item, status=ItemStatus.ERROR, error=str(error))

    # ── History ───────────────────────────────────────────────────────────

    def _add(self, item: GalleryItem) -> None:
        with self._lock:
            self._items[item.id] = item
            self._order.insert(0, item.id)

    def get(self, item_id: str) -> Optional[GalleryItem]:
        with self._lock:
            return self._items.get(item_id)

    def items(self) -> list[GalleryItem]:
        with self._lock:
            return [self._items[i] for i in self._order]

    def delete(self, item_id: str) -> bool:
        self.scheduler.cancel(item_id)
        with self._lock:
            self._requested.pop(item_id, None)
            if self._items.pop(item_id, None) is None:
                return False
            self._order.remove(item_id)
        return True

    def clear(self) -> None:
        for item in self.items():
            self.delete(item.id)

    def join(self, timeout: Optional[float] = None) -> None:
        self.scheduler.join(timeout)

    def close(self) -> None:
        self.scheduler.shutdown()

    def __enter__(self) -> "Session":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
