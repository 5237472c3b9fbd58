"""
Media upload with a persistent dead letter.

An upload that fails for any reason is never retried inline and never raises to
the caller: it is written to the dead letter and picked up again by the next
``DeadLetterDrainer.drain`` call, with a longer timeout.
"""

import os
import threading
import time
from collections.abc import Callable, Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar

from ..logging_config import get_logger, log_performance
from ..models.media import DeadLetterEntry, MediaItem
from .auth import AuthContext
from .cache import PersistentStore
from .library_api import PhotosLibraryClient

logger = get_logger(__name__)

T = TypeVar("T")

UPLOAD_MEDIA_TIMEOUT = 60.0
UPLOAD_MEDIA_DEAD_LETTER_TIMEOUT = 600.0
WAITING_AFTER_ITEM_UPLOAD = 0.5


def chunked(items: Sequence[T], size: int) -> Iterator[list[T]]:
    """Split ``items`` into consecutive lists of at most ``size`` elements."""
    size = max(1, size)
    for start in range(0, len(items), size):
        yield list(items[start : start + size])


class DeadLetterQueue:
    """Failed uploads, persisted in the ``upload_dead_letter`` store."""

    def __init__(self, store: PersistentStore) -> None:
        self.store = store

    def add(self, entry: DeadLetterEntry) -> None:
        """Persist ``entry``, replacing any entry with the same key."""
        self.store.set(entry.key, entry.to_dict())

    def get(self, key: str) -> DeadLetterEntry | None:
        data = self.store.get(key)
        return DeadLetterEntry.from_dict(data) if data else None

    def pop(self, key: str) -> DeadLetterEntry | None:
        """Get an entry and remove it from the store."""
        entry = self.get(key)
        self.store.remove(key)
        return entry

    def keys(self) -> list[str]:
        return self.store.keys()

    def count(self) -> int:
        return len(self.store.keys())

    def entries(self) -> list[DeadLetterEntry]:
        return [entry for entry in (self.get(key) for key in self.keys()) if entry]

    def clear(self) -> None:
        self.store.clear()


class UploadExecutor:
    """Uploads one file into an album, deferring failures to the dead letter."""

    def __init__(
        self,
        client: PhotosLibraryClient,
        dead_letter: DeadLetterQueue,
        auth: AuthContext,
        on_uploaded: Callable[[str, MediaItem], None] | None = None,
        default_timeout: float = UPLOAD_MEDIA_TIMEOUT,
    ) -> None:
        """
        Args:
            client: Library API client
            dead_letter: Where failed attempts are recorded
            auth: Credential of the importing session
            on_uploaded: Called with ``(album_id, media_item)`` after every success
            default_timeout: Timeout of a first attempt, in seconds
        """
        self.client = client
        self.dead_letter = dead_letter
        self.auth = auth
        self.on_uploaded = on_uploaded
        self.default_timeout = default_timeout

    def upload(
        self,
        album_id: str,
        file_name: str,
        description: str,
        folder_path: str,
        timeout: float | None = None,
        dead_letter_key: str | None = None,
    ) -> MediaItem | None:
        """
        Upload ``folder_path/file_name`` and add it to ``album_id``.

        Returns:
            MediaItem | None: The created item, or None when the attempt was dead-lettered
        """
        timeout = timeout or self.default_timeout
        file_path = os.path.join(folder_path, file_name)
        started = time.monotonic()
        logger.info("uploading_media", album_id=album_id, file_path=file_path, timeout=timeout)

        try:
            with open(file_path, "rb") as fh:
                data = fh.read()
            auth_token = self.auth.get_token()
            upload_token = self.client.upload_media(auth_token, file_name, data, timeout=timeout)
            media_item = self.client.batch_create(
                auth_token, album_id, upload_token, file_name, description, timeout=timeout
            )
        except Exception as e:
            logger.error("upload_failed", album_id=album_id, file_path=file_path, error=str(e))
            entry = DeadLetterEntry(
                album_id=album_id,
                file_name=file_name,
                folder_path=folder_path,
                file_description=description,
                last_error=str(e),
            )
            if dead_letter_key:
                entry.key = dead_letter_key
            self.dead_letter.add(entry)
            return None

        log_performance("upload_media", time.monotonic() - started, file_path=file_path, size=len(data))
        if self.on_uploaded:
            self.on_uploaded(album_id, media_item)
        return media_item


class DeadLetterDrainer:
    """Retries every dead-lettered upload in paced, concurrent chunks."""

    def __init__(
        self,
        executor: UploadExecutor,
        dead_letter: DeadLetterQueue,
        retry_timeout: float = UPLOAD_MEDIA_DEAD_LETTER_TIMEOUT,
        item_delay: float = WAITING_AFTER_ITEM_UPLOAD,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.executor = executor
        self.dead_letter = dead_letter
        self.retry_timeout = retry_timeout
        self.item_delay = item_delay
        self._sleep = sleep

    def retry(self, key: str) -> MediaItem | None:
        """Take one entry out of the dead letter and upload it again under the same key."""
        entry = self.dead_letter.pop(key)
        if entry is None:
            return None

        return self.executor.upload(
            entry.album_id,
            entry.file_name,
            entry.file_description,
            entry.folder_path,
            timeout=self.retry_timeout,
            dead_letter_key=entry.key,
        )

    def drain(self, max_tries: int = 1, chunk_size: int = 5, cancel_event: threading.Event | None = None) -> int:
        """
        Retry the whole dead letter up to ``max_tries`` times.

        Returns:
            int: Number of entries still in the dead letter
        """
        for attempt in range(max_tries):
            keys = self.dead_letter.keys()
            logger.info("draining_dead_letter", attempt=attempt + 1, count=len(keys))

            if not keys:
                return 0

            for chunk in chunked(keys, chunk_size):
                if cancel_event is not None and cancel_event.is_set():
                    logger.warning("dead_letter_drain_cancelled", attempt=attempt + 1)
                    return self.dead_letter.count()

                with ThreadPoolExecutor(max_workers=len(chunk), thread_name_prefix="dead-letter") as pool:
                    list(pool.map(self.retry, chunk))

                self._sleep(self.item_delay * max(1, chunk_size) / 2)

        remaining = self.dead_letter.count()
        logger.info("dead_letter_drained", remaining=remaining)
        return remaining
