"""
Bulk import of local folder trees into Google Photos albums.

Each selected folder becomes an album named after it; nested folders become
albums named ``"Parent - Child"``. Files already present in the target album
(same file name) are skipped, everything else is uploaded in paced batches. A
file that fails to upload goes to the dead letter and the import continues.

Import lifecycle:
1. Preflight: validate the selection, invalidate album caches, drain the dead
   letter and refuse to start while it still holds entries.
2. Import every selected folder, three at a time.
3. Postflight: drain the dead letter again and report what is left.
"""

import os
import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from ..config import get_max_selected_folders
from ..error_handling import ConflictError, OperationCancelledError
from ..logging_config import get_logger, log_performance, log_user_action
from ..models.media import Album, Folder, FolderImportResult, ImportReport
from .albums import AlbumDirectory, DuplicateDetector
from .filesystem import FolderScanner
from .uploads import DeadLetterDrainer, UploadExecutor, chunked

logger = get_logger(__name__)

ALBUM_NAME_SEPARATOR = " - "
CHUNK_SIZE_ALBUMS = 3
CHUNK_SIZE_ITEMS = 10
WAITING_AFTER_CHUNK_UPLOAD = 5.0
DEAD_LETTER_TRIES = 1
DEAD_LETTER_CHUNK_SIZE = 5


def album_title_for(folder_name: str, parent_album_name: str = "") -> str:
    if parent_album_name:
        return f"{parent_album_name}{ALBUM_NAME_SEPARATOR}{folder_name}"
    return folder_name


class BulkImportOrchestrator:
    """Drives a folder import from preflight to report."""

    def __init__(
        self,
        scanner: FolderScanner,
        albums: AlbumDirectory,
        detector: DuplicateDetector,
        executor: UploadExecutor,
        drainer: DeadLetterDrainer,
        max_selected_folders: int | None = None,
        folder_chunk_size: int = CHUNK_SIZE_ALBUMS,
        batch_size: int = CHUNK_SIZE_ITEMS,
        batch_delay: float = WAITING_AFTER_CHUNK_UPLOAD,
        dead_letter_tries: int = DEAD_LETTER_TRIES,
        dead_letter_chunk_size: int = DEAD_LETTER_CHUNK_SIZE,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.scanner = scanner
        self.albums = albums
        self.detector = detector
        self.executor = executor
        self.drainer = drainer
        self.max_selected_folders = max_selected_folders or get_max_selected_folders()
        self.folder_chunk_size = folder_chunk_size
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.dead_letter_tries = dead_letter_tries
        self.dead_letter_chunk_size = dead_letter_chunk_size
        self._sleep = sleep

    def import_folders(
        self,
        user_id: str,
        folders: Sequence[Folder | dict[str, Any]],
        cancel_event: threading.Event | None = None,
    ) -> ImportReport:
        """
        Import the selected folders.

        Args:
            user_id: Owner of the albums
            folders: Selected folders (``Folder`` or ``{folderName, fullPath}`` dicts)
            cancel_event: When set, the import stops before the next batch

        Returns:
            ImportReport: Per-folder item counts and the dead-letter size left over

        Raises:
            ConflictError: Empty or oversize selection, or a dead letter that could not be drained
            OperationCancelledError: If ``cancel_event`` was set
        """
        selection = [folder if isinstance(folder, Folder) else Folder.from_dict(folder) for folder in folders or []]
        self._preflight(user_id, selection, cancel_event)

        started = time.monotonic()
        folders_result: list[FolderImportResult] = []

        for chunk in chunked(selection, self.folder_chunk_size):
            self._check_cancelled(cancel_event)

            with ThreadPoolExecutor(max_workers=len(chunk), thread_name_prefix="album-import") as pool:
                results = list(pool.map(lambda folder: self._import_top_folder(user_id, folder, cancel_event), chunk))

            folders_result.extend(results)
            logger.info("albums_with_photos_created", folders=[result.to_dict() for result in results])

        deadletter_count = self.drainer.drain(self.dead_letter_tries, self.dead_letter_chunk_size, cancel_event)
        report = ImportReport(folders_result=folders_result, deadletter_count=deadletter_count)

        log_performance("bulk_import", time.monotonic() - started, user_id=user_id, folders=len(selection))
        log_user_action(
            user_id, "bulk_import_completed", items=report.total_items, deadletter_count=deadletter_count
        )
        return report

    def _preflight(self, user_id: str, selection: list[Folder], cancel_event: threading.Event | None) -> None:
        if not selection:
            logger.info("import_selection_empty", user_id=user_id)
            raise ConflictError("No folder selected", code="selection_empty")

        if len(selection) > self.max_selected_folders:
            logger.info("import_selection_too_large", user_id=user_id, selected=len(selection))
            raise ConflictError(
                f"Too many albums selected ({len(selection)} > {self.max_selected_folders})",
                code="too_many_selections",
                details={"selected": len(selection), "maximum": self.max_selected_folders},
            )

        # Albums may have been created outside of this application since the last listing
        self.albums.invalidate()
        self.detector.invalidate()

        self._check_cancelled(cancel_event)
        deadletter_count = self.drainer.drain(self.dead_letter_tries, self.dead_letter_chunk_size, cancel_event)
        if deadletter_count > 0:
            raise ConflictError(
                f"Dead letter is not empty. Count: {deadletter_count}",
                code="dead_letter_not_empty",
                details={"deadletter_count": deadletter_count},
            )

        log_user_action(user_id, "bulk_import_started", folders=[folder.name for folder in selection])

    def _check_cancelled(self, cancel_event: threading.Event | None) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise OperationCancelledError("Import cancelled")

    def _import_top_folder(
        self, user_id: str, folder: Folder, cancel_event: threading.Event | None
    ) -> FolderImportResult:
        result = FolderImportResult(folder_name=folder.name, full_path=folder.full_path)
        self._import_branch(user_id, folder.name, folder.full_path, "", result, cancel_event)
        return result

    def _import_branch(
        self,
        user_id: str,
        folder_name: str,
        full_path: str,
        parent_album_name: str,
        result: FolderImportResult,
        cancel_event: threading.Event | None,
    ) -> None:
        """Import one folder; a failure is recorded on ``result`` and does not reach siblings."""
        try:
            self._import_folder(user_id, folder_name, full_path, parent_album_name, result, cancel_event)
        except OperationCancelledError:
            raise
        except Exception as e:
            logger.error("folder_import_failed", folder=full_path, error=str(e))
            message = f"{full_path}: {e}"
            result.error = f"{result.error}; {message}" if result.error else message

    def _import_folder(
        self,
        user_id: str,
        folder_name: str,
        full_path: str,
        parent_album_name: str,
        result: FolderImportResult,
        cancel_event: threading.Event | None,
    ) -> None:
        entries = self.scanner.list_entries(full_path)
        album_title = album_title_for(folder_name, parent_album_name)
        album: Album | None = None

        logger.info(
            "importing_folder",
            folder=folder_name,
            full_path=full_path,
            parent_album_name=parent_album_name,
            count=len(entries),
        )

        for batch in chunked(entries, self.batch_size):
            self._check_cancelled(cancel_event)

            subfolders: list[str] = []
            pending: list[str] = []

            for name in batch:
                if self.scanner.is_folder(full_path, name):
                    subfolders.append(name)
                    continue

                if not self.scanner.is_valid_extension(name):
                    logger.debug("file_skipped_invalid_extension", folder=full_path, file=name)
                    continue

                if album is None:
                    album = self.albums.resolve_or_create(user_id, album_title)

                if self.detector.exists(album.id, name):
                    logger.debug("media_already_in_album", album_id=album.id, file=name)
                    result.items += 1
                    continue

                pending.append(name)

            if pending and album is not None:
                self._upload_batch(album, pending, folder_name, full_path)
                result.items += len(pending)
                self._sleep(self.batch_delay)

            for name in subfolders:
                self._import_branch(user_id, name, os.path.join(full_path, name), album_title, result, cancel_event)

    def _upload_batch(self, album: Album, file_names: list[str], description: str, folder_path: str) -> None:
        with ThreadPoolExecutor(max_workers=len(file_names), thread_name_prefix="upload") as pool:
            uploaded = list(
                pool.map(lambda name: self.executor.upload(album.id, name, description, folder_path), file_names)
            )

        deferred = sum(1 for item in uploaded if item is None)
        logger.info(
            "media_batch_uploaded",
            album_id=album.id,
            folder=folder_path,
            uploaded=len(file_names) - deferred,
            deferred=deferred,
        )
