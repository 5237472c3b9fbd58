"""
Session wiring.

A ``PhotoFrameSession`` bundles the services of one signed-in user around a
single ``AuthContext``. Caches and the dead letter live in the shared DuckDB
database, so every session of the process sees the same stores.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass

import requests

from .logging_config import get_logger
from .services.albums import AlbumDirectory, DuplicateDetector
from .services.auth import AuthContext
from .services.cache import CacheRegistry, get_cache_registry
from .services.filesystem import FolderScanner
from .services.importer import BulkImportOrchestrator
from .services.library_api import PhotosLibraryClient
from .services.search import SearchService
from .services.uploads import DeadLetterDrainer, DeadLetterQueue, UploadExecutor

logger = get_logger(__name__)


@dataclass
class PhotoFrameSession:
    """Services bound to one user and one credential."""

    user_id: str
    caches: CacheRegistry
    auth: AuthContext
    client: PhotosLibraryClient
    search: SearchService
    albums: AlbumDirectory
    detector: DuplicateDetector
    dead_letter: DeadLetterQueue
    executor: UploadExecutor
    drainer: DeadLetterDrainer
    scanner: FolderScanner
    importer: BulkImportOrchestrator


def create_session(
    user_id: str,
    caches: CacheRegistry | None = None,
    auth: AuthContext | None = None,
    client: PhotosLibraryClient | None = None,
    root_folder: str | None = None,
    http_session: requests.Session | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> PhotoFrameSession:
    """
    Build every service of a session.

    Args:
        user_id: Key of the user's cached queue and albums
        caches: Stores to use (defaults to the process wide registry)
        auth: Credential holder (a fresh, empty one by default)
        client: Library API client
        root_folder: Import root (defaults to PHOTOFRAME_ROOT_FOLDER)
        http_session: requests session shared by the client and the token exchange
        sleep: Pacing function of the importer and the drainer
    """
    caches = caches or get_cache_registry()
    http_session = http_session or requests.Session()
    auth = auth or AuthContext(refresh_token_store=caches.refresh_tokens, session=http_session)
    client = client or PhotosLibraryClient(session=http_session)

    search = SearchService(client, caches, auth)
    albums = AlbumDirectory(client, caches, auth)
    detector = DuplicateDetector(search, caches, auth)
    dead_letter = DeadLetterQueue(caches.upload_dead_letter)
    executor = UploadExecutor(client, dead_letter, auth, on_uploaded=detector.remember)
    drainer = DeadLetterDrainer(executor, dead_letter, sleep=sleep)
    scanner = FolderScanner(root_folder)
    importer = BulkImportOrchestrator(scanner, albums, detector, executor, drainer, sleep=sleep)

    logger.debug("session_created", user_id=user_id, root_folder=scanner.root_folder)

    return PhotoFrameSession(
        user_id=user_id,
        caches=caches,
        auth=auth,
        client=client,
        search=search,
        albums=albums,
        detector=detector,
        dead_letter=dead_letter,
        executor=executor,
        drainer=drainer,
        scanner=scanner,
        importer=importer,
    )
