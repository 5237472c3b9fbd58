"""
Services module for photoframe application.

This module contains all service classes that handle business logic:
- AuthContext: bearer token lifecycle of one session
- PhotosLibraryClient: Google Photos Library REST calls
- SearchService: photo queue search and caching
- AlbumDirectory, DuplicateDetector: album resolution and duplicate checks
- UploadExecutor, DeadLetterQueue, DeadLetterDrainer: uploads and retries
- BulkImportOrchestrator: folder tree import
"""

from .albums import AlbumDirectory, DuplicateDetector
from .auth import AuthContext, TokenState
from .cache import CacheRegistry, PersistentStore, get_cache_registry, reset_cache_registry
from .filesystem import FolderScanner
from .importer import BulkImportOrchestrator
from .library_api import PhotosLibraryClient
from .search import SearchResult, SearchService, build_search_filters
from .uploads import DeadLetterDrainer, DeadLetterQueue, UploadExecutor

__all__ = [
    "AlbumDirectory",
    "DuplicateDetector",
    "AuthContext",
    "TokenState",
    "CacheRegistry",
    "PersistentStore",
    "get_cache_registry",
    "reset_cache_registry",
    "FolderScanner",
    "BulkImportOrchestrator",
    "PhotosLibraryClient",
    "SearchResult",
    "SearchService",
    "build_search_filters",
    "DeadLetterDrainer",
    "DeadLetterQueue",
    "UploadExecutor",
]
