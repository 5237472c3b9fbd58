"""Remote album lookup/creation and per-album duplicate detection."""

import threading

from ..error_handling import RemoteApiError
from ..logging_config import get_logger
from ..models.media import Album, MediaItem
from .auth import AuthContext
from .cache import CacheRegistry
from .library_api import PhotosLibraryClient
from .search import SearchService

logger = get_logger(__name__)


class AlbumDirectory:
    """Resolves album titles to remote albums, creating missing ones."""

    def __init__(self, client: PhotosLibraryClient, caches: CacheRegistry, auth: AuthContext) -> None:
        self.client = client
        self.caches = caches
        self.auth = auth
        self._lock = threading.Lock()

    def get_albums(self, user_id: str) -> list[Album]:
        """
        All albums of the user, from the album cache when possible.

        Raises:
            RemoteApiError: If the listing fails; the user's cache entry is dropped
        """
        cached = self.caches.albums.get(user_id)
        if cached is not None:
            logger.debug("albums_loaded_from_cache", user_id=user_id, count=len(cached))
            return [Album.from_dict(album) for album in cached]

        logger.debug("albums_loading_from_api", user_id=user_id)
        try:
            albums = self.client.list_albums(self.auth.get_token())
        except RemoteApiError:
            self.caches.albums.remove(user_id)
            raise

        self.caches.albums.set(user_id, [album.to_dict() for album in albums])
        return albums

    def get_album_by_title(self, user_id: str, title: str) -> Album | None:
        return next((album for album in self.get_albums(user_id) if album.title == title), None)

    def resolve_or_create(self, user_id: str, album_title: str) -> Album:
        """
        Return the album titled ``album_title``, creating it if it does not exist.

        Serialised so that concurrent callers never create the same title twice.
        """
        with self._lock:
            album = self.get_album_by_title(user_id, album_title)
            if album:
                logger.info("album_exists", album_id=album.id, title=album_title)
                return album

            album = self.client.create_album(self.auth.get_token(), album_title)

            cached = self.caches.albums.get(user_id)
            if cached is not None:
                cached.append(album.to_dict())
                self.caches.albums.set(user_id, cached)

            return album

    def invalidate(self) -> None:
        """Forget every cached album listing."""
        self.caches.albums.clear()


class DuplicateDetector:
    """Checks whether a file name is already present in an album."""

    def __init__(self, search_service: SearchService, caches: CacheRegistry, auth: AuthContext) -> None:
        self.search_service = search_service
        self.caches = caches
        self.auth = auth
        self._lock = threading.Lock()

    def _album_items(self, album_id: str) -> list[dict]:
        items = self.caches.album_items.get(album_id)
        if items is None:
            listing = self.search_service.list_album_items(self.auth.get_token(), album_id)
            items = [item.to_dict() for item in listing]
            self.caches.album_items.set(album_id, items)
        return items

    def exists(self, album_id: str, file_name: str) -> bool:
        """
        True iff the album holds an item whose filename equals ``file_name`` (case-sensitive).

        Raises:
            RemoteApiError: If the album listing cannot be fetched
        """
        with self._lock:
            items = self._album_items(album_id)
        return any(item.get("filename") == file_name for item in items)

    def remember(self, album_id: str, media_item: MediaItem) -> None:
        """Add a freshly uploaded item to an album listing that is already cached."""
        with self._lock:
            items = self.caches.album_items.get(album_id)
            if items is not None:
                items.append(media_item.to_dict())
                self.caches.album_items.set(album_id, items)

    def invalidate(self) -> None:
        self.caches.album_items.clear()
