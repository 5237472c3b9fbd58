"""
Photo queue search and caching.

Searches accumulate image items across result pages until the configured
minimum is reached. A successful search is cached per user together with the
parameters that produced it, so the queue can later be served from cache or,
once the cached photos expired, by replaying the stored query.
"""

from dataclasses import dataclass, field
from typing import Any

from ..config import get_photos_to_load, get_search_page_size
from ..error_handling import RemoteApiError
from ..logging_config import get_logger, log_user_action
from ..models.media import MediaItem
from .auth import AuthContext
from .cache import CacheRegistry
from .library_api import PhotosLibraryClient

logger = get_logger(__name__)

PAGINATION_FIELDS = ("pageToken", "pageSize")


@dataclass
class SearchResult:
    """Photos accumulated by a search, the parameters last sent and the error that stopped it."""

    photos: list[MediaItem] = field(default_factory=list)
    parameters: dict[str, Any] = field(default_factory=dict)
    error: dict[str, Any] | None = None


def strip_pagination(parameters: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in parameters.items() if key not in PAGINATION_FIELDS}


def _construct_date(year: Any, month: Any, day: Any) -> dict[str, int]:
    date = {}
    for name, value in (("year", year), ("month", month), ("day", day)):
        if value not in (None, ""):
            date[name] = int(value)
    return date


def _as_list(value: Any) -> list[str]:
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if v]
    return [str(value)]


def build_search_filters(form: dict[str, Any]) -> dict[str, Any]:
    """
    Build Library API search filters from the search form.

    Recognised fields: ``includedCategories``, ``excludedCategories`` and
    ``dateFilter`` (``"exact"`` with ``exactYear/exactMonth/exactDay`` or
    ``"range"`` with ``startYear/.../endDay``). Only photos are requested.
    """
    filters: dict[str, Any] = {"contentFilter": {}, "mediaTypeFilter": {"mediaTypes": ["PHOTO"]}}

    if form.get("includedCategories"):
        filters["contentFilter"]["includedContentCategories"] = _as_list(form["includedCategories"])

    if form.get("excludedCategories"):
        filters["contentFilter"]["excludedContentCategories"] = _as_list(form["excludedCategories"])

    date_filter = form.get("dateFilter")
    if date_filter == "exact":
        filters["dateFilter"] = {
            "dates": [_construct_date(form.get("exactYear"), form.get("exactMonth"), form.get("exactDay"))]
        }
    elif date_filter == "range":
        filters["dateFilter"] = {
            "ranges": [
                {
                    "startDate": _construct_date(form.get("startYear"), form.get("startMonth"), form.get("startDay")),
                    "endDate": _construct_date(form.get("endYear"), form.get("endMonth"), form.get("endDay")),
                }
            ]
        }

    return filters


class SearchService:
    """Search the library and serve the photo frame queue."""

    def __init__(
        self,
        client: PhotosLibraryClient,
        caches: CacheRegistry,
        auth: AuthContext,
        photos_to_load: int | None = None,
        page_size: int | None = None,
    ) -> None:
        self.client = client
        self.caches = caches
        self.auth = auth
        self.photos_to_load = photos_to_load or get_photos_to_load()
        self.page_size = page_size or get_search_page_size()

    def search(self, auth_token: str, parameters: dict[str, Any]) -> SearchResult:
        """
        Search until at least ``photos_to_load`` images were found or no page is left.

        Only items whose mime type is an image are kept, because media type
        filters cannot be combined with an album id. A remote failure stops the
        loop and is returned in ``error`` together with what was found so far.
        """
        parameters = dict(parameters)
        parameters["pageSize"] = self.page_size
        photos: list[MediaItem] = []
        error = None

        try:
            while True:
                logger.info("submitting_search", parameters=parameters)
                body = self.client.search_media_items(auth_token, parameters)

                items = [MediaItem.from_dict(item) for item in body.get("mediaItems") or [] if item]
                images = [item for item in items if item.is_image]
                photos.extend(images)

                next_page_token = body.get("nextPageToken")
                if next_page_token:
                    parameters["pageToken"] = next_page_token
                else:
                    parameters.pop("pageToken", None)

                logger.debug("search_page_loaded", images=len(images), total=len(photos))

                if len(photos) >= self.photos_to_load or not next_page_token:
                    break
        except RemoteApiError as e:
            error = e.to_dict()

        logger.info("search_complete", photos=len(photos), error=error)
        return SearchResult(photos=photos, parameters=parameters, error=error)

    def list_album_items(self, auth_token: str, album_id: str) -> list[MediaItem]:
        """
        Every item of an album, regardless of media type.

        Raises:
            RemoteApiError: If any page fails to load
        """
        parameters: dict[str, Any] = {"albumId": album_id, "pageSize": self.page_size}
        items: list[MediaItem] = []

        while True:
            body = self.client.search_media_items(auth_token, parameters)
            items.extend(MediaItem.from_dict(item) for item in body.get("mediaItems") or [] if item)

            next_page_token = body.get("nextPageToken")
            if not next_page_token:
                break
            parameters["pageToken"] = next_page_token

        logger.debug("album_items_listed", album_id=album_id, count=len(items))
        return items

    def return_photos(self, user_id: str, result: SearchResult) -> dict[str, Any]:
        """
        Cache a successful search for the user and build the queue response.

        The photos and the parameters are always written together.

        Raises:
            RemoteApiError: If the search ended with an error
        """
        if result.error:
            raise RemoteApiError(
                result.error.get("message") or "Search failed",
                name=result.error.get("name") or "RemoteApiError",
                code=result.error.get("code"),
            )

        parameters = strip_pagination(result.parameters)
        photos = [photo.to_dict() for photo in result.photos]

        self.caches.media_items.set(user_id, photos)
        self.caches.storage.set(user_id, {"parameters": parameters})

        return {"photos": photos, "parameters": parameters}

    def get_queue(self, user_id: str) -> dict[str, Any]:
        """
        The user's photo queue: cached photos, else a replay of the stored query, else ``{}``.
        """
        stored = self.caches.storage.get(user_id)
        photos = self.caches.media_items.get(user_id)

        if photos is not None:
            logger.debug("queue_served_from_cache", user_id=user_id, photos=len(photos))
            return {"photos": photos, "parameters": (stored or {}).get("parameters", {})}

        if stored is not None and "parameters" in stored:
            logger.info("queue_cache_expired_resubmitting", user_id=user_id)
            parameters = strip_pagination(stored["parameters"])
            result = self.search(self.auth.get_token(), parameters)
            return self.return_photos(user_id, result)

        logger.debug("queue_empty", user_id=user_id)
        return {}

    def load_from_album(self, user_id: str, album_id: str) -> dict[str, Any]:
        """Queue the images of one album."""
        log_user_action(user_id, "load_from_album", album_id=album_id)
        result = self.search(self.auth.get_token(), {"albumId": album_id})
        return self.return_photos(user_id, result)

    def load_from_search(self, user_id: str, form: dict[str, Any]) -> dict[str, Any]:
        """Queue the images matching the search form."""
        filters = build_search_filters(form)
        log_user_action(user_id, "load_from_search", filters=filters)
        result = self.search(self.auth.get_token(), {"filters": filters})
        return self.return_photos(user_id, result)

    def logout(self, user_id: str) -> None:
        """Drop the user's cached queue, albums and query, and forget the credential."""
        self.caches.evict_user(user_id)
        self.auth.clear()
        log_user_action(user_id, "logout")
