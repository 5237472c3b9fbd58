"""Google Photos Library API client.

Thin wrapper around the REST endpoints the application needs. Every failure,
whether raised by ``requests`` or reported by the server, leaves this module as a
``RemoteApiError``.
"""

from typing import Any

import requests

from ..config import get_album_page_size, get_api_endpoint
from ..error_handling import RemoteApiError
from ..logging_config import get_logger
from ..models.media import Album, MediaItem

logger = get_logger(__name__)

DEFAULT_REQUEST_TIMEOUT = 30.0


class PhotosLibraryClient:
    """Client for the Photos Library API v1."""

    def __init__(self, api_endpoint: str | None = None, session: requests.Session | None = None) -> None:
        """
        Initialize the client.

        Args:
            api_endpoint: Base URL (defaults to PHOTOS_API_ENDPOINT or the public endpoint)
            session: requests session to reuse connections with
        """
        self.api_endpoint = (api_endpoint or get_api_endpoint()).rstrip("/")
        self.session = session or requests.Session()

    def _url(self, path: str) -> str:
        return f"{self.api_endpoint}/v1/{path.lstrip('/')}"

    def _request(
        self,
        method: str,
        path: str,
        auth_token: str,
        timeout: float | None = None,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> requests.Response:
        request_headers = {"Authorization": f"Bearer {auth_token}"}
        if headers:
            request_headers.update(headers)

        try:
            response = self.session.request(
                method,
                self._url(path),
                headers=request_headers,
                timeout=timeout or DEFAULT_REQUEST_TIMEOUT,
                **kwargs,
            )
        except requests.RequestException as e:
            logger.warning("library_api_transport_error", method=method, path=path, error=str(e))
            raise RemoteApiError.from_exception(e) from e

        if not response.ok:
            logger.warning("library_api_error_response", method=method, path=path, status_code=response.status_code)
            raise RemoteApiError.from_response(response)

        return response

    def _json(self, response: requests.Response, path: str) -> Any:
        """Decode a successful response body, which must be a JSON document."""
        try:
            return response.json()
        except ValueError as e:
            logger.warning("library_api_invalid_body", path=path, status_code=response.status_code, error=str(e))
            raise RemoteApiError(
                f"Response to '{path}' is not valid JSON",
                name="InvalidResponseBody",
                code=response.status_code,
                original_exception=e,
            ) from e

    def search_media_items(self, auth_token: str, parameters: dict[str, Any]) -> dict[str, Any]:
        """
        Fetch one page of ``POST /mediaItems:search``.

        Returns:
            dict: ``{"mediaItems": [...], "nextPageToken": ...}`` as sent by the API
        """
        response = self._request("POST", "mediaItems:search", auth_token, json=parameters)
        return self._json(response, "mediaItems:search") or {}

    def list_albums_page(self, auth_token: str, page_size: int, page_token: str | None = None) -> dict[str, Any]:
        """Fetch one page of ``GET /albums``."""
        params: dict[str, Any] = {"pageSize": page_size}
        if page_token:
            params["pageToken"] = page_token
        response = self._request("GET", "albums", auth_token, params=params)
        return self._json(response, "albums") or {}

    def list_albums(self, auth_token: str, page_size: int | None = None) -> list[Album]:
        """List every album owned by the user, following continuation tokens."""
        page_size = page_size or get_album_page_size()
        albums: list[Album] = []
        page_token = None

        while True:
            logger.debug("loading_albums", received_so_far=len(albums))
            body = self.list_albums_page(auth_token, page_size, page_token)
            albums.extend(Album.from_dict(album) for album in body.get("albums") or [] if album)

            page_token = body.get("nextPageToken")
            if not page_token:
                break

        logger.info("albums_loaded", count=len(albums))
        return albums

    def create_album(self, auth_token: str, title: str) -> Album:
        """Create an album with the given title."""
        response = self._request("POST", "albums", auth_token, json={"album": {"title": title}})
        body = self._json(response, "albums") or {}
        if not body.get("id"):
            raise RemoteApiError(f"No album returned for '{title}'", name="EmptyAlbumResult")

        album = Album.from_dict(body)
        logger.info("album_created", album_id=album.id, title=title)
        return album

    def upload_media(self, auth_token: str, file_name: str, data: bytes, timeout: float | None = None) -> str:
        """
        Upload raw bytes and return the upload token.

        Raises:
            RemoteApiError: If the upload fails or no token comes back
        """
        response = self._request(
            "POST",
            "uploads",
            auth_token,
            timeout=timeout,
            headers={
                "Content-type": "application/octet-stream",
                "X-Goog-Upload-File-Name": file_name,
                "X-Goog-Upload-Protocol": "raw",
            },
            data=data,
        )
        upload_token = response.text
        if not upload_token:
            raise RemoteApiError(f"No upload token returned for '{file_name}'", name="EmptyUploadToken")
        return upload_token

    def batch_create(
        self,
        auth_token: str,
        album_id: str,
        upload_token: str,
        file_name: str,
        description: str = "",
        timeout: float | None = None,
    ) -> MediaItem:
        """
        Commit an uploaded file into an album.

        Raises:
            RemoteApiError: If the request fails or the item status is not OK
        """
        body = {
            "albumId": album_id,
            "newMediaItems": [
                {
                    "description": description,
                    "simpleMediaItem": {"uploadToken": upload_token, "fileName": file_name},
                }
            ],
        }
        response = self._request("POST", "mediaItems:batchCreate", auth_token, timeout=timeout, json=body)

        results = (self._json(response, "mediaItems:batchCreate") or {}).get("newMediaItemResults") or []
        if not results:
            raise RemoteApiError(f"No media item created for '{file_name}'", name="EmptyBatchCreateResult")

        status = results[0].get("status") or {}
        # An OK status omits the code
        if status.get("code", 0) != 0:
            raise RemoteApiError(
                status.get("message") or f"Failed to create media item '{file_name}'",
                name="MediaItemCreationFailed",
                code=status.get("code"),
            )

        return MediaItem.from_dict(results[0].get("mediaItem") or {"filename": file_name})
