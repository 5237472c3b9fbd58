"""
Pytest configuration and fixtures for photoframe tests.
"""

import itertools
import tempfile
import threading
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest

from photoframe.config import get_config
from photoframe.error_handling import RemoteApiError
from photoframe.models.database import create_database
from photoframe.models.media import Album, MediaItem
from photoframe.services.auth import AuthContext
from photoframe.services.cache import CacheRegistry


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakePhotosLibraryClient:
    """In-memory stand-in for PhotosLibraryClient."""

    def __init__(self, page_size: int = 2):
        self.page_size = page_size
        self.albums: list[Album] = []
        self.album_items: dict[str, list[MediaItem]] = {}
        self.library: list[dict[str, Any]] = []
        self.uploads: list[tuple[str, bytes]] = []
        self.created: list[tuple[str, str, str]] = []
        self.search_calls: list[dict[str, Any]] = []
        self.fail_uploads: set[str] = set()
        self.fail_album_titles: set[str] = set()
        self.upload_attempts: dict[str, int] = {}
        self.fail_album_listing = False
        self.fail_search_after: int | None = None
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    # Test helpers

    def add_album(self, title: str, filenames: list[str] | None = None) -> Album:
        album = Album(id=f"album-{next(self._ids)}", title=title)
        self.albums.append(album)
        self.album_items[album.id] = [
            MediaItem(filename=name, remote_id=f"item-{next(self._ids)}", mime_type="image/jpeg")
            for name in filenames or []
        ]
        return album

    def album_titles(self) -> list[str]:
        return [album.title for album in self.albums]

    def filenames_in(self, title: str) -> list[str]:
        album = next(album for album in self.albums if album.title == title)
        return [item.filename for item in self.album_items[album.id]]

    # Client API

    def search_media_items(self, auth_token: str, parameters: dict[str, Any]) -> dict[str, Any]:
        with self._lock:
            self.search_calls.append(dict(parameters))
            if self.fail_search_after is not None and len(self.search_calls) > self.fail_search_after:
                raise RemoteApiError("Quota exceeded", name="RESOURCE_EXHAUSTED", code=429)

            if "albumId" in parameters:
                items = [item.to_dict() for item in self.album_items.get(parameters["albumId"], [])]
            else:
                items = list(self.library)

            start = int(parameters.get("pageToken") or 0)
            end = start + self.page_size
            body: dict[str, Any] = {"mediaItems": items[start:end]}
            if end < len(items):
                body["nextPageToken"] = str(end)
            return body

    def list_albums(self, auth_token: str, page_size: int | None = None) -> list[Album]:
        if self.fail_album_listing:
            raise RemoteApiError("Backend error", name="INTERNAL", code=500)
        with self._lock:
            return list(self.albums)

    def create_album(self, auth_token: str, title: str) -> Album:
        if title in self.fail_album_titles:
            raise RemoteApiError(f"Cannot create album {title}", name="INVALID_ARGUMENT", code=400)
        with self._lock:
            album = Album(id=f"album-{next(self._ids)}", title=title)
            self.albums.append(album)
            self.album_items[album.id] = []
            return album

    def upload_media(self, auth_token: str, file_name: str, data: bytes, timeout: float | None = None) -> str:
        with self._lock:
            attempt = self.upload_attempts[file_name] = self.upload_attempts.get(file_name, 0) + 1
            if file_name in self.fail_uploads:
                raise RemoteApiError(f"Upload of {file_name} timed out (attempt {attempt})", name="Timeout")
            self.uploads.append((file_name, data))
            return f"upload-token-{file_name}"

    def batch_create(
        self,
        auth_token: str,
        album_id: str,
        upload_token: str,
        file_name: str,
        description: str = "",
        timeout: float | None = None,
    ) -> MediaItem:
        with self._lock:
            item = MediaItem(
                filename=file_name,
                remote_id=f"item-{next(self._ids)}",
                mime_type="image/jpeg",
                description=description,
            )
            self.album_items.setdefault(album_id, []).append(item)
            self.created.append((album_id, file_name, description))
            return item


def make_tree(root: Path, layout: dict[str, Any]) -> Path:
    """Create files (bytes/str values) and folders (dict values) below ``root``."""
    root.mkdir(parents=True, exist_ok=True)
    for name, content in layout.items():
        path = root / name
        if isinstance(content, dict):
            make_tree(path, content)
        elif isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content)
    return root


@pytest.fixture(autouse=True)
def photoframe_env(monkeypatch) -> Generator[None, None, None]:
    """Deterministic configuration for every test."""
    monkeypatch.setenv("ENVIRONMENT", "testing")
    monkeypatch.setenv("OAUTH_CLIENT_ID", "test-client-id")
    monkeypatch.setenv("OAUTH_CLIENT_SECRET", "test-client-secret")
    monkeypatch.setenv("OAUTH_TOKEN_ENDPOINT", "https://oauth.test/token")
    monkeypatch.setenv("PHOTOS_API_ENDPOINT", "https://photos.test")
    get_config().clear_cache()
    yield
    get_config().clear_cache()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmp_dir:
        yield Path(tmp_dir)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def caches(clock) -> Generator[CacheRegistry, None, None]:
    """Cache registry over an in-memory DuckDB database."""
    db_manager = create_database(":memory:")
    yield CacheRegistry(db_manager, clock=clock)
    db_manager.close()


@pytest.fixture
def fake_client() -> FakePhotosLibraryClient:
    return FakePhotosLibraryClient()


@pytest.fixture
def auth(caches, clock) -> AuthContext:
    """Auth context holding a fresh token."""
    context = AuthContext(
        client_id="test-client-id",
        client_secret="test-client-secret",
        token_endpoint="https://oauth.test/token",
        token_lifetime=3300,
        refresh_token_store=caches.refresh_tokens,
        clock=clock,
    )
    context.set_tokens("access-token", "refresh-token", profile_id="user-1")
    return context


@pytest.fixture
def sample_image_data() -> bytes:
    """Provide sample image data for testing."""
    return b"\x89PNG\r\n\x1a\n" + b"\x00" * 16
