"""
Data models for the photoframe application.

Local folders, remote albums and media items, dead-letter records and the
bulk import report. Models serialise to the camelCase shapes used by the
Photos Library API and by the front end, and back.
"""

import time
import uuid
from dataclasses import dataclass, field
from typing import Any


@dataclass
class Folder:
    """A directory directly below the import root, as seen at scan time."""

    name: str
    full_path: str
    item_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"folderName": self.name, "fullPath": self.full_path, "itemCount": self.item_count}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Folder":
        return cls(
            name=data["folderName"],
            full_path=data["fullPath"],
            item_count=int(data.get("itemCount", 0)),
        )


@dataclass
class Album:
    """A remote Google Photos album."""

    id: str
    title: str
    product_url: str | None = None
    cover_photo_base_url: str | None = None
    media_items_count: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "title": self.title}
        if self.product_url:
            data["productUrl"] = self.product_url
        if self.cover_photo_base_url:
            data["coverPhotoBaseUrl"] = self.cover_photo_base_url
        if self.media_items_count is not None:
            data["mediaItemsCount"] = str(self.media_items_count)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Album":
        """Create from an API album resource (or a cached ``to_dict`` result)."""
        count = data.get("mediaItemsCount")
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            product_url=data.get("productUrl"),
            cover_photo_base_url=data.get("coverPhotoBaseUrl"),
            media_items_count=int(count) if count is not None else None,
        )


@dataclass
class MediaItem:
    """A remote photo or video."""

    filename: str
    remote_id: str
    mime_type: str = ""
    base_url: str | None = None
    description: str | None = None

    @property
    def is_image(self) -> bool:
        return bool(self.mime_type) and self.mime_type.startswith("image/")

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.remote_id, "filename": self.filename, "mimeType": self.mime_type}
        if self.base_url:
            data["baseUrl"] = self.base_url
        if self.description:
            data["description"] = self.description
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MediaItem":
        return cls(
            filename=data.get("filename", ""),
            remote_id=data.get("id", ""),
            mime_type=data.get("mimeType", ""),
            base_url=data.get("baseUrl"),
            description=data.get("description"),
        )


def new_dead_letter_key() -> str:
    """
    Generate a dead-letter key.

    Keys start with the creation time in milliseconds so that lexical order is
    creation order, followed by a random suffix so that two failures in the same
    millisecond never share a key.
    """
    return f"{int(time.time() * 1000):013d}-{uuid.uuid4().hex[:12]}"


@dataclass
class DeadLetterEntry:
    """A failed upload waiting to be retried."""

    album_id: str
    file_name: str
    folder_path: str
    file_description: str = ""
    last_error: str | None = None
    key: str = field(default_factory=new_dead_letter_key)
    created_at: float = field(default_factory=time.time)

    @property
    def file_path(self) -> str:
        return f"{self.folder_path}/{self.file_name}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "albumId": self.album_id,
            "fileName": self.file_name,
            "fileDescription": self.file_description,
            "folderPath": self.folder_path,
            "lastError": self.last_error,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DeadLetterEntry":
        return cls(
            key=data["key"],
            album_id=data["albumId"],
            file_name=data["fileName"],
            file_description=data.get("fileDescription") or "",
            folder_path=data["folderPath"],
            last_error=data.get("lastError"),
            created_at=float(data.get("createdAt") or time.time()),
        )


@dataclass
class FolderImportResult:
    """Outcome of importing one selected top-level folder."""

    folder_name: str
    full_path: str
    items: int = 0
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"folderName": self.folder_name, "fullPath": self.full_path, "items": self.items}
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class ImportReport:
    """Summary returned by a bulk import."""

    folders_result: list[FolderImportResult] = field(default_factory=list)
    deadletter_count: int = 0

    @property
    def total_items(self) -> int:
        return sum(result.items for result in self.folders_result)

    def to_dict(self) -> dict[str, Any]:
        return {
            "foldersResult": [result.to_dict() for result in self.folders_result],
            "deadletterCount": self.deadletter_count,
        }
