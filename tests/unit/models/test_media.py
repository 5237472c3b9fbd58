"""
Unit tests for media models.
"""

from photoframe.models.media import (
    Album,
    DeadLetterEntry,
    Folder,
    FolderImportResult,
    ImportReport,
    MediaItem,
    new_dead_letter_key,
)


class TestFolder:
    """Test cases for Folder."""

    def test_from_front_end_dict(self):
        folder = Folder.from_dict({"folderName": "Trips", "fullPath": "/photos/Trips"})

        assert folder.name == "Trips"
        assert folder.full_path == "/photos/Trips"
        assert folder.item_count == 0

    def test_to_dict(self):
        folder = Folder(name="Trips", full_path="/photos/Trips", item_count=3)

        assert folder.to_dict() == {"folderName": "Trips", "fullPath": "/photos/Trips", "itemCount": 3}


class TestAlbum:
    """Test cases for Album."""

    def test_from_api_resource(self):
        album = Album.from_dict(
            {
                "id": "a1",
                "title": "Trips",
                "productUrl": "https://photos.google.com/a1",
                "mediaItemsCount": "12",
            }
        )

        assert album.id == "a1"
        assert album.title == "Trips"
        assert album.product_url == "https://photos.google.com/a1"
        assert album.media_items_count == 12
        assert album.cover_photo_base_url is None

    def test_cached_form_restores_album(self):
        album = Album(id="a1", title="Trips", media_items_count=4)

        assert Album.from_dict(album.to_dict()) == album


class TestMediaItem:
    """Test cases for MediaItem."""

    def test_is_image(self):
        assert MediaItem(filename="a.jpg", remote_id="1", mime_type="image/jpeg").is_image
        assert not MediaItem(filename="a.mp4", remote_id="2", mime_type="video/mp4").is_image
        assert not MediaItem(filename="a", remote_id="3").is_image

    def test_from_api_resource(self):
        item = MediaItem.from_dict(
            {"id": "m1", "filename": "a.jpg", "mimeType": "image/jpeg", "baseUrl": "https://lh3/x"}
        )

        assert item.remote_id == "m1"
        assert item.filename == "a.jpg"
        assert item.base_url == "https://lh3/x"
        assert item.to_dict() == {
            "id": "m1",
            "filename": "a.jpg",
            "mimeType": "image/jpeg",
            "baseUrl": "https://lh3/x",
        }


class TestDeadLetterEntry:
    """Test cases for DeadLetterEntry."""

    def test_keys_are_unique(self):
        keys = {new_dead_letter_key() for _ in range(500)}

        assert len(keys) == 500

    def test_keys_sort_by_creation_time(self):
        key = new_dead_letter_key()
        timestamp, suffix = key.split("-")

        assert len(timestamp) == 13
        assert timestamp.isdigit()
        assert len(suffix) == 12

    def test_file_path(self):
        entry = DeadLetterEntry(album_id="a1", file_name="x.jpg", folder_path="/photos/Trips")

        assert entry.file_path == "/photos/Trips/x.jpg"

    def test_dict_shape(self):
        entry = DeadLetterEntry(
            album_id="a1",
            file_name="x.jpg",
            folder_path="/photos/Trips",
            file_description="Trips",
            last_error="timeout",
            key="0000000000001-abc",
            created_at=1.0,
        )

        data = entry.to_dict()

        assert data == {
            "key": "0000000000001-abc",
            "albumId": "a1",
            "fileName": "x.jpg",
            "fileDescription": "Trips",
            "folderPath": "/photos/Trips",
            "lastError": "timeout",
            "createdAt": 1.0,
        }
        assert DeadLetterEntry.from_dict(data) == entry


class TestImportReport:
    """Test cases for the import report."""

    def test_report_shape(self):
        report = ImportReport(
            folders_result=[
                FolderImportResult(folder_name="A", full_path="/p/A", items=2),
                FolderImportResult(folder_name="B", full_path="/p/B", items=0, error="boom"),
            ],
            deadletter_count=1,
        )

        assert report.total_items == 2
        assert report.to_dict() == {
            "foldersResult": [
                {"folderName": "A", "fullPath": "/p/A", "items": 2},
                {"folderName": "B", "fullPath": "/p/B", "items": 0, "error": "boom"},
            ],
            "deadletterCount": 1,
        }
