"""
Unit tests for the photo queue search layer.
"""

from unittest.mock import MagicMock

import pytest
import requests

from photoframe.error_handling import RemoteApiError
from photoframe.models.media import MediaItem
from photoframe.services.cache import MEDIA_ITEM_CACHE_TTL
from photoframe.services.library_api import PhotosLibraryClient
from photoframe.services.search import SearchResult, SearchService, build_search_filters, strip_pagination


def _photo(index, mime_type="image/jpeg"):
    return {"id": f"m{index}", "filename": f"{index}.jpg", "mimeType": mime_type, "baseUrl": f"https://lh3/{index}"}


@pytest.fixture
def service(fake_client, caches, auth):
    return SearchService(fake_client, caches, auth, photos_to_load=3, page_size=2)


class TestBuildSearchFilters:
    """Test cases for search form conversion."""

    def test_photos_only(self):
        assert build_search_filters({}) == {"contentFilter": {}, "mediaTypeFilter": {"mediaTypes": ["PHOTO"]}}

    def test_categories(self):
        filters = build_search_filters({"includedCategories": ["LANDSCAPES", "CITYSCAPES"], "excludedCategories": "PEOPLE"})

        assert filters["contentFilter"] == {
            "includedContentCategories": ["LANDSCAPES", "CITYSCAPES"],
            "excludedContentCategories": ["PEOPLE"],
        }

    def test_exact_date(self):
        filters = build_search_filters({"dateFilter": "exact", "exactYear": "2020", "exactMonth": "5", "exactDay": ""})

        assert filters["dateFilter"] == {"dates": [{"year": 2020, "month": 5}]}

    def test_date_range(self):
        filters = build_search_filters(
            {
                "dateFilter": "range",
                "startYear": 2019,
                "startMonth": 1,
                "startDay": 1,
                "endYear": 2019,
                "endMonth": 12,
                "endDay": 31,
            }
        )

        assert filters["dateFilter"] == {
            "ranges": [
                {
                    "startDate": {"year": 2019, "month": 1, "day": 1},
                    "endDate": {"year": 2019, "month": 12, "day": 31},
                }
            ]
        }

    def test_strip_pagination(self):
        assert strip_pagination({"albumId": "a", "pageToken": "t", "pageSize": 2}) == {"albumId": "a"}


class TestSearch:
    """Test cases for SearchService.search."""

    def test_accumulates_until_minimum(self, service, fake_client):
        fake_client.library = [_photo(i) for i in range(10)]

        result = service.search("tok", {"filters": {}})

        assert [photo.remote_id for photo in result.photos] == ["m0", "m1", "m2", "m3"]
        assert result.error is None
        assert len(fake_client.search_calls) == 2
        assert result.parameters["pageToken"] == "4"
        assert result.parameters["pageSize"] == 2

    def test_non_images_are_dropped(self, service, fake_client):
        fake_client.library = [_photo(0), _photo(1, "video/mp4"), _photo(2)]

        result = service.search("tok", {})

        assert [photo.remote_id for photo in result.photos] == ["m0", "m2"]
        assert "pageToken" not in result.parameters

    def test_caller_parameters_are_not_modified(self, service, fake_client):
        fake_client.library = [_photo(0)]
        parameters = {"albumId": "a1"}

        service.search("tok", parameters)

        assert parameters == {"albumId": "a1"}

    def test_error_returns_partial_result(self, service, fake_client):
        fake_client.library = [_photo(i) for i in range(10)]
        fake_client.fail_search_after = 1

        result = service.search("tok", {})

        assert len(result.photos) == 2
        assert result.error == {"name": "RESOURCE_EXHAUSTED", "code": 429, "message": "Quota exceeded"}

    def test_non_json_page_returns_error(self, caches, auth):
        response = requests.Response()
        response.status_code = 200
        response._content = b"<html>proxy error</html>"
        http_session = MagicMock(spec=requests.Session)
        http_session.request.return_value = response
        client = PhotosLibraryClient(api_endpoint="https://photos.test", session=http_session)

        result = SearchService(client, caches, auth, photos_to_load=3, page_size=2).search("tok", {"albumId": "a"})

        assert result.photos == []
        assert result.error["name"] == "InvalidResponseBody"
        assert result.error["code"] == 200

    def test_list_album_items_is_exhaustive(self, service, fake_client):
        album = fake_client.add_album("Trips", [f"{i}.jpg" for i in range(5)])

        items = service.list_album_items("tok", album.id)

        assert [item.filename for item in items] == [f"{i}.jpg" for i in range(5)]


class TestQueue:
    """Test cases for the cached photo queue."""

    def test_return_photos_caches_photos_and_parameters(self, service, caches):
        result = SearchResult(
            photos=[MediaItem.from_dict(_photo(1))],
            parameters={"albumId": "a1", "pageSize": 2, "pageToken": "t"},
        )

        response = service.return_photos("user-1", result)

        assert response == {"photos": [_photo(1)], "parameters": {"albumId": "a1"}}
        assert caches.media_items.get("user-1") == [_photo(1)]
        assert caches.storage.get("user-1") == {"parameters": {"albumId": "a1"}}

    def test_return_photos_with_error_caches_nothing(self, service, caches):
        result = SearchResult(error={"name": "INTERNAL", "code": 500, "message": "Backend error"})

        with pytest.raises(RemoteApiError) as exc_info:
            service.return_photos("user-1", result)

        assert exc_info.value.to_dict() == {"name": "INTERNAL", "code": 500, "message": "Backend error"}
        assert caches.media_items.get("user-1") is None
        assert caches.storage.get("user-1") is None

    def test_get_queue_empty(self, service):
        assert service.get_queue("user-1") == {}

    def test_get_queue_from_cache(self, service, fake_client):
        fake_client.library = [_photo(0)]
        service.load_from_search("user-1", {})
        calls = len(fake_client.search_calls)

        queue = service.get_queue("user-1")

        assert queue["photos"] == [_photo(0)]
        assert queue["parameters"]["filters"]["mediaTypeFilter"] == {"mediaTypes": ["PHOTO"]}
        assert len(fake_client.search_calls) == calls

    def test_get_queue_replays_stored_query(self, service, fake_client, clock, auth):
        album = fake_client.add_album("Trips")
        fake_client.album_items[album.id] = [MediaItem.from_dict(_photo(0))]
        service.load_from_album("user-1", album.id)

        clock.advance(MEDIA_ITEM_CACHE_TTL + 1)
        auth.set_tokens("access-token-2", "refresh-token", profile_id="user-1")
        fake_client.album_items[album.id].append(MediaItem.from_dict(_photo(1)))
        queue = service.get_queue("user-1")

        assert [photo["id"] for photo in queue["photos"]] == ["m0", "m1"]
        assert fake_client.search_calls[-1] == {"albumId": album.id, "pageSize": 2}

    def test_load_from_album_error(self, service, fake_client):
        fake_client.fail_search_after = 0

        with pytest.raises(RemoteApiError):
            service.load_from_album("user-1", "a1")

    def test_logout(self, service, caches, auth):
        caches.media_items.set("user-1", [])
        caches.storage.set("user-1", {"parameters": {}})
        caches.albums.set("user-1", [])

        service.logout("user-1")

        assert caches.media_items.get("user-1") is None
        assert caches.storage.get("user-1") is None
        assert caches.albums.get("user-1") is None
        assert not auth.has_credential
