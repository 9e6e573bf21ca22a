"""Unit tests for drive/client.py — HTTP calls, pagination and the single 401 retry."""

import json
from io import BytesIO
from typing import Any
from unittest.mock import MagicMock, patch
from urllib.error import HTTPError
from urllib.parse import parse_qs, urlsplit

import pytest

from stl_share.drive.client import (
    AUTH_EXPIRED_MESSAGE,
    DriveApiError,
    DriveAuthError,
    DriveClient,
    children_query,
    find_root_folder,
    quote_query_value,
)

BASE = "https://www.googleapis.com/drive/v3"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _response(body: bytes, content_type: str = "application/json") -> MagicMock:
    mock_response = MagicMock()
    mock_response.read.return_value = body
    mock_response.headers.get.return_value = content_type
    mock_response.__enter__ = lambda s: s
    mock_response.__exit__ = MagicMock(return_value=False)
    return mock_response


def _json_response(data: dict[str, Any]) -> MagicMock:
    return _response(json.dumps(data).encode())


def _http_error(code: int, message: str = "error") -> HTTPError:
    return HTTPError(
        url=f"{BASE}/files",
        code=code,
        msg=message,
        hdrs=MagicMock(),  # type: ignore[arg-type]
        fp=BytesIO(json.dumps({"error": {"message": message}}).encode()),
    )


def _query(request: Any) -> dict[str, list[str]]:
    return parse_qs(urlsplit(request.full_url).query)


def _folder(folder_id: str, name: str) -> dict[str, str]:
    return {"id": folder_id, "name": name, "mimeType": "application/vnd.google-apps.folder"}


# ---------------------------------------------------------------------------
# Query helpers
# ---------------------------------------------------------------------------


class TestQueryHelpers:
    def test_quote_query_value_escapes_quotes_and_backslashes(self) -> None:
        assert quote_query_value("it's\\") == "it\\'s\\\\"

    def test_children_query(self) -> None:
        assert children_query("abc") == "'abc' in parents and trashed = false"


# ---------------------------------------------------------------------------
# get() tests
# ---------------------------------------------------------------------------


class TestDriveClientGet:
    def test_get_constructs_url_and_bearer_header(self) -> None:
        client = DriveClient("owner-token")

        with patch("stl_share.drive.client.urllib_request.urlopen") as mock_urlopen:
            mock_urlopen.return_value = _json_response({"id": "f1"})
            result = client.get("/files/f1", {"fields": "id"})

        assert result == {"id": "f1"}
        req = mock_urlopen.call_args[0][0]
        assert req.full_url == f"{BASE}/files/f1?fields=id"
        assert req.get_header("Authorization") == "Bearer owner-token"

    def test_get_passes_timeout(self) -> None:
        client = DriveClient("t", timeout=4.0)

        with patch("stl_share.drive.client.urllib_request.urlopen") as mock_urlopen:
            mock_urlopen.return_value = _json_response({})
            client.get("/about")

        assert mock_urlopen.call_args.kwargs["timeout"] == 4.0

    def test_get_raises_drive_api_error_on_non_2xx(self) -> None:
        client = DriveClient("t")

        with (
            patch(
                "stl_share.drive.client.urllib_request.urlopen",
                side_effect=_http_error(404, "File not found"),
            ),
            pytest.raises(DriveApiError) as exc_info,
        ):
            client.get("/files/bad")

        assert exc_info.value.status_code == 404
        assert "File not found" in exc_info.value.message

    def test_401_without_refresher_is_api_error(self) -> None:
        client = DriveClient("t")

        with (
            patch(
                "stl_share.drive.client.urllib_request.urlopen",
                side_effect=_http_error(401, "Invalid Credentials"),
            ),
            pytest.raises(DriveApiError) as exc_info,
        ):
            client.get("/files")

        assert exc_info.value.status_code == 401


# ---------------------------------------------------------------------------
# 401 refresh-and-retry tests
# ---------------------------------------------------------------------------


class TestTokenRefresh:
    def test_single_401_refreshes_and_replays_once(self) -> None:
        refresher = MagicMock(return_value="fresh-token")
        client = DriveClient("stale-token", token_refresher=refresher)

        with patch("stl_share.drive.client.urllib_request.urlopen") as mock_urlopen:
            mock_urlopen.side_effect = [_http_error(401), _json_response({"ok": True})]
            result = client.get("/files/f1")

        assert result == {"ok": True}
        refresher.assert_called_once_with()
        assert mock_urlopen.call_count == 2
        first, second = (call[0][0] for call in mock_urlopen.call_args_list)
        assert first.full_url == second.full_url
        assert second.get_header("Authorization") == "Bearer fresh-token"
        assert client.access_token == "fresh-token"

    def test_second_401_is_terminal_auth_error(self) -> None:
        refresher = MagicMock(return_value="fresh-token")
        client = DriveClient("stale-token", token_refresher=refresher)

        with (
            patch("stl_share.drive.client.urllib_request.urlopen") as mock_urlopen,
            pytest.raises(DriveAuthError, match=AUTH_EXPIRED_MESSAGE),
        ):
            mock_urlopen.side_effect = [_http_error(401), _http_error(401), _json_response({})]
            client.get("/files/f1")

        refresher.assert_called_once_with()
        assert mock_urlopen.call_count == 2

    def test_refresher_failure_is_auth_error(self) -> None:
        client = DriveClient("stale", token_refresher=MagicMock(side_effect=RuntimeError("popup")))

        with (
            patch(
                "stl_share.drive.client.urllib_request.urlopen", side_effect=_http_error(401)
            ),
            pytest.raises(DriveAuthError),
        ):
            client.get("/files")

    def test_empty_refreshed_token_is_auth_error(self) -> None:
        client = DriveClient("stale", token_refresher=MagicMock(return_value=""))

        with (
            patch(
                "stl_share.drive.client.urllib_request.urlopen", side_effect=_http_error(401)
            ),
            pytest.raises(DriveAuthError),
        ):
            client.get("/files")

    def test_non_401_errors_do_not_refresh(self) -> None:
        refresher = MagicMock(return_value="fresh")
        client = DriveClient("t", token_refresher=refresher)

        with (
            patch(
                "stl_share.drive.client.urllib_request.urlopen", side_effect=_http_error(403)
            ),
            pytest.raises(DriveApiError),
        ):
            client.get("/files")

        refresher.assert_not_called()


# ---------------------------------------------------------------------------
# Listing tests
# ---------------------------------------------------------------------------


class TestListChildren:
    def test_follows_next_page_token(self) -> None:
        client = DriveClient("t")
        pages = [
            _json_response(
                {
                    "files": [{"id": "1", "name": "a.stl", "mimeType": "application/sla"}],
                    "nextPageToken": "page-2",
                }
            ),
            _json_response({"files": [{"id": "2", "name": "b.png", "mimeType": "image/png"}]}),
        ]

        with patch("stl_share.drive.client.urllib_request.urlopen", side_effect=pages) as mock:
            entries = client.list_children("folder-1")

        assert [e.id for e in entries] == ["1", "2"]
        first_query = _query(mock.call_args_list[0][0][0])
        second_query = _query(mock.call_args_list[1][0][0])
        assert first_query["q"] == ["'folder-1' in parents and trashed = false"]
        assert first_query["orderBy"] == ["folder,name"]
        assert "pageToken" not in first_query
        assert second_query["pageToken"] == ["page-2"]

    def test_search_in_folder_filters_by_mime_prefix(self) -> None:
        client = DriveClient("t")

        with patch("stl_share.drive.client.urllib_request.urlopen") as mock_urlopen:
            mock_urlopen.return_value = _json_response({"files": []})
            client.search_in_folder("folder-1")

        query = _query(mock_urlopen.call_args[0][0])
        assert query["q"] == [
            "'folder-1' in parents and trashed = false and mimeType contains 'image/'"
        ]

    def test_find_folder_by_name_returns_first_match(self) -> None:
        client = DriveClient("t")
        body = {"files": [_folder("r1", "Clean STL"), _folder("r2", "Clean STL")]}

        with patch("stl_share.drive.client.urllib_request.urlopen") as mock_urlopen:
            mock_urlopen.return_value = _json_response(body)
            found = client.find_folder_by_name("Clean STL")

        assert found is not None and found.id == "r1"

    def test_find_folder_by_name_returns_none(self) -> None:
        client = DriveClient("t")

        with patch("stl_share.drive.client.urllib_request.urlopen") as mock_urlopen:
            mock_urlopen.return_value = _json_response({"files": []})
            assert client.find_folder_by_name("Missing") is None


# ---------------------------------------------------------------------------
# Content and permission tests
# ---------------------------------------------------------------------------


class TestContentAndPermissions:
    def test_get_content_returns_bytes_and_content_type(self) -> None:
        client = DriveClient("t")

        with patch("stl_share.drive.client.urllib_request.urlopen") as mock_urlopen:
            mock_urlopen.return_value = _response(bytes(range(256)), "image/png")
            content = client.get_content("img-1")

        assert content.data == bytes(range(256))
        assert content.content_type == "image/png"
        assert mock_urlopen.call_args[0][0].full_url == f"{BASE}/files/img-1?alt=media"

    def test_file_url(self) -> None:
        assert DriveClient("t").file_url("abc") == f"{BASE}/files/abc?alt=media"

    def test_create_permission_posts_reader_anyone(self) -> None:
        client = DriveClient("t")

        with patch("stl_share.drive.client.urllib_request.urlopen") as mock_urlopen:
            mock_urlopen.return_value = _json_response({"id": "perm-1"})
            result = client.create_permission("f1")

        req = mock_urlopen.call_args[0][0]
        assert result == {"id": "perm-1"}
        assert req.get_method() == "POST"
        assert req.full_url == f"{BASE}/files/f1/permissions"
        assert json.loads(req.data) == {"role": "reader", "type": "anyone"}


class TestDriveApiError:
    def test_status_code_and_message_stored(self) -> None:
        err = DriveApiError(403, "Access denied")
        assert err.status_code == 403
        assert err.message == "Access denied"
        assert "403" in str(err)


# ---------------------------------------------------------------------------
# find_root_folder() tests
# ---------------------------------------------------------------------------


class TestFindRootFolder:
    def test_primary_name_wins(self) -> None:
        client = MagicMock()
        root = MagicMock(id="root-1")
        client.find_folder_by_name.return_value = root

        found = find_root_folder(client)

        assert found is root
        client.find_folder_by_name.assert_called_once_with("Clean STL")

    def test_falls_back_to_alternatives_in_order(self) -> None:
        client = DriveClient("t")
        responses = [
            _json_response({"files": []}),
            _json_response({"files": []}),
            _json_response({"files": [_folder("alt", "STL Collection")]}),
        ]

        with patch(
            "stl_share.drive.client.urllib_request.urlopen", side_effect=responses
        ) as mock_urlopen:
            found = find_root_folder(client)

        assert found is not None and found.id == "alt"
        names = [_query(c[0][0])["q"][0] for c in mock_urlopen.call_args_list]
        assert "name = 'Clean STL'" in names[0]
        assert "name = 'STL Files'" in names[1]
        assert "name = 'STL Collection'" in names[2]

    def test_returns_none_when_nothing_matches(self) -> None:
        client = MagicMock()
        client.find_folder_by_name.return_value = None

        assert find_root_folder(client) is None
        assert [c.args[0] for c in client.find_folder_by_name.call_args_list] == [
            "Clean STL",
            "STL Files",
            "STL Collection",
            "3D Models",
        ]
