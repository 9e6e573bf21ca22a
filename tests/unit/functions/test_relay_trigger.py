"""Unit tests for functions/relay_trigger.py."""

import json
from unittest.mock import MagicMock, patch

import azure.functions as func

from stl_share.config import AppConfig
from stl_share.functions.relay_trigger import drive_proxy
from stl_share.gateway.relay import RelayRequestError, RelayResponse

CONFIG = AppConfig(token_secret="s")
FILES_URL = "https://www.googleapis.com/drive/v3/files"


def _request(
    body: dict[str, object], authorization: str | None = "Bearer owner"
) -> func.HttpRequest:
    headers = {"Authorization": authorization} if authorization else {}
    return func.HttpRequest(
        method="POST",
        url="/api/drive-proxy",
        headers=headers,
        body=json.dumps(body).encode(),
    )


class TestDriveProxy:
    def test_relays_upstream_response(self) -> None:
        relay = MagicMock()
        relay.forward.return_value = RelayResponse(200, b'{"files": []}', "application/json")

        with (
            patch("stl_share.functions.relay_trigger.load_config", return_value=CONFIG),
            patch(
                "stl_share.functions.relay_trigger.drive_relay_from_config", return_value=relay
            ),
        ):
            response = drive_proxy(_request({"url": FILES_URL, "method": "GET"}))

        assert response.status_code == 200
        assert json.loads(response.get_body()) == {"files": []}
        relay.forward.assert_called_once_with(
            url=FILES_URL, authorization="Bearer owner", method="GET", headers=None
        )

    def test_upstream_status_is_kept(self) -> None:
        relay = MagicMock()
        relay.forward.return_value = RelayResponse(404, b'{"error": {}}', "application/json")

        with (
            patch("stl_share.functions.relay_trigger.load_config", return_value=CONFIG),
            patch(
                "stl_share.functions.relay_trigger.drive_relay_from_config", return_value=relay
            ),
        ):
            response = drive_proxy(_request({"url": FILES_URL}))

        assert response.status_code == 404

    def test_missing_authorization_is_unauthorized(self) -> None:
        with patch("stl_share.functions.relay_trigger.load_config", return_value=CONFIG):
            response = drive_proxy(_request({"url": FILES_URL}, authorization=None))

        assert response.status_code == 401
        assert json.loads(response.get_body()) == {"error": "Missing authorization header"}

    def test_missing_url_is_bad_request(self) -> None:
        with patch("stl_share.functions.relay_trigger.load_config", return_value=CONFIG):
            response = drive_proxy(_request({}))

        assert response.status_code == 400

    def test_non_string_method_is_bad_request(self) -> None:
        with patch("stl_share.functions.relay_trigger.load_config", return_value=CONFIG):
            response = drive_proxy(_request({"url": FILES_URL, "method": 5}))

        assert response.status_code == 400
        assert json.loads(response.get_body()) == {"error": "method must be a string"}

    def test_relay_error_status_used(self) -> None:
        relay = MagicMock()
        relay.forward.side_effect = RelayRequestError(502, "Failed to reach Drive")

        with (
            patch("stl_share.functions.relay_trigger.load_config", return_value=CONFIG),
            patch(
                "stl_share.functions.relay_trigger.drive_relay_from_config", return_value=relay
            ),
        ):
            response = drive_proxy(_request({"url": FILES_URL}))

        assert response.status_code == 502

    def test_preflight(self) -> None:
        response = drive_proxy(func.HttpRequest(method="OPTIONS", url="/api/drive-proxy", body=b""))

        assert response.status_code == 204
        assert "Authorization" in response.headers["Access-Control-Allow-Headers"]

    def test_wrong_method(self) -> None:
        response = drive_proxy(func.HttpRequest(method="GET", url="/api/drive-proxy", body=b""))
        assert response.status_code == 405
