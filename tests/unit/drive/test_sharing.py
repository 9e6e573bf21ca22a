"""Unit tests for drive/sharing.py."""

from unittest.mock import MagicMock

import pytest

from stl_share.drive.sharing import (
    create_preview_link,
    make_public,
    preview_link,
    public_link,
)
from stl_share.tokens.models import ResourceType
from stl_share.tokens.service import TokenService

SECRET = "sharing-test-secret"


class TestPublicLink:
    def test_folder_link(self) -> None:
        assert public_link("F1", ResourceType.FOLDER) == "https://drive.google.com/drive/folders/F1"

    def test_file_link(self) -> None:
        assert public_link("X9", "file") == "https://drive.google.com/uc?id=X9"

    def test_legacy_item_types_are_files(self) -> None:
        assert public_link("X9", "stl") == "https://drive.google.com/uc?id=X9"
        assert public_link("X9", "image") == "https://drive.google.com/uc?id=X9"


class TestMakePublic:
    def test_grants_reader_anyone_then_returns_link(self) -> None:
        client = MagicMock()

        url = make_public(client, "F1", "folder")

        client.create_permission.assert_called_once_with("F1", role="reader", grantee_type="anyone")
        assert url == "https://drive.google.com/drive/folders/F1"

    def test_permission_failure_propagates(self) -> None:
        client = MagicMock()
        client.create_permission.side_effect = RuntimeError("denied")

        with pytest.raises(RuntimeError):
            make_public(client, "F1", "folder")


class TestPreviewLinks:
    def test_preview_link_strips_trailing_slash(self) -> None:
        assert preview_link("https://app.example/", "tok") == "https://app.example/preview/tok"

    def test_create_preview_link_embeds_valid_token(self) -> None:
        tokens = TokenService(SECRET, clock=lambda: 1_000)

        url = create_preview_link(tokens, "https://app.example", "F1", "folder", 60)

        prefix = "https://app.example/preview/"
        assert url.startswith(prefix)
        payload = tokens.validate(url[len(prefix) :])
        assert payload.resource_id == "F1"
        assert payload.resource_type is ResourceType.FOLDER
        assert payload.expires_at == 1_000 + 60 * 60_000

    def test_create_preview_link_requires_base_url(self) -> None:
        tokens = TokenService(SECRET)

        with pytest.raises(ValueError, match="App base URL"):
            create_preview_link(tokens, "", "F1", "folder", 60)
