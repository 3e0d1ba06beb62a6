"""
Tests for the command-line entry point.
"""

import httpx
import pytest

from b2store import cli
from b2store.config import Settings
from b2store.infrastructure.b2 import create_storage_client


def configured(**values) -> Settings:
    defaults = dict(
        b2_key_id="key-id",
        b2_application_key="app-key",
        b2_bucket_name="media",
        b2_bucket_id="bucket-123",
    )
    defaults.update(values)
    return Settings(_env_file=None, **defaults)


@pytest.fixture
def use_settings(monkeypatch):
    def apply(settings: Settings) -> None:
        monkeypatch.setattr(cli, "get_settings", lambda: settings)
    return apply


@pytest.fixture
def use_fake_store(monkeypatch, fake_b2):
    def factory(config=None, local_storage=False, http=None):
        return create_storage_client(
            config,
            local_storage=local_storage,
            http=httpx.Client(transport=httpx.MockTransport(fake_b2.handler)),
        )
    monkeypatch.setattr(cli, "create_storage_client", factory)
    return fake_b2


class TestCli:
    """Tests for the upload, delete and url commands."""

    def test_missing_configuration_exits_with_error(self, use_settings, capsys):
        use_settings(Settings(_env_file=None))

        assert cli.main(["url", "42", "photo.jpg"]) == 1
        assert "B2_KEY_ID" in capsys.readouterr().out

    def test_url_command_prints_custom_domain_url(self, use_settings, capsys):
        use_settings(configured(b2_use_custom_domain=True, b2_custom_domain="cdn.example.com"))

        assert cli.main(["url", "42", "photo.jpg"]) == 0
        assert capsys.readouterr().out.strip() == "https://cdn.example.com/42/photo.jpg"

    def test_upload_command(self, use_settings, use_fake_store, tmp_path, capsys):
        use_settings(configured())
        path = tmp_path / "photo.jpg"
        path.write_bytes(b"jpeg")

        assert cli.main(["upload", "42", str(path)]) == 0
        assert "Uploaded 42/photo.jpg" in capsys.readouterr().out
        assert use_fake_store.count("b2_upload_file") == 1

    def test_delete_command_not_found(self, use_settings, use_fake_store, capsys):
        use_settings(configured())

        assert cli.main(["delete", "42", "photo.jpg"]) == 0
        assert "Not found: 42/photo.jpg" in capsys.readouterr().out

    def test_storage_error_exits_with_error(self, use_settings, use_fake_store, capsys):
        use_settings(configured())
        use_fake_store.failures["b2_list_file_names"] = (500, {"message": "internal"})

        assert cli.main(["delete", "42", "photo.jpg"]) == 1
        assert capsys.readouterr().out.startswith("ERROR: List file for deletion failed")

    def test_local_storage_upload_is_skipped(self, use_settings, tmp_path, capsys):
        use_settings(Settings(_env_file=None, b2_local_storage=True))
        path = tmp_path / "photo.jpg"
        path.write_bytes(b"jpeg")

        assert cli.main(["upload", "42", str(path)]) == 0
        assert "nothing uploaded" in capsys.readouterr().out
