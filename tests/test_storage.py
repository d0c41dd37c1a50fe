import re

import pytest

from backend.storage import ObjectStorage, object_key_for


def test_object_key_uses_owner_timestamp_and_extension():
    key = object_key_for("user-1", "Weekly BTC.JPG")
    assert re.fullmatch(r"user-1/\d{13}\.jpg", key)


def test_object_key_without_extension_defaults_to_png():
    assert object_key_for("user-1", "clipboard").endswith(".png")


def test_upload_writes_bytes_and_returns_public_url(tmp_path):
    storage = ObjectStorage(root=str(tmp_path), public_base_url="https://files.example.com/")
    url = storage.upload(b"abc", "user-1/1.png")
    assert url == "https://files.example.com/storage/user-1/1.png"
    assert (tmp_path / "user-1" / "1.png").read_bytes() == b"abc"


def test_upload_refuses_escaping_keys(tmp_path):
    storage = ObjectStorage(root=str(tmp_path / "root"))
    with pytest.raises(ValueError):
        storage.upload(b"abc", "../outside.png")
