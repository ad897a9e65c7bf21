"""Image uploads: /api/upload and the /media mount."""

import re
from pathlib import Path

import pytest

from dealership_platform.errors import StorageError
from dealership_platform.storage import IncomingFile, LocalObjectStore, upload_batch

from conftest import bearer

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
JPEG = b"\xff\xd8\xff\xe0" + b"\x00" * 32


class TestUploadEndpoint:
    def test_partial_failure_is_still_200(self, client, cfg, user_token):
        files = [
            ("files", ("front.png", PNG, "image/png")),
            ("files", ("notes.txt", b"hello", "text/plain")),
            ("files", ("side.jpg", JPEG, "image/jpeg")),
        ]
        resp = client.post("/api/upload", files=files, headers=bearer(user_token))
        assert resp.status_code == 200
        body = resp.json()
        assert body["message"] == "Upload successful"
        assert len(body["urls"]) == 2
        assert len(body["errors"]) == 1
        assert body["errors"][0].startswith("Failed to upload notes.txt: ")

        for url in body["urls"]:
            assert url.startswith("/media/car-images/")
            served = client.get(url)
            assert served.status_code == 200
            assert served.content in (PNG, JPEG)

    def test_files_land_under_owner_prefix(self, client, cfg, user_token):
        me = client.get("/api/auth/me", headers=bearer(user_token)).json()["user"]
        resp = client.post(
            "/api/upload",
            files=[("files", ("a.webp", b"RIFF0000WEBP", "image/webp"))],
            headers=bearer(user_token),
        )
        url = resp.json()["urls"][0]
        key = url[len("/media/car-images/"):]
        assert re.fullmatch(rf"{me['id']}/\d+-[a-z0-9]{{7}}\.webp", key)
        assert (Path(cfg.STORAGE_DIR) / "car-images" / key).read_bytes() == b"RIFF0000WEBP"

    def test_all_failed_is_500(self, client, user_token):
        files = [
            ("files", ("big.png", b"x" * 2048, "image/png")),
            ("files", ("empty.gif", b"", "image/gif")),
        ]
        resp = client.post("/api/upload", files=files, headers=bearer(user_token))
        assert resp.status_code == 500
        body = resp.json()
        assert body["error"] == "All uploads failed"
        assert len(body["details"]) == 2
        assert body["details"][0].startswith("Failed to upload big.png: ")

    def test_no_files_is_400(self, client, user_token):
        resp = client.post("/api/upload", data={"note": "nothing"}, headers=bearer(user_token))
        assert resp.status_code == 400
        assert resp.json() == {"error": "No files provided"}

    def test_anonymous_is_401(self, client):
        resp = client.post("/api/upload", files=[("files", ("a.png", PNG, "image/png"))])
        assert resp.status_code == 401

    def test_session_cookie_is_accepted(self, client, user_token):
        client.cookies.set("dp_token", user_token)
        resp = client.post("/api/upload", files=[("files", ("a.png", PNG, "image/png"))])
        assert resp.status_code == 200


class TestLocalObjectStore:
    @pytest.fixture
    def store(self, tmp_path):
        return LocalObjectStore(tmp_path, "car-images", public_base="/media", max_bytes=16)

    def test_key_uses_filename_extension(self, store):
        key = store.object_key("user-1", "Photo.JPG", "image/jpeg")
        assert re.fullmatch(r"user-1/\d+-[a-z0-9]{7}\.jpg", key)

    def test_key_falls_back_to_content_type(self, store):
        assert store.object_key("u", "blob", "image/png").endswith(".png")

    def test_never_overwrites(self, store):
        store.upload("u/a.png", b"1234", "image/png")
        with pytest.raises(StorageError):
            store.upload("u/a.png", b"5678", "image/png")
        assert (store.bucket_dir / "u" / "a.png").read_bytes() == b"1234"

    @pytest.mark.parametrize(
        "data,content_type",
        [(b"1234", "application/pdf"), (b"", "image/png"), (b"x" * 17, "image/png"), (b"1234", None)],
    )
    def test_rejects(self, store, data, content_type):
        with pytest.raises(StorageError):
            store.upload("u/x.bin", data, content_type)

    def test_rejects_path_escape(self, store):
        with pytest.raises(StorageError):
            store.upload("../outside.png", b"1234", "image/png")

    def test_public_url(self, store):
        assert store.public_url("u/a.png") == "/media/car-images/u/a.png"

    def test_batch_continues_after_failure(self, store):
        result = upload_batch(
            store,
            owner_id="u",
            files=[
                IncomingFile("a.png", "image/png", b"1234"),
                IncomingFile("b.exe", "application/octet-stream", b"MZ"),
                IncomingFile("c.gif", "image/gif", b"GIF8"),
            ],
        )
        assert len(result.urls) == 2
        assert result.errors == ["Failed to upload b.exe: mime type application/octet-stream is not supported"]
        assert not result.all_failed
