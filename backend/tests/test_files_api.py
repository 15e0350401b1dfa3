"""Tests for the file storage API."""

from unittest.mock import patch
from urllib.parse import urlparse

from botocore.exceptions import EndpointConnectionError

from hookcatch.repositories.vector_entry_repository import VectorEntryRepository


def _put(client, key, content, content_type="text/plain"):
    return client.put(f"/v1/files/{key}", content=content, headers={"content-type": content_type})


class TestUpload:
    def test_text_upload_is_stored_and_indexed(self, client, drain, object_store, db_session):
        response = _put(client, "docs/readme.txt", b"webhook capture service")
        assert response.status_code == 201
        assert response.json() == {
            "key": "docs/readme.txt",
            "size": 23,
            "content_type": "text/plain",
            "indexing": True,
        }
        assert object_store.has("docs/readme.txt")

        drain()
        entry = VectorEntryRepository(db_session).get("docs/readme.txt")
        assert entry.content == "webhook capture service"

        hits = client.get("/v1/vector/search", params={"query": "webhook capture"}).json()
        assert hits[0]["metadata"]["key"] == "docs/readme.txt"
        assert hits[0]["content"] == "webhook capture service"

    def test_image_upload_is_not_indexed(self, client, drain, object_store, db_session):
        response = _put(client, "img/logo.png", b"\x89PNG\r\n\x1a\n", "image/png")
        assert response.status_code == 201
        assert response.json()["indexing"] is False
        drain()
        assert VectorEntryRepository(db_session).get("img/logo.png") is None
        assert object_store.metadata("img/logo.png")["content_type"] == "image/png"

    def test_content_type_parameters_are_ignored(self, client):
        response = _put(client, "a.md", b"# hi", "text/markdown; charset=utf-8")
        assert response.status_code == 201
        assert response.json()["content_type"] == "text/markdown"

    def test_rejects_unsupported_content_type(self, client, object_store):
        response = _put(client, "a.pdf", b"%PDF", "application/pdf")
        assert response.status_code == 422
        assert response.json()["field"] == "content_type"
        assert not object_store.has("a.pdf")

    def test_rejects_empty_file(self, client):
        response = _put(client, "empty.txt", b"")
        assert response.status_code == 422
        assert response.json()["field"] == "file"

    def test_rejects_oversized_file(self, client, app_context):
        app_context.settings.UPLOAD_MAX_BYTES = 8
        response = _put(client, "big.txt", b"123456789")
        assert response.status_code == 422
        assert "exceeds 8 bytes" in response.json()["detail"]

    def test_accepts_file_at_size_limit(self, client, app_context):
        app_context.settings.UPLOAD_MAX_BYTES = 8
        assert _put(client, "ok.txt", b"12345678").status_code == 201

    def test_rejects_invalid_key(self, client):
        response = _put(client, "a//b.txt", b"x")
        assert response.status_code == 422
        assert response.json()["field"] == "key"

    def test_storage_failure_is_500(self, client, object_store):
        with patch.object(
            object_store, "put", side_effect=EndpointConnectionError(endpoint_url="http://s3")
        ):
            response = _put(client, "a.txt", b"x")
        assert response.status_code == 500
        assert response.json() == {"detail": "Internal server error"}


class TestListAndDownload:
    def test_list_with_presigned_urls(self, client):
        _put(client, "docs/a.txt", b"alpha")
        _put(client, "img/b.png", b"\x89PNG", "image/png")

        response = client.get("/v1/files/")
        assert response.status_code == 200
        entries = response.json()
        assert [e["key"] for e in entries] == ["docs/a.txt", "img/b.png"]
        assert entries[0]["size"] == 5
        assert entries[0]["etag"]
        assert entries[0]["url"].startswith("http://testserver/v1/files/raw/docs/a.txt?")

        only_docs = client.get("/v1/files/", params={"prefix": "docs/"}).json()
        assert [e["key"] for e in only_docs] == ["docs/a.txt"]

    def test_presigned_url_downloads_file(self, client):
        _put(client, "docs/a.txt", b"alpha")
        [entry] = client.get("/v1/files/").json()
        url = urlparse(entry["url"])

        response = client.get(f"{url.path}?{url.query}")
        assert response.status_code == 200
        assert response.content == b"alpha"
        assert response.headers["content-type"].startswith("text/plain")

    def test_bad_signature_is_rejected(self, client):
        _put(client, "docs/a.txt", b"alpha")
        response = client.get(
            "/v1/files/raw/docs/a.txt", params={"expires": 9999999999, "signature": "forged"}
        )
        assert response.status_code == 403


class TestDelete:
    def test_delete_removes_blob_and_vector_entry(self, client, drain, object_store, db_session):
        _put(client, "notes.txt", b"ten bytes!")
        drain()
        assert VectorEntryRepository(db_session).get("notes.txt") is not None

        response = client.delete("/v1/files/notes.txt")
        assert response.status_code == 204
        assert object_store.has("notes.txt") is False

        drain()
        db_session.expire_all()
        assert VectorEntryRepository(db_session).get("notes.txt") is None
        search = client.get("/v1/vector/search", params={"query": "ten bytes"}).json()
        assert search == []

    def test_upload_then_immediate_delete(self, client, drain, object_store, db_session):
        _put(client, "fleeting.txt", b"ten bytes!")
        assert client.delete("/v1/files/fleeting.txt").status_code == 204
        assert object_store.has("fleeting.txt") is False

        drain()
        assert VectorEntryRepository(db_session).get("fleeting.txt") is None
        assert client.get("/v1/vector/keys").json() == []

    def test_delete_removes_orphaned_vector_entry(self, client, drain, db_session):
        VectorEntryRepository(db_session).upsert(
            "docs/orphan.txt", "left behind", [0.1] * 64, {"key": "docs/orphan.txt"}
        )

        response = client.delete("/v1/files/docs/orphan.txt")
        assert response.status_code == 204

        drain()
        db_session.expire_all()
        assert VectorEntryRepository(db_session).get("docs/orphan.txt") is None

    def test_delete_missing(self, client):
        response = client.delete("/v1/files/missing.txt")
        assert response.status_code == 404
        assert response.json()["detail"] == "File not found: missing.txt"
