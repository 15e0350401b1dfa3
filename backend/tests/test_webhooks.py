"""Tests for webhook configuration: repository, store and API."""

import pytest
from sqlalchemy import text

from hookcatch.core.errors import NotFoundError, ValidationError
from hookcatch.models.captured_request import CapturedRequest
from hookcatch.models.webhook import (
    DEFAULT_RESPONSE_BODY,
    DEFAULT_RESPONSE_CONTENT_TYPE,
    DEFAULT_RESPONSE_DELAY,
    DEFAULT_RESPONSE_STATUS,
    Webhook,
)
from hookcatch.repositories.webhook_repository import WebhookRepository
from hookcatch.schemas.webhook import MAX_RESPONSE_BODY_BYTES, WebhookCreate
from hookcatch.services.request_log import CapturedRequestDraft, RequestLog
from hookcatch.services.webhook_store import WebhookStore


class TestWebhookRepository:
    def test_create_with_defaults(self, db_session):
        repo = WebhookRepository(db_session)
        webhook = repo.create({})
        assert webhook.id
        assert webhook.response_status == DEFAULT_RESPONSE_STATUS
        assert webhook.response_content_type == DEFAULT_RESPONSE_CONTENT_TYPE
        assert webhook.response_body == DEFAULT_RESPONSE_BODY
        assert webhook.response_delay == DEFAULT_RESPONSE_DELAY
        assert webhook.created_at is not None

    def test_get_by_id_and_exists(self, db_session):
        repo = WebhookRepository(db_session)
        webhook = repo.create({})
        assert repo.get_by_id(str(webhook.id)).id == webhook.id
        assert repo.exists(str(webhook.id))
        assert repo.get_by_id("missing") is None
        assert not repo.exists("missing")

    def test_update_missing_returns_none(self, db_session):
        assert WebhookRepository(db_session).update("missing", {"response_status": 201}) is None

    def test_delete_missing_returns_false(self, db_session):
        assert WebhookRepository(db_session).delete("missing") is False


class TestWebhookStore:
    def test_create_without_config_uses_defaults(self, db_session):
        webhook = WebhookStore(db_session).create()
        assert webhook.response_status == 200
        assert webhook.response_content_type == "application/json"
        assert webhook.response_body == '{"status":"ok"}'
        assert webhook.response_delay == 0

    def test_create_with_partial_config(self, db_session):
        webhook = WebhookStore(db_session).create({"response_status": 418, "response_delay": 25})
        assert webhook.response_status == 418
        assert webhook.response_delay == 25
        assert webhook.response_body == DEFAULT_RESPONSE_BODY

    def test_create_accepts_schema_instance(self, db_session):
        webhook = WebhookStore(db_session).create(WebhookCreate(response_body="hi"))
        assert webhook.response_body == "hi"

    def test_ids_are_unique(self, db_session):
        store = WebhookStore(db_session)
        ids = {str(store.create().id) for _ in range(20)}
        assert len(ids) == 20

    @pytest.mark.parametrize(
        "config,field",
        [
            ({"response_status": 99}, "response_status"),
            ({"response_status": 600}, "response_status"),
            ({"response_delay": -1}, "response_delay"),
            ({"response_delay": 101}, "response_delay"),
            ({"response_content_type": "x" * 1025}, "response_content_type"),
            ({"response_body": "x" * (MAX_RESPONSE_BODY_BYTES + 1)}, "response_body"),
            ({"unknown_field": 1}, "unknown_field"),
        ],
    )
    def test_create_rejects_out_of_range(self, db_session, config, field):
        with pytest.raises(ValidationError) as exc_info:
            WebhookStore(db_session).create(config)
        assert exc_info.value.field == field
        assert db_session.query(Webhook).count() == 0

    def test_body_limit_counts_utf8_bytes(self, db_session):
        # 2 bytes per character in UTF-8
        body = "é" * (MAX_RESPONSE_BODY_BYTES // 2 + 1)
        with pytest.raises(ValidationError):
            WebhookStore(db_session).create({"response_body": body})

    def test_boundary_values_accepted(self, db_session):
        webhook = WebhookStore(db_session).create(
            {
                "response_status": 599,
                "response_delay": 100,
                "response_content_type": "x" * 1024,
                "response_body": "x" * MAX_RESPONSE_BODY_BYTES,
            }
        )
        assert webhook.response_status == 599
        assert webhook.response_delay == 100

    def test_get_missing_raises(self, db_session):
        with pytest.raises(NotFoundError, match="Webhook not found: nope"):
            WebhookStore(db_session).get("nope")

    def test_update_changes_only_supplied_fields(self, db_session):
        store = WebhookStore(db_session)
        webhook = store.create({"response_body": "original", "response_status": 202})
        updated = store.update(str(webhook.id), {"response_status": 503})
        assert updated.response_status == 503
        assert updated.response_body == "original"
        assert updated.response_content_type == DEFAULT_RESPONSE_CONTENT_TYPE

    def test_update_touches_updated_at(self, db_session):
        store = WebhookStore(db_session)
        webhook = store.create()
        before = webhook.updated_at
        updated = store.update(str(webhook.id), {"response_body": "changed"})
        assert updated.updated_at >= before

    def test_update_missing_raises(self, db_session):
        with pytest.raises(NotFoundError):
            WebhookStore(db_session).update("nope", {"response_status": 200})

    def test_update_validates(self, db_session):
        store = WebhookStore(db_session)
        webhook = store.create()
        with pytest.raises(ValidationError):
            store.update(str(webhook.id), {"response_status": 1000})
        assert store.get(str(webhook.id)).response_status == 200

    def test_delete_missing_raises(self, db_session):
        with pytest.raises(NotFoundError):
            WebhookStore(db_session).delete("nope")

    def test_delete_cascades_to_requests(self, db_session):
        store = WebhookStore(db_session)
        webhook = store.create()
        other = store.create()
        log = RequestLog(db_session)
        for _ in range(3):
            log.append(str(webhook.id), CapturedRequestDraft(method="POST", url="http://x/"))
        log.append(str(other.id), CapturedRequestDraft(method="GET", url="http://y/"))

        store.delete(str(webhook.id))

        remaining = db_session.query(CapturedRequest).all()
        assert [r.webhook_id for r in remaining] == [other.id]
        with pytest.raises(NotFoundError):
            store.get(str(webhook.id))

    def test_foreign_keys_enforced(self, db_session):
        assert db_session.execute(text("PRAGMA foreign_keys")).scalar() == 1


class TestWebhookApi:
    def test_create_without_body(self, client):
        response = client.post("/v1/webhooks/")
        assert response.status_code == 201
        data = response.json()
        assert data["response_status"] == 200
        assert data["response_content_type"] == "application/json"
        assert data["response_body"] == '{"status":"ok"}'
        assert data["response_delay"] == 0

    def test_create_with_config(self, client):
        response = client.post(
            "/v1/webhooks/",
            json={"response_status": 201, "response_body": "created"},
        )
        assert response.status_code == 201
        assert response.json()["response_status"] == 201
        assert response.json()["response_body"] == "created"

    def test_create_invalid_returns_422(self, client):
        response = client.post("/v1/webhooks/", json={"response_status": 700})
        assert response.status_code == 422

    def test_get(self, client):
        webhook_id = client.post("/v1/webhooks/").json()["id"]
        response = client.get(f"/v1/webhooks/{webhook_id}")
        assert response.status_code == 200
        assert response.json()["id"] == webhook_id

    def test_get_missing(self, client):
        response = client.get("/v1/webhooks/missing")
        assert response.status_code == 404
        assert response.json()["detail"] == "Webhook not found: missing"

    def test_update(self, client):
        webhook_id = client.post("/v1/webhooks/").json()["id"]
        response = client.put(f"/v1/webhooks/{webhook_id}", json={"response_delay": 10})
        assert response.status_code == 200
        assert response.json()["response_delay"] == 10
        assert response.json()["response_status"] == 200

    def test_update_missing(self, client):
        response = client.put("/v1/webhooks/missing", json={"response_delay": 10})
        assert response.status_code == 404

    def test_update_invalid(self, client):
        webhook_id = client.post("/v1/webhooks/").json()["id"]
        response = client.put(f"/v1/webhooks/{webhook_id}", json={"response_delay": 500})
        assert response.status_code == 422

    def test_delete(self, client):
        webhook_id = client.post("/v1/webhooks/").json()["id"]
        assert client.delete(f"/v1/webhooks/{webhook_id}").status_code == 204
        assert client.get(f"/v1/webhooks/{webhook_id}").status_code == 404
        assert client.delete(f"/v1/webhooks/{webhook_id}").status_code == 404
