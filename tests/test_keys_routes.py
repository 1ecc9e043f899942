"""Tests for key management and key validation endpoints."""

from unittest.mock import patch

import math

import pytest

from app.adapters.credential_store import KeyStatus
from app.core.errors import ValidationAppError
from app.services.api_key_service import ApiKeyService, generate_api_key

OWNER = {"X-User-Id": "user-1"}
OTHER_OWNER = {"X-User-Id": "user-2"}
JSON = {"Content-Type": "application/json"}
NON_FINITE = ["NaN", "Infinity", "-Infinity"]


class TestGenerateApiKey:
    def test_default_shape(self) -> None:
        key = generate_api_key()

        assert key.startswith("sk-")
        assert len(key) == 3 + 32
        assert key[3:].isalnum()

    def test_keys_are_unique(self) -> None:
        assert len({generate_api_key() for _ in range(50)}) == 50

    def test_custom_prefix_and_length(self) -> None:
        key = generate_api_key(prefix="test_", length=10)

        assert key.startswith("test_")
        assert len(key) == 15


class TestCreateKey:
    def test_create_returns_full_record(self, client, store) -> None:
        response = client.post("/v1/keys", json={"name": "dev key", "limit": 50}, headers=OWNER)

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        data = body["data"]
        assert data["name"] == "dev key"
        assert data["status"] == "active"
        assert data["usage"] == 0
        assert data["limit"] == 50
        assert data["owner_id"] == "user-1"
        assert data["key"].startswith("sk-")
        assert store.find_active(data["key"]) is not None

    def test_limit_defaults_to_configured_default(self, client) -> None:
        data = client.post("/v1/keys", json={"name": "dev"}, headers=OWNER).json()["data"]

        assert data["limit"] == 1000

    def test_name_required(self, client) -> None:
        response = client.post("/v1/keys", json={"name": "  "}, headers=OWNER)

        assert response.status_code == 400
        assert response.json()["error"] == "Name is required"

    @pytest.mark.parametrize("limit", [0, -3])
    def test_limit_must_be_positive(self, client, limit) -> None:
        response = client.post("/v1/keys", json={"name": "dev", "limit": limit}, headers=OWNER)

        assert response.status_code == 400
        assert response.json()["error"] == "Limit must be a positive number"

    @pytest.mark.parametrize("token", NON_FINITE)
    def test_non_finite_limit_rejected(self, client, store, token) -> None:
        response = client.post(
            "/v1/keys", content=f'{{"name": "dev", "limit": {token}}}', headers={**OWNER, **JSON}
        )

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_request"
        assert store.list_for_owner("user-1") == []

    def test_unknown_status_is_invalid_request(self, client) -> None:
        response = client.post("/v1/keys", json={"name": "dev", "status": "paused"}, headers=OWNER)

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_request"

    def test_owner_header_required(self, client) -> None:
        response = client.post("/v1/keys", json={"name": "dev"})

        assert response.status_code == 401
        assert response.json()["error"] == "Unauthorized"


class TestOwnerScopedAccess:
    @pytest.fixture
    def created(self, client) -> dict:
        return client.post("/v1/keys", json={"name": "dev", "limit": 10}, headers=OWNER).json()["data"]

    def test_list_only_shows_own_keys(self, client, created) -> None:
        client.post("/v1/keys", json={"name": "theirs"}, headers=OTHER_OWNER)

        body = client.get("/v1/keys", headers=OWNER).json()

        assert body["success"] is True
        assert [k["id"] for k in body["data"]] == [created["id"]]

    def test_get_own_key(self, client, created) -> None:
        response = client.get(f"/v1/keys/{created['id']}", headers=OWNER)

        assert response.status_code == 200
        assert response.json()["data"]["key"] == created["key"]

    def test_other_owner_gets_not_found(self, client, created) -> None:
        for method in ("get", "delete"):
            response = getattr(client, method)(f"/v1/keys/{created['id']}", headers=OTHER_OWNER)
            assert response.status_code == 404
            assert response.json()["error"] == "Not found"

        response = client.put(f"/v1/keys/{created['id']}", json={"name": "x"}, headers=OTHER_OWNER)
        assert response.status_code == 404

    def test_deactivate_then_metered_call_is_rejected(self, client, created) -> None:
        response = client.put(f"/v1/keys/{created['id']}", json={"status": "inactive"}, headers=OWNER)
        assert response.json()["data"]["status"] == "inactive"

        metered = client.get("/v1/example-endpoint", headers={"x-api-key": created["key"]})

        assert metered.status_code == 401

    def test_reset_usage(self, client, created, store) -> None:
        for _ in range(3):
            client.post("/v1/example-endpoint", json={"data": 1}, headers={"x-api-key": created["key"]})
        assert store.find_by_key(created["key"]).usage == 3

        response = client.put(f"/v1/keys/{created['id']}", json={"usage": 0}, headers=OWNER)

        assert response.json()["data"]["usage"] == 0
        assert store.find_by_key(created["key"]).usage == 0

    def test_negative_usage_rejected(self, client, created) -> None:
        response = client.put(f"/v1/keys/{created['id']}", json={"usage": -1}, headers=OWNER)

        assert response.status_code == 400
        assert response.json()["error"] == "Usage must be zero or a positive number"

    @pytest.mark.parametrize("field", ["limit", "usage"])
    @pytest.mark.parametrize("token", NON_FINITE)
    def test_non_finite_update_leaves_key_unchanged(self, client, created, store, field, token) -> None:
        response = client.put(
            f"/v1/keys/{created['id']}", content=f'{{"{field}": {token}}}', headers={**OWNER, **JSON}
        )

        assert response.status_code == 400
        assert response.json()["code"] == "invalid_request"
        record = store.find_by_key(created["key"])
        assert record.usage == 0
        assert record.limit == 10
        metered = client.get("/v1/example-endpoint", headers={"x-api-key": created["key"]})
        assert metered.status_code == 200

    def test_amounts_render_as_integers(self, client, created) -> None:
        response = client.put(f"/v1/keys/{created['id']}", json={"usage": 2, "limit": 20}, headers=OWNER)

        data = response.json()["data"]
        assert type(data["usage"]) is int
        assert type(data["limit"]) is int
        assert data["limit"] == 20

    def test_delete_then_key_is_invalid(self, client, created) -> None:
        assert client.delete(f"/v1/keys/{created['id']}", headers=OWNER).status_code == 200

        assert client.get(f"/v1/keys/{created['id']}", headers=OWNER).status_code == 404
        assert client.post("/v1/validate-key", json={"apiKey": created["key"]}).json() == {"valid": False}


class TestValidateKey:
    def test_active_key_is_valid(self, client, seed, store) -> None:
        seed("sk-abc", usage=7)

        response = client.post("/v1/validate-key", json={"apiKey": "sk-abc"})

        assert response.status_code == 200
        assert response.json() == {"valid": True}
        # Validation never charges
        assert store.find_by_key("sk-abc").usage == 7

    @pytest.mark.parametrize("key", ["sk-xyz", "sk-unknown"])
    def test_inactive_or_unknown_key_is_invalid(self, client, seed, key) -> None:
        seed("sk-xyz", status=KeyStatus.INACTIVE)

        response = client.post("/v1/validate-key", json={"apiKey": key})

        assert response.status_code == 200
        assert response.json() == {"valid": False}

    @pytest.mark.parametrize("body", [{}, {"apiKey": ""}, {"apiKey": None}])
    def test_missing_api_key(self, client, body) -> None:
        response = client.post("/v1/validate-key", json=body)

        assert response.status_code == 400
        assert response.json() == {"valid": False, "error": "apiKey is required"}


class TestApiKeyService:
    def test_update_rejects_low_limit(self, store) -> None:
        service = ApiKeyService(store)
        record = service.create_key("user-1", "dev")

        with pytest.raises(ValidationAppError):
            service.update_key("user-1", record.id, limit=0.5)

    def test_create_logs_fingerprint_not_key(self, store) -> None:
        service = ApiKeyService(store)

        with patch("app.services.api_key_service.logger") as mock_logger:
            record = service.create_key("user-1", "dev")

        extra = mock_logger.info.call_args.kwargs["extra"]
        assert record.key not in extra.values()
        assert len(extra["key_hash"]) == 16

    @pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
    def test_create_rejects_non_finite_limit(self, store, value) -> None:
        service = ApiKeyService(store)

        with pytest.raises(ValidationAppError) as exc_info:
            service.create_key("user-1", "dev", limit=value)

        assert exc_info.value.code == "invalid_limit"
        assert store.list_for_owner("user-1") == []

    @pytest.mark.parametrize(("field", "code"), [("limit", "invalid_limit"), ("usage", "invalid_usage")])
    @pytest.mark.parametrize("value", [math.nan, math.inf])
    def test_update_rejects_non_finite_values(self, store, field, code, value) -> None:
        service = ApiKeyService(store)
        record = service.create_key("user-1", "dev", limit=10)

        with pytest.raises(ValidationAppError) as exc_info:
            service.update_key("user-1", record.id, **{field: value})

        assert exc_info.value.code == code
        assert store.find_by_key(record.key).limit == 10
        assert store.find_by_key(record.key).usage == 0
