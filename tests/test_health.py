"""Tests for /health, / and middleware headers."""

from sqlalchemy.exc import OperationalError

from orgscope.services import audit_service
from orgscope.services.user_service import UserService


class TestHealth:

    def test_health_returns_200(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert data["db"] == "ok"
        assert "uptime_seconds" in data
        assert "version" in data
        assert data["structure_count"] == 0

    def test_health_counts_structures(self, client):
        client.post("/api/hierarchy/structures", json={"name": "Acme"})
        assert client.get("/health").json()["structure_count"] == 1

    def test_root_returns_api_info(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert resp.json()["name"] == "orgscope API"


class TestResponseHeaders:

    def test_response_includes_middleware_headers(self, client):
        resp = client.get("/health")
        assert "x-request-id" in resp.headers
        assert resp.headers["x-response-time"].endswith("ms")

    def test_request_id_is_propagated(self, client):
        resp = client.get("/api/users", headers={"X-Request-ID": "trace-123"})
        assert resp.headers["x-request-id"] == "trace-123"


class TestAudit:

    def test_mutations_are_listed_newest_first(self, client):
        client.post("/api/hierarchy/structures", json={"name": "Acme"})
        client.post(
            "/api/users",
            json={"name": "Ann", "email": "ann@acme.example", "role": "PM", "spirit_animal": "Fox"},
        )
        entries = client.get("/api/audit").json()
        assert [e["action"] for e in entries] == ["user_create", "structure_create"]
        assert entries[1]["details"]["path"] == "acme"

    def test_filter_by_resource(self, client):
        structure_id = client.post("/api/hierarchy/structures", json={"name": "Acme"}).json()["structure"]["id"]
        client.post("/api/hierarchy/structures", json={"name": "Globex"})
        entries = client.get(
            "/api/audit", params={"resource_type": "structure", "resource_id": structure_id}
        ).json()
        assert [e["resource_id"] for e in entries] == [structure_id]

    def test_entries_record_client_address(self, client):
        client.post("/api/hierarchy/structures", json={"name": "Acme"})
        entries = client.get("/api/audit").json()
        assert entries[0]["ip_address"] == "testclient"

    def test_entries_record_forwarded_address(self, client):
        client.post(
            "/api/hierarchy/structures",
            json={"name": "Acme"},
            headers={"X-Forwarded-For": "203.0.113.9, 10.0.0.1"},
        )
        entries = client.get("/api/audit").json()
        assert entries[0]["ip_address"] == "203.0.113.9"

    def test_entries_outside_a_request_have_no_address(self, db):
        entry = audit_service.record(db, action="user_create", resource_type="user")
        db.commit()
        assert entry.ip_address is None


class TestDatabaseErrors:

    def test_sqlalchemy_error_returns_generic_500(self, client, monkeypatch):
        def _fail(self):
            raise OperationalError("SELECT 1", {}, Exception("connection lost"))

        monkeypatch.setattr(UserService, "list_users", _fail)
        resp = client.get("/api/users")
        assert resp.status_code == 500
        assert resp.json()["error"] == "INTERNAL_ERROR"
        assert "connection lost" not in resp.text
