"""Tests for /api/hierarchy and /api/permissions endpoints."""

MISSING_ID = "2f1c6b9e-8d0a-4c61-9e43-0a7b5d2c9f11"


def create(client, name, parent_id=None):
    payload = {"name": name}
    if parent_id is not None:
        payload["parent_id"] = parent_id
    return client.post("/api/hierarchy/structures", json=payload)


def make_user_payload(name="Ann", email="ann@acme.example"):
    return {"name": name, "email": email, "role": "Engineer", "spirit_animal": "Otter"}


class TestCreateStructureApi:

    def test_create_root_returns_201(self, client):
        resp = create(client, "Acme")
        assert resp.status_code == 201
        body = resp.json()
        assert body["structure"]["path"] == "acme"
        assert body["structure"]["level_name"] == "Company"
        assert body["parent"] is None
        assert body["hierarchy"]["total_structures"] == 1

    def test_create_child(self, client):
        acme = create(client, "Acme").json()["structure"]
        resp = create(client, "Eng", acme["id"])
        assert resp.status_code == 201
        assert resp.json()["structure"]["path"] == "acme/eng"
        assert resp.json()["parent"]["id"] == acme["id"]

    def test_empty_name_returns_400(self, client):
        resp = create(client, "   ")
        assert resp.status_code == 400
        assert resp.json()["error"] == "VALIDATION_ERROR"

    def test_name_too_long_returns_400(self, client):
        assert create(client, "x" * 101).status_code == 400

    def test_malformed_parent_id_returns_400(self, client):
        assert create(client, "Eng", "not-a-uuid").status_code == 400

    def test_missing_parent_returns_404(self, client):
        resp = create(client, "Eng", MISSING_ID)
        assert resp.status_code == 404
        assert resp.json()["error"] == "PARENT_NOT_FOUND"
        assert MISSING_ID in resp.json()["message"]

    def test_duplicate_returns_409(self, client):
        create(client, "Acme")
        resp = create(client, "Acme")
        assert resp.status_code == 409
        assert resp.json()["error"] == "DUPLICATE_NAME"

    def test_path_conflict_returns_409(self, client):
        create(client, "R&D")
        resp = create(client, "RD")
        assert resp.status_code == 409
        assert resp.json()["error"] == "PATH_CONFLICT"

    def test_max_depth_returns_400(self, client):
        parent_id = None
        for name in ["Acme", "Eng", "Frontend", "Team A", "Pod"]:
            parent_id = create(client, name, parent_id).json()["structure"]["id"]
        resp = create(client, "Too Deep", parent_id)
        assert resp.status_code == 400
        assert resp.json()["error"] == "MAX_DEPTH_EXCEEDED"

    def test_invalid_json_returns_400(self, client):
        resp = client.post(
            "/api/hierarchy/structures",
            content="{not json",
            headers={"Content-Type": "application/json"},
        )
        assert resp.status_code == 400


class TestHierarchyTreeApi:

    def test_tree(self, client):
        acme = create(client, "Acme").json()["structure"]
        create(client, "Eng", acme["id"])
        body = client.get("/api/hierarchy/tree").json()
        assert body["tree"][0]["name"] == "Acme"
        assert body["tree"][0]["children"][0]["path"] == "acme/eng"
        assert body["metadata"]["total_structures"] == 2
        assert body["metadata"]["paths"] == ["acme", "acme/eng"]


class TestGrantApi:

    def test_grant_and_duplicate(self, client):
        structure = create(client, "Acme").json()["structure"]
        user = client.post("/api/users", json=make_user_payload()).json()
        payload = {"user_id": user["id"], "structure_id": structure["id"]}

        resp = client.post("/api/permissions", json=payload)
        assert resp.status_code == 201
        assert resp.json()["permission"]["structure"]["id"] == structure["id"]

        again = client.post("/api/permissions", json=payload)
        assert again.status_code == 409
        assert again.json()["error"] == "ALREADY_GRANTED"

    def test_unknown_user_returns_404(self, client):
        structure = create(client, "Acme").json()["structure"]
        resp = client.post("/api/permissions", json={"user_id": MISSING_ID, "structure_id": structure["id"]})
        assert resp.status_code == 404
        assert resp.json()["error"] == "USER_NOT_FOUND"

    def test_malformed_ids_return_400(self, client):
        resp = client.post("/api/permissions", json={"user_id": "x", "structure_id": "y"})
        assert resp.status_code == 400

    def test_missing_field_returns_400(self, client):
        resp = client.post("/api/permissions", json={"user_id": MISSING_ID})
        assert resp.status_code == 400
