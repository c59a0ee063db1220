from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from schemaforge.api.deps import get_generation_client, get_store
from schemaforge.editor.store import SchemaStore
from schemaforge.generation.client import GenerationResult
from schemaforge.main import app
from schemaforge.models import SchemaRecord

API = "/api/v1"
BLOG_DBML = (
    "Table users {\n  id integer [pk]\n}\n"
    "Table posts {\n  id integer [pk]\n  user_id integer\n}\n"
    "Ref: users.id < posts.user_id\n"
)


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def generation(client):
    fake = MagicMock()
    fake.generate = AsyncMock()
    app.dependency_overrides[get_generation_client] = lambda: fake
    return fake


def test_health_check(client):
    response = client.get(f"{API}/utils/health-check/")

    assert response.status_code == 200
    assert response.json() is True


def test_create_list_read_update_delete(client, store):
    created = client.post(f"{API}/schemas/", json={"name": "Blog", "dbml": BLOG_DBML}).json()
    schema_id = created["id"]

    listing = client.get(f"{API}/schemas/").json()
    assert listing["count"] == 1
    assert listing["data"][0]["id"] == schema_id

    assert client.get(f"{API}/schemas/{schema_id}").json()["name"] == "Blog"

    updated = client.put(
        f"{API}/schemas/{schema_id}",
        json={"name": "Blog v2", "layout": {"users": {"x": 5, "y": 6}}},
    ).json()
    assert updated["name"] == "Blog v2"
    assert updated["dbml"] == BLOG_DBML
    assert updated["created_at"] == created["created_at"]

    response = client.delete(f"{API}/schemas/{schema_id}")
    assert response.json() == {"message": "Schema deleted successfully"}
    assert store.get_schemas() == []


def test_missing_schema_is_404(client):
    assert client.get(f"{API}/schemas/nope").status_code == 404
    assert client.put(f"{API}/schemas/nope", json={"name": "x"}).status_code == 404
    assert client.delete(f"{API}/schemas/nope").status_code == 404


def test_schema_diagram_uses_stored_layout(client, store):
    store.save_schema(
        SchemaRecord(id="s1", dbml=BLOG_DBML, layout={"users": {"x": 11, "y": 22}})
    )

    diagram = client.get(f"{API}/schemas/s1/diagram").json()

    nodes = {node["id"]: node for node in diagram["nodes"]}
    assert nodes["users"]["position"] == {"x": 11, "y": 22}
    assert diagram["edges"][0]["source_table"] == "posts"
    assert diagram["edges"][0]["target_table"] == "users"


def test_export_returns_dbml_attachment(client, store):
    store.save_schema(SchemaRecord(id="s1", name="Blog", dbml=BLOG_DBML))

    response = client.get(f"{API}/schemas/s1/export")

    assert response.status_code == 200
    assert response.text == BLOG_DBML
    assert response.headers["content-disposition"] == 'attachment; filename="Blog.dbml"'


def test_writes_without_storage_are_503():
    app.dependency_overrides[get_store] = lambda: SchemaStore(None)
    try:
        client = TestClient(app)
        assert client.get(f"{API}/schemas/").json() == {"data": [], "count": 0}
        assert client.post(f"{API}/schemas/", json={"name": "x"}).status_code == 503
    finally:
        app.dependency_overrides.clear()


def test_derive_diagram_endpoint(client):
    response = client.post(
        f"{API}/diagram/",
        json={
            "dbml": BLOG_DBML,
            "previous_nodes": [{"id": "posts", "position": {"x": 1, "y": 2}}],
        },
    )

    body = response.json()
    assert [node["id"] for node in body["nodes"]] == ["users", "posts"]
    assert body["nodes"][1]["position"] == {"x": 1, "y": 2}


def test_derive_diagram_endpoint_tolerates_bad_markup(client):
    response = client.post(f"{API}/diagram/", json={"dbml": "not valid markup {{{"})

    assert response.status_code == 200
    assert response.json() == {"nodes": [], "edges": []}


def test_generate_success(client, generation):
    generation.generate.return_value = GenerationResult(dbml="Table a {}")

    response = client.post(f"{API}/generate/", json={"prompt": "a table"})

    assert response.status_code == 200
    assert response.json() == {"dbml": "Table a {}"}
    generation.generate.assert_awaited_once_with("a table")


def test_generate_rate_limited(client, generation):
    generation.generate.return_value = GenerationResult(
        error="Too many requests. Please wait a second between generations.",
        status_code=429,
        rate_limited=True,
        retry_after=0.4,
    )

    response = client.post(f"{API}/generate/", json={"prompt": "a table"})

    assert response.status_code == 429
    assert response.headers["retry-after"] == "1"
    assert response.json()["error"].startswith("Too many requests")


def test_generate_upstream_failure(client, generation):
    generation.generate.return_value = GenerationResult(error="Gemini API Error: Forbidden", status_code=403)

    response = client.post(f"{API}/generate/", json={"prompt": "a table"})

    assert response.status_code == 403
    assert response.json() == {"error": "Gemini API Error: Forbidden"}


def test_generate_empty_payload_is_500(client, generation):
    generation.generate.return_value = GenerationResult(dbml="")

    response = client.post(f"{API}/generate/", json={"prompt": "a table"})

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to generate schema"}


def test_generate_rejects_blank_prompt(client, generation):
    response = client.post(f"{API}/generate/", json={"prompt": ""})

    assert response.status_code == 422
    generation.generate.assert_not_called()
