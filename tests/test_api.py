"""
API tests through FastAPI's TestClient with in-memory providers.
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from leadnexus.config import Settings
from leadnexus.dependencies import Container, get_container
from leadnexus.main import app

from doubles import StubExtractor, StubFetcher, candidate

MISSING_ID = "00000000-0000-0000-0000-000000000000"


@pytest.fixture
def extractor():
    return StubExtractor({
        "https://example.com/ana": candidate("Ana Lima", email="ana@example.com"),
    })


@pytest.fixture
def container(lead_store, memory_store, embedder, extractor):
    return Container(
        Settings(lead_store="memory"),
        lead_store=lead_store,
        memory_store=memory_store,
        embedder=embedder,
        extractor=extractor,
        fetcher=StubFetcher(failing=["https://example.com/down"]),
    )


@pytest.fixture
def client(container):
    app.dependency_overrides[get_container] = lambda: container
    yield TestClient(app)
    app.dependency_overrides.clear()


def create_lead(client, name, email, category="journalist", bio=None):
    response = client.post("/leads", json={
        "name": name,
        "email": email,
        "bio": bio or f"{name} covers technology",
        "category": category,
        "sourceUrl": f"https://example.com/{email}",
    })
    assert response.status_code == 201, response.text
    return response.json()


class TestHealth:

    def test_root(self, client):
        assert client.get("/").json()["status"] == "ok"

    def test_health_with_memory_store(self, client):
        assert client.get("/health").json() == {"status": "healthy", "database": "connected"}

    def test_health_unconfigured(self):
        app.dependency_overrides[get_container] = lambda: Container(Settings())
        try:
            body = TestClient(app).get("/health").json()
        finally:
            app.dependency_overrides.clear()
        assert body["status"] == "degraded"


class TestSearchEndpoint:

    def test_camel_case_response(self, client):
        for i in range(12):
            create_lead(client, f"Lead {i}", f"lead{i}@example.com")

        response = client.post("/leads/search", json={"query": "technology", "page": 2, "pageSize": 10})

        assert response.status_code == 200
        body = response.json()
        assert len(body["items"]) == 2
        assert body["pagination"] == {
            "page": 2,
            "pageSize": 10,
            "totalItems": 12,
            "totalPages": 2,
            "hasNextPage": False,
            "hasPreviousPage": True,
        }
        assert "sourceUrl" in body["items"][0]
        assert "embedding" not in body["items"][0]

    @pytest.mark.parametrize("payload", [
        {"query": ""},
        {"query": "x" * 1001},
        {"query": "tech", "pageSize": 101},
        {"query": "tech", "page": 0},
        {"query": "tech", "category": "celebrity"},
    ])
    def test_invalid_requests(self, client, payload):
        assert client.post("/leads/search", json=payload).status_code == 422

    def test_missing_configuration_is_reported(self):
        app.dependency_overrides[get_container] = lambda: Container(Settings())
        try:
            response = TestClient(app).post("/leads/search", json={"query": "tech"})
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 500
        assert response.json()["error"] == "CONFIGURATION_MISSING"
        assert "OPENAI_API_KEY" in response.json()["message"]


class TestIngestEndpoint:

    def test_partial_failure(self, client):
        response = client.post("/leads/ingest", json={
            "urls": ["https://example.com/ana", "https://example.com/down", "https://example.com/empty"],
        })

        body = response.json()
        assert response.status_code == 200
        assert (body["processed"], body["successful"], body["failed"]) == (3, 1, 2)
        assert body["results"][0]["email"] == "ana@example.com"
        assert body["results"][0]["extractedData"]["organization"] is None
        assert [e["url"] for e in body["errors"]] == ["https://example.com/down", "https://example.com/empty"]

    def test_duplicate_reported_in_errors(self, client):
        client.post("/leads/ingest", json={"urls": ["https://example.com/ana"]})

        body = client.post("/leads/ingest", json={"urls": ["https://example.com/ana"]}).json()

        assert body["success"] is False
        assert "already exists" in body["errors"][0]["error"]

    @pytest.mark.parametrize("urls", [[], ["not a url"], [f"https://example.com/{i}" for i in range(11)]])
    def test_invalid_urls(self, client, urls):
        assert client.post("/leads/ingest", json={"urls": urls}).status_code == 422


class TestLeadRecords:

    def test_duplicate_email(self, client):
        create_lead(client, "Ana", "ana@example.com")

        response = client.post("/leads", json={
            "name": "Other Ana", "email": "ana@example.com", "bio": "bio",
            "category": "journalist", "sourceUrl": "https://example.com/x",
        })

        assert response.status_code == 409
        assert response.json() == {
            "error": "DUPLICATE_EMAIL",
            "message": "This email address is already registered",
        }

    def test_get_lead_with_memories(self, client):
        lead = create_lead(client, "Ana", "ana@example.com")

        body = client.get(f"/leads/{lead['id']}").json()

        assert body["name"] == "Ana"
        assert body["memories"] == []

    def test_get_missing_lead(self, client):
        response = client.get(f"/leads/{MISSING_ID}")

        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"

    def test_list_by_category(self, client):
        create_lead(client, "Ana", "ana@example.com")
        create_lead(client, "Ben", "ben@example.com", category="publisher")

        body = client.get("/leads", params={"category": "publisher"}).json()

        assert [lead["name"] for lead in body["items"]] == ["Ben"]
        assert body["pagination"]["totalItems"] == 1

    def test_update_regenerates_embedding(self, client, embedder):
        lead = create_lead(client, "Ana", "ana@example.com", bio="fashion")
        calls = len(embedder.calls)

        response = client.patch(f"/leads/{lead['id']}", json={"bio": "crypto"})

        assert response.json()["bio"] == "crypto"
        assert len(embedder.calls) == calls + 1

    def test_similar_excludes_self(self, client):
        ana = create_lead(client, "Ana", "ana@example.com", bio="fashion week runway")
        ben = create_lead(client, "Ben", "ben@example.com", bio="fashion runway shows")

        body = client.get(f"/leads/{ana['id']}/similar", params={"limit": 5}).json()

        assert [lead["id"] for lead in body] == [ben["id"]]


class TestRelationships:

    def test_add_relationship(self, client):
        ana = create_lead(client, "Ana", "ana@example.com")
        ben = create_lead(client, "Ben", "ben@example.com")

        response = client.post("/leads/relationships", json={
            "leadId1": ana["id"], "leadId2": ben["id"], "relationshipType": "collaborated_with",
        })

        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Relationship 'collaborated_with' established between leads"
        rels = client.get(f"/leads/{ben['id']}/relationships").json()
        assert rels[0]["relatedLeadId"] == ben["id"]
        memories = client.get(f"/leads/{ana['id']}").json()["memories"]
        assert memories[0]["metadata"]["relationshipType"] == "collaborated_with"

    def test_unknown_lead(self, client):
        ana = create_lead(client, "Ana", "ana@example.com")

        response = client.post("/leads/relationships", json={
            "leadId1": ana["id"], "leadId2": MISSING_ID, "relationshipType": "knows",
        })

        assert response.status_code == 404
        assert client.get(f"/leads/{ana['id']}/relationships").json() == []

    def test_self_relationship_rejected(self, client):
        ana = create_lead(client, "Ana", "ana@example.com")

        response = client.post("/leads/relationships", json={
            "leadId1": ana["id"], "leadId2": ana["id"], "relationshipType": "knows",
        })

        assert response.status_code == 422
        assert response.json()["error"] == "VALIDATION_FAILURE"

    def test_delete_lead_cascades(self, client):
        ana = create_lead(client, "Ana", "ana@example.com")
        ben = create_lead(client, "Ben", "ben@example.com")
        client.post("/leads/relationships", json={
            "leadId1": ana["id"], "leadId2": ben["id"], "relationshipType": "mentioned_by",
        })

        assert client.delete(f"/leads/{ana['id']}").status_code == 200

        assert client.get(f"/leads/{ben['id']}/relationships").json() == []
        assert client.get(f"/leads/{ana['id']}/memories").json() == []

    def test_delete_relationship(self, client):
        ana = create_lead(client, "Ana", "ana@example.com")
        ben = create_lead(client, "Ben", "ben@example.com")
        rel_id = client.post("/leads/relationships", json={
            "leadId1": ana["id"], "leadId2": ben["id"], "relationshipType": "knows",
        }).json()["relationshipId"]

        assert client.delete(f"/relationships/{rel_id}").status_code == 200
        assert client.delete(f"/relationships/{rel_id}").status_code == 404


class TestGraphAndMemories:

    def test_graph(self, client):
        ana = create_lead(client, "Ana", "ana@example.com")
        ben = create_lead(client, "Ben", "ben@example.com")
        client.post("/leads/relationships", json={
            "leadId1": ana["id"], "leadId2": ben["id"], "relationshipType": "interviewed_by",
        })

        body = client.post("/leads/graph", json={"query": "interviewed", "maxDepth": 2}).json()

        assert body["query"] == "interviewed"
        assert body["maxDepth"] == 2
        assert body["timestamp"]
        assert body["edges"] == [{"source": ana["id"], "target": ben["id"], "type": "interviewed_by"}]

    def test_graph_depth_limit(self, client):
        assert client.post("/leads/graph", json={"query": "x", "maxDepth": 6}).status_code == 422

    def test_memory_update_and_delete(self, client):
        client.post("/leads/ingest", json={"urls": ["https://example.com/ana"]})
        lead = client.get("/leads").json()["items"][0]
        memory = client.get(f"/leads/{lead['id']}/memories").json()[0]

        updated = client.patch(f"/memories/{memory['id']}", json={"memory": "Prefers email"}).json()
        assert updated["memory"] == "Prefers email"

        assert client.delete(f"/memories/{memory['id']}").json() == {"success": True, "id": memory["id"]}
        assert client.get(f"/leads/{lead['id']}/memories").json() == []


class TestWithoutEmbeddingKey:
    """Lead store configured, OPENAI_API_KEY absent."""

    @pytest.fixture
    def keyless_client(self, lead_store):
        app.dependency_overrides[get_container] = lambda: Container(
            Settings(lead_store="memory"), lead_store=lead_store
        )
        yield TestClient(app)
        app.dependency_overrides.clear()

    def test_get_lead_without_memories(self, keyless_client, make_lead):
        lead = asyncio.run(make_lead("Ana"))

        response = keyless_client.get(f"/leads/{lead.id}")

        assert response.status_code == 200
        assert response.json()["name"] == "Ana"
        assert response.json()["memories"] == []

    def test_list_and_delete(self, keyless_client, make_lead):
        lead = asyncio.run(make_lead("Ana"))

        assert keyless_client.get("/leads").json()["pagination"]["totalItems"] == 1
        assert keyless_client.delete(f"/leads/{lead.id}").status_code == 200
        assert keyless_client.get(f"/leads/{lead.id}").status_code == 404

    def test_create_without_embedding_needs_key(self, keyless_client):
        response = keyless_client.post("/leads", json={
            "name": "Ana", "email": "ana@example.com", "bio": "Tech reporter",
            "category": "journalist", "sourceUrl": "https://example.com/ana",
        })

        assert response.status_code == 500
        assert response.json()["error"] == "CONFIGURATION_MISSING"
