import pytest
from fastapi.testclient import TestClient

from infra.exceptions import AuthorizationError, StorageFailure
from ingestor.adapters.memory import MemoryKeyValueStore, MemoryVectorIndex
from ingestor.adapters.storage_factory import StorageBundle
from ingestor.api.auth import TokenAuthenticator
from ingestor.app.bootstrap import build_ingestor
from ingestor.config.cache import CacheConfig
from ingestor.config.derivation import DerivationConfig
from ingestor.config.runtime import RuntimeConfig
from ingestor.tests.fakes import DIMENSIONS, FakeDerivation, content_chunk, descriptor, summary_for

ADD = "function add(a,b){return a+b}"
DEV = {"Authorization": "Bearer dev-token-acme"}


@pytest.fixture
def ingestor():
    storage = StorageBundle(MemoryKeyValueStore(), MemoryVectorIndex())
    return build_ingestor(
        storage,
        RuntimeConfig(AUTH_TOKENS={"s3cret": "globex"}, ALLOW_DEV_TOKENS=True),
        CacheConfig(),
        DerivationConfig(EMBEDDING_DIMENSIONS=DIMENSIONS),
        derivation=FakeDerivation(),
    )


@pytest.fixture
def client(ingestor):
    with TestClient(ingestor.api.app) as client:
        yield client


def _wire(chunk):
    return chunk.to_wire()


@pytest.mark.unit
class TestTokenAuthenticator:

    def test_configured_and_dev_tokens(self):
        auth = TokenAuthenticator({"s3cret": "globex"}, allow_dev_tokens=True)
        assert auth.authenticate("Bearer s3cret") == "globex"
        assert auth.authenticate("bearer dev-token-acme") == "acme"

    @pytest.mark.parametrize("header", [None, "", "Basic abc", "Bearer ", "Bearer unknown", "Bearer dev-token-"])
    def test_rejected(self, header):
        auth = TokenAuthenticator({"s3cret": "globex"}, allow_dev_tokens=True)
        with pytest.raises(AuthorizationError):
            auth.authenticate(header)

    def test_dev_tokens_can_be_disabled(self):
        auth = TokenAuthenticator({}, allow_dev_tokens=False)
        with pytest.raises(AuthorizationError):
            auth.authenticate("Bearer dev-token-acme")


@pytest.mark.unit
class TestIngestorAPI:

    def test_health(self, client):
        response = client.get("/v1/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ready"
        assert body["storage"]["kv"]["type"] == "memory"

    def test_missing_token(self, client):
        response = client.post("/v1/index/check", json={"projectId": "p1", "merkleRoot": "r"})
        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"

    def test_unknown_token(self, client):
        response = client.post(
            "/v1/index/check",
            json={"projectId": "p1", "merkleRoot": "r"},
            headers={"Authorization": "Bearer nope"},
        )
        assert response.status_code == 401

    @pytest.mark.parametrize("body", [
        {"projectId": "my_project", "merkleRoot": "r"},
        {"projectId": "", "merkleRoot": "r"},
        {"merkleRoot": "r"},
    ])
    def test_invalid_check_request(self, client, body):
        response = client.post("/v1/index/check", json=body, headers=DEV)
        assert response.status_code == 400
        assert response.json()["error"] == "validation"

    def test_tenant_with_underscore_is_rejected(self, client):
        response = client.post(
            "/v1/index/check",
            json={"projectId": "p1", "merkleRoot": "r"},
            headers={"Authorization": "Bearer dev-token-team_a"},
        )
        assert response.status_code == 400

    def test_invalid_chunk_is_rejected(self, client):
        chunk = _wire(content_chunk(ADD))
        chunk["hash"] = "not-a-hash"
        response = client.post(
            "/v1/index/init",
            json={"projectId": "p1", "merkleRoot": "r", "chunks": [chunk]},
            headers=DEV,
        )
        assert response.status_code == 400

    def test_invalid_top_k(self, client):
        response = client.post("/v1/search", json={"projectId": "p1", "query": "x", "topK": 0}, headers=DEV)
        assert response.status_code == 400

    def test_protocol_round(self, client, ingestor):
        add = content_chunk(ADD, file_path="src/utils.ts", language="typescript", name="add")
        init = client.post(
            "/v1/index/init",
            json={"projectId": "p1", "merkleRoot": "root-1", "chunks": [_wire(add)]},
            headers=DEV,
        )
        assert init.status_code == 200
        assert init.json()["status"] == "success"
        assert init.json()["chunksStored"] == 1

        check = client.post("/v1/index/check", json={"projectId": "p1", "merkleRoot": "root-1"}, headers=DEV)
        assert check.json() == {"changed": False, "remoteRoot": "root-1"}

        sub = content_chunk("function sub(a,b){return a-b}", file_path="src/utils.ts", language="typescript")
        phase1 = client.post(
            "/v1/index/sync/phase1",
            json={
                "projectId": "p1",
                "merkleRoot": "root-2",
                "chunks": [descriptor(add).to_wire(), descriptor(sub).to_wire()],
            },
            headers=DEV,
        )
        assert phase1.json() == {"needed": [sub.hash], "cached": [add.hash]}

        phase2 = client.post(
            "/v1/index/sync/phase2",
            json={"projectId": "p1", "merkleRoot": "root-2", "chunks": [_wire(sub)], "removedPaths": []},
            headers=DEV,
        )
        body = phase2.json()
        assert body["status"] == "success"
        assert body["received"] == [sub.hash]
        assert body["merkleRoot"] == "root-2"

        search = client.post(
            "/v1/search",
            json={"projectId": "p1", "query": summary_for(add.content), "topK": 1},
            headers=DEV,
        )
        hit = search.json()["results"][0]
        assert hit["id"] == f"acme_p1_{add.hash}"
        assert hit["filePath"] == "src/utils.ts"
        assert hit["lines"] == [1, 3]

        other = client.post(
            "/v1/search",
            json={"projectId": "p1", "query": summary_for(add.content)},
            headers={"Authorization": "Bearer s3cret"},
        )
        assert other.json()["results"] == []


class _BrokenQueryIndex(MemoryVectorIndex):

    async def query(self, vector, top_k, filter=None):
        raise StorageFailure("vector query failed: connection reset")


@pytest.mark.unit
def test_search_storage_failure_is_a_hard_failure():
    storage = StorageBundle(MemoryKeyValueStore(), _BrokenQueryIndex())
    ingestor = build_ingestor(
        storage,
        RuntimeConfig(),
        CacheConfig(),
        DerivationConfig(EMBEDDING_DIMENSIONS=DIMENSIONS),
        derivation=FakeDerivation(),
    )
    with TestClient(ingestor.api.app) as client:
        response = client.post("/v1/search", json={"projectId": "p1", "query": "parse"}, headers=DEV)
    assert response.status_code == 503
    assert response.json()["status"] == "failed"
