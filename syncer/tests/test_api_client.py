import json

import httpx
import pytest

from infra.exceptions import (
    AuthorizationError,
    FatalValidationError,
    InfraConnectionError,
    ServiceUnavailableError,
    ValidationError,
)
from infra.schemas import CheckRequest, Phase1Request, SearchRequest
from syncer.api_client import SyncApiClient

VALID_HASH = "a" * 64


def _client(handler):
    return SyncApiClient("http://ingestor.test/", "dev-token-alice", transport=httpx.MockTransport(handler))


@pytest.mark.unit
class TestSyncApiClient:

    @pytest.mark.asyncio
    async def test_check_sends_token_and_camel_case_body(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"changed": True, "remoteRoot": "abc"})

        async with _client(handler) as api:
            response = await api.check(CheckRequest(project_id="proj", merkle_root="root1"))

        assert response.changed is True
        assert response.remote_root == "abc"
        request = seen[0]
        assert request.url.path == "/v1/index/check"
        assert request.headers["authorization"] == "Bearer dev-token-alice"
        assert json.loads(request.content) == {"projectId": "proj", "merkleRoot": "root1"}

    @pytest.mark.asyncio
    async def test_phase1_payload_uses_wire_names(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"needed": [VALID_HASH], "cached": []})

        request = Phase1Request.model_validate({
            "projectId": "proj",
            "merkleRoot": "r",
            "chunks": [{
                "hash": VALID_HASH,
                "type": "function",
                "name": "f",
                "language": "python",
                "lines": [1, 3],
                "charCount": 42,
                "filePath": "src/f.py",
                "metadata": {"async": True},
            }],
        })
        async with _client(handler) as api:
            response = await api.sync_phase1(request)

        assert response.needed == [VALID_HASH]
        chunk = seen[0]["chunks"][0]
        assert chunk["filePath"] == "src/f.py"
        assert chunk["charCount"] == 42
        assert chunk["lines"] == [1, 3]

    @pytest.mark.asyncio
    async def test_unauthorized_is_not_retried(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(401, json={"detail": "invalid token"})

        async with _client(handler) as api:
            with pytest.raises(AuthorizationError):
                await api.check(CheckRequest(project_id="proj", merkle_root="r"))
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_unavailable_is_retried(self):
        responses = [
            httpx.Response(503, json={"detail": "busy"}),
            httpx.Response(200, json={"results": [], "warning": None}),
        ]

        def handler(request: httpx.Request) -> httpx.Response:
            return responses.pop(0)

        async with _client(handler) as api:
            response = await api.search(SearchRequest(project_id="proj", query="parse config"))

        assert response.results == []
        assert responses == []

    @pytest.mark.asyncio
    async def test_rejected_request_carries_field_errors(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(400, json={
                "error": "validation",
                "detail": [{"loc": ["body", "chunks", "0", "hash"], "msg": "not a sha-256 digest"}],
            })

        async with _client(handler) as api:
            with pytest.raises(ValidationError) as info:
                await api.check(CheckRequest(project_id="proj", merkle_root="r"))
        assert "body.chunks.0.hash: not a sha-256 digest" in str(info.value)
        assert "http status 400" in str(info.value)
        assert isinstance(info.value.__cause__, httpx.HTTPStatusError)
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_storage_failure_is_retried_then_reported(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(503, json={"status": "failed", "error": "storage", "detail": "index offline"})

        async with _client(handler) as api:
            with pytest.raises(ServiceUnavailableError) as info:
                await api.search(SearchRequest(project_id="proj", query="parse config"))
        assert "storage failed (index offline)" in str(info.value)
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_error_without_json_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, text="not found")

        async with _client(handler) as api:
            with pytest.raises(FatalValidationError) as info:
                await api.health()
        assert str(info.value).endswith("http status 404")

    @pytest.mark.asyncio
    async def test_connection_failure_gives_up_after_retries(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ConnectError("refused", request=request)

        async with _client(handler) as api:
            with pytest.raises(InfraConnectionError):
                await api.health()
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_malformed_response(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"unexpected": True})

        async with _client(handler) as api:
            with pytest.raises(FatalValidationError):
                await api.check(CheckRequest(project_id="proj", merkle_root="r"))
