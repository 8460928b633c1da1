"""
HTTP client for the ingestor's sync protocol.

Every call carries the bearer token and maps transport and status failures to
infra.exceptions. Transient failures are retried; authorization and
validation failures are not.
"""

from typing import Optional, Type, TypeVar

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from infra.config import Ingestor
from infra.exceptions import FatalValidationError, InfraConnectionError, ServiceUnavailableError
from infra.httpx_handler import map_httpx_error_to_exception
from infra.logger import get_logger
from infra.schemas import (
    CheckRequest,
    CheckResponse,
    HealthResponse,
    Phase1Request,
    Phase1Response,
    Phase2Request,
    Phase2Response,
    RegisterRequest,
    RegisterResponse,
    SearchRequest,
    SearchResponse,
    WireModel,
)

log = get_logger("syncer.api_client")

ResponseT = TypeVar("ResponseT", bound=WireModel)


class SyncApiClient:

    def __init__(
        self,
        base_url: str,
        auth_token: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url + Ingestor.PREFIX,
            headers={"Authorization": f"Bearer {auth_token}"},
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "SyncApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def health(self) -> HealthResponse:
        return await self._request("GET", Ingestor.HEALTH, None, HealthResponse)

    async def register(self, request: RegisterRequest) -> RegisterResponse:
        return await self._request("POST", Ingestor.INIT, request, RegisterResponse)

    async def check(self, request: CheckRequest) -> CheckResponse:
        return await self._request("POST", Ingestor.CHECK, request, CheckResponse)

    async def sync_phase1(self, request: Phase1Request) -> Phase1Response:
        return await self._request("POST", Ingestor.SYNC_PHASE1, request, Phase1Response)

    async def sync_phase2(self, request: Phase2Request) -> Phase2Response:
        return await self._request("POST", Ingestor.SYNC_PHASE2, request, Phase2Response)

    async def search(self, request: SearchRequest) -> SearchResponse:
        return await self._request("POST", Ingestor.SEARCH, request, SearchResponse)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
        retry=retry_if_exception_type((InfraConnectionError, ServiceUnavailableError)),
        reraise=True,
    )
    async def _request(
        self,
        method: str,
        path: str,
        payload: Optional[WireModel],
        response_model: Type[ResponseT],
    ) -> ResponseT:
        try:
            response = await self._client.request(
                method,
                path,
                json=payload.to_wire() if payload is not None else None,
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            log.warning("api_client.request.failed", method=method, path=path, error=str(e))
            raise map_httpx_error_to_exception(e, f"Ingestor {path}")

        try:
            return response_model.model_validate(response.json())
        except ValueError as e:
            raise FatalValidationError(f"Ingestor {path}: malformed response: {e}") from e
