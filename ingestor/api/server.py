"""
Ingestor HTTP API

    GET  /v1/health
    POST /v1/index/init          registration with full content
    POST /v1/index/check         root comparison
    POST /v1/index/sync/phase1   hash-only negotiation
    POST /v1/index/sync/phase2   content for needed hashes
    POST /v1/search              tenant/project scoped semantic search
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from infra.config.endpoints.ingestor import Ingestor
from infra.exceptions import AuthorizationError, StorageFailure, ValidationError
from infra.logger import get_logger
from infra.schemas import (
    CheckRequest,
    HealthResponse,
    Phase1Request,
    Phase2Request,
    RegisterRequest,
    SearchRequest,
)
from ingestor.adapters.storage_factory import StorageBundle
from ingestor.api.auth import TokenAuthenticator
from ingestor.services.sync import SyncService
from ingestor.services.tenancy import TenantScope

log = get_logger("ingestor.api")


class IngestorAPI:

    def __init__(
        self,
        sync_service: SyncService,
        storage: StorageBundle,
        authenticator: TokenAuthenticator,
    ) -> None:
        self.sync_service = sync_service
        self.storage = storage
        self.authenticator = authenticator
        self.app = FastAPI(title="Ingestor API")
        self.router = APIRouter(prefix=Ingestor.PREFIX)

        self._setup_exception_handlers()
        self._setup_routes()
        self.app.include_router(self.router)

    def _setup_exception_handlers(self) -> None:

        @self.app.exception_handler(AuthorizationError)
        async def on_authorization_error(request: Request, exc: AuthorizationError) -> JSONResponse:
            return JSONResponse(status_code=401, content={"error": "unauthorized", "detail": str(exc)})

        @self.app.exception_handler(ValidationError)
        async def on_validation_error(request: Request, exc: ValidationError) -> JSONResponse:
            log.info("api.validation.rejected", path=request.url.path, error=str(exc))
            return JSONResponse(status_code=400, content={"error": "validation", "detail": str(exc)})

        @self.app.exception_handler(StorageFailure)
        async def on_storage_failure(request: Request, exc: StorageFailure) -> JSONResponse:
            log.error("api.storage.failed", path=request.url.path, error=str(exc))
            return JSONResponse(
                status_code=503,
                content={"status": "failed", "error": "storage", "detail": str(exc)},
            )

        @self.app.exception_handler(RequestValidationError)
        async def on_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
            log.info("api.validation.rejected", path=request.url.path, errors=len(exc.errors()))
            return JSONResponse(
                status_code=400,
                content={"error": "validation", "detail": jsonable_errors(exc)},
            )

    def _tenant(self, authorization: Optional[str] = Header(default=None)) -> str:
        return self.authenticator.authenticate(authorization)

    def _setup_routes(self) -> None:
        tenant = Depends(self._tenant)

        @self.router.get(Ingestor.HEALTH)
        async def health() -> Dict[str, Any]:
            return HealthResponse(
                status="ready",
                storage={
                    "kv": await self.storage.kv.get_stats(),
                    "vectors": await self.storage.vectors.get_stats(),
                },
            ).to_wire()

        @self.router.post(Ingestor.INIT)
        async def register(request: RegisterRequest, tenant_id: str = tenant) -> Dict[str, Any]:
            scope = TenantScope(tenant_id, request.project_id)
            return (await self.sync_service.register(scope, request)).to_wire()

        @self.router.post(Ingestor.CHECK)
        async def check(request: CheckRequest, tenant_id: str = tenant) -> Dict[str, Any]:
            scope = TenantScope(tenant_id, request.project_id)
            return (await self.sync_service.check_root(scope, request)).to_wire()

        @self.router.post(Ingestor.SYNC_PHASE1)
        async def sync_phase1(request: Phase1Request, tenant_id: str = tenant) -> Dict[str, Any]:
            scope = TenantScope(tenant_id, request.project_id)
            return (await self.sync_service.sync_phase1(scope, request)).to_wire()

        @self.router.post(Ingestor.SYNC_PHASE2)
        async def sync_phase2(request: Phase2Request, tenant_id: str = tenant) -> Dict[str, Any]:
            scope = TenantScope(tenant_id, request.project_id)
            return (await self.sync_service.sync_phase2(scope, request)).to_wire()

        @self.router.post(Ingestor.SEARCH)
        async def search(request: SearchRequest, tenant_id: str = tenant) -> Dict[str, Any]:
            scope = TenantScope(tenant_id, request.project_id)
            return (await self.sync_service.search(scope, request)).to_wire()


def jsonable_errors(exc: RequestValidationError) -> list:
    return [
        {"loc": [str(part) for part in error.get("loc", ())], "msg": error.get("msg", "")}
        for error in exc.errors()
    ]
