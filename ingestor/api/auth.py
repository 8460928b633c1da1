"""Bearer-token authentication. Resolves a request to its tenant id."""

from typing import Dict, Optional

from infra.exceptions import AuthorizationError
from infra.logger import get_logger

log = get_logger("ingestor.api.auth")

DEV_TOKEN_PREFIX = "dev-token-"


class TokenAuthenticator:

    def __init__(self, tokens: Optional[Dict[str, str]] = None, allow_dev_tokens: bool = False) -> None:
        self._tokens = dict(tokens or {})
        self._allow_dev_tokens = allow_dev_tokens

    def authenticate(self, authorization: Optional[str]) -> str:
        if not authorization:
            raise AuthorizationError("Missing Authorization header")

        scheme, _, token = authorization.partition(" ")
        token = token.strip()
        if scheme.lower() != "bearer" or not token:
            raise AuthorizationError("Expected a bearer token")

        tenant_id = self._tokens.get(token)
        if tenant_id is None and self._allow_dev_tokens and token.startswith(DEV_TOKEN_PREFIX):
            tenant_id = token[len(DEV_TOKEN_PREFIX):]
        if not tenant_id:
            log.warning("auth.rejected")
            raise AuthorizationError("Unknown token")
        return tenant_id
