"""Tenant/project scoping of keys, record ids and vector filters."""

from dataclasses import dataclass
from typing import Any, Dict

from infra.exceptions import ValidationError
from infra.schemas import validate_scope_id


@dataclass(frozen=True)
class TenantScope:
    tenant_id: str
    project_id: str

    def __post_init__(self) -> None:
        try:
            validate_scope_id(self.tenant_id, "tenantId")
            validate_scope_id(self.project_id, "projectId")
        except ValueError as e:
            raise ValidationError(str(e)) from e

    def record_id(self, content_hash: str) -> str:
        return f"{self.tenant_id}_{self.project_id}_{content_hash}"

    @property
    def root_key(self) -> str:
        return f"merkleRoot:{self.tenant_id}:{self.project_id}"

    def filter(self, **extra: Any) -> Dict[str, Any]:
        return {"tenantId": self.tenant_id, "projectId": self.project_id, **extra}

    def owns(self, metadata: Dict[str, Any]) -> bool:
        return metadata.get("tenantId") == self.tenant_id and metadata.get("projectId") == self.project_id
