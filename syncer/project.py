"""Project identity: a random id created once and persisted under the state directory."""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from infra.logger import get_logger
from syncer.state.store import StateStore

log = get_logger("syncer.project")


class ProjectStatus(str, Enum):
    NEW = "new"
    EXISTING = "existing"


@dataclass(frozen=True)
class ProjectConfig:
    project_id: str
    created_at: str


class ProjectConfigManager:

    def __init__(self, store: StateStore):
        self.store = store

    def load_or_create(self) -> tuple[ProjectConfig, ProjectStatus]:
        data = self.store.load_project()
        if data and data.get("projectId"):
            return ProjectConfig(data["projectId"], data.get("createdAt", "")), ProjectStatus.EXISTING

        config = ProjectConfig(
            project_id=str(uuid.uuid4()),
            created_at=datetime.now(timezone.utc).isoformat(),
        )
        self.store.save_project({"projectId": config.project_id, "createdAt": config.created_at})
        log.info("project.created", project_id=config.project_id)
        return config, ProjectStatus.NEW
