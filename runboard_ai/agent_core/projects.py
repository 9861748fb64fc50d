"""Dashboard projects kept in an injectable key-value store.

Contract guidelines
-------------------

- The store is the only persistence seam; anything offering ``get``/``set``/
  ``delete`` over JSON-compatible values satisfies ``KeyValueStore``.
- Every project is created with an ``AgentRun`` in ``IDLE`` state and an empty
  history; the run is dropped together with its project.
- ``apply_agent_run`` is last-write-wins: callers keep a single writer per
  project while a lifecycle call is in flight.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol

from pydantic import TypeAdapter

from runboard_ai.core.logging_config import get_logger

from .schemas.domain import AgentRun, Project, ProjectSettings, PullRequestRef

logger = get_logger(__name__)

PROJECTS_KEY = "dashboard-projects"

_projects_adapter = TypeAdapter(List[Project])


class ProjectAlreadyExistsError(ValueError):
    def __init__(self, project_id: int) -> None:
        super().__init__(f"Project already on the dashboard: {project_id}")
        self.project_id = project_id


class ProjectNotFoundError(KeyError):
    def __init__(self, project_id: int) -> None:
        super().__init__(project_id)
        self.project_id = project_id


class KeyValueStore(Protocol):
    """Minimal persistence contract used by ``ProjectStore``."""

    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> None: ...


class InMemoryKeyValueStore:
    def __init__(self) -> None:
        self._data: Dict[str, Any] = {}

    def get(self, key: str) -> Optional[Any]:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class ProjectStore:
    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def _load(self) -> List[Project]:
        raw = self._store.get(PROJECTS_KEY)
        if raw is None:
            return []
        return _projects_adapter.validate_python(raw)

    def _save(self, projects: List[Project]) -> None:
        self._store.set(PROJECTS_KEY, _projects_adapter.dump_python(projects, mode="json"))

    def list(self) -> List[Project]:
        return self._load()

    def get(self, project_id: int) -> Project:
        for project in self._load():
            if project.id == project_id:
                return project
        raise ProjectNotFoundError(project_id)

    def add_project(self, project_id: int, full_name: str, settings: Optional[ProjectSettings] = None) -> Project:
        projects = self._load()
        if any(p.id == project_id for p in projects):
            raise ProjectAlreadyExistsError(project_id)
        project = Project(id=project_id, full_name=full_name, settings=settings or ProjectSettings())
        projects.append(project)
        self._save(projects)
        logger.info("Added project %s (%s)", full_name, project_id)
        return project

    def remove_project(self, project_id: int) -> None:
        projects = self._load()
        remaining = [p for p in projects if p.id != project_id]
        if len(remaining) == len(projects):
            raise ProjectNotFoundError(project_id)
        self._save(remaining)
        logger.info("Removed project %s", project_id)

    def update_settings(self, project_id: int, settings: ProjectSettings) -> Project:
        return self._replace(project_id, settings=settings)

    def apply_agent_run(self, project_id: int, agent_run: AgentRun) -> Project:
        return self._replace(project_id, agent_run=agent_run)

    def update_pull_requests(self, project_id: int, pull_requests: List[PullRequestRef]) -> Project:
        return self._replace(project_id, pull_requests=pull_requests)

    def _replace(self, project_id: int, **changes: Any) -> Project:
        projects = self._load()
        for i, project in enumerate(projects):
            if project.id == project_id:
                updated = project.model_copy(update=changes)
                projects[i] = updated
                self._save(projects)
                return updated
        raise ProjectNotFoundError(project_id)
