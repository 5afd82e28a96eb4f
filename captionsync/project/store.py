"""Project stores: list / get / upsert of project snapshots.

``JsonProjectStore`` keeps every project in one JSON file, the way a browser
keeps them under a single local-storage key. I/O problems are logged and
swallowed: the session's in-memory model stays authoritative and no retry is
attempted.

Two sessions writing the same project id race; the last upsert wins.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from pathlib import Path

from captionsync.project.snapshot import Project
from captionsync.utils.logging import debug, error, info


class ProjectStore(ABC):
    @abstractmethod
    def list(self) -> list[Project]:
        """All projects, most recently modified first."""

    @abstractmethod
    def upsert(self, project: Project) -> None:
        ...

    def get(self, project_id: str) -> Project | None:
        return next((p for p in self.list() if p.id == project_id), None)


class MemoryProjectStore(ProjectStore):
    def __init__(self) -> None:
        self._projects: dict[str, Project] = {}

    def list(self) -> list[Project]:
        return sorted(self._projects.values(), key=lambda p: p.last_modified, reverse=True)

    def upsert(self, project: Project) -> None:
        self._projects[project.id] = project


class JsonProjectStore(ProjectStore):
    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _read(self) -> list[Project]:
        if not self.path.exists():
            return []
        data = json.loads(self.path.read_text(encoding="utf-8"))
        return [Project.from_dict(d) for d in data]

    def list(self) -> list[Project]:
        try:
            projects = self._read()
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            error(f"Error loading projects from {self.path}: {e}")
            return []
        return sorted(projects, key=lambda p: p.last_modified, reverse=True)

    def upsert(self, project: Project) -> None:
        try:
            projects = self._read()
            for i, existing in enumerate(projects):
                if existing.id == project.id:
                    projects[i] = project
                    break
            else:
                projects.append(project)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(
                json.dumps([p.to_dict() for p in projects], indent=2, ensure_ascii=False),
                encoding="utf-8",
            )
            tmp.replace(self.path)
            debug(f"Project saved: {project.id}")
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            error(f"Error saving project {project.id} to {self.path}: {e}")


def create_store(backend: str, path: str | Path) -> ProjectStore:
    if backend == "memory":
        return MemoryProjectStore()
    info(f"Project store: {path}")
    return JsonProjectStore(path)
