"""Project data store interface and the in-memory implementation.

The resolver only reads. Stores return typed project records; how they
are fetched (export file, REST API) is the store's concern.
"""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from pydantic import ValidationError

from contracts import (
    Client,
    ExtractedUpload,
    InterviewResponse,
    Project,
    ProjectBundle,
    Question,
    Stakeholder,
)
from errors import DataStoreError


class ProjectDataStore(ABC):
    """Read-only access to the records behind one project."""

    @abstractmethod
    def get_project(self, project_id: str) -> Project:
        """Return the project.

        Raises:
            DataStoreError: If the project does not exist or cannot be read
        """
        pass

    @abstractmethod
    def get_client(self, client_id: str) -> Optional[Client]:
        pass

    @abstractmethod
    def list_stakeholders(self, project_id: str) -> List[Stakeholder]:
        pass

    @abstractmethod
    def list_questions(self, project_id: str) -> List[Question]:
        pass

    @abstractmethod
    def list_responses(self, project_id: str) -> List[InterviewResponse]:
        pass

    @abstractmethod
    def list_uploads(self, project_id: str) -> List[ExtractedUpload]:
        """Uploads flagged include_in_generation, in upload order."""
        pass

    def load_bundle(self, project_id: str) -> ProjectBundle:
        """Fetch every record for a project in one bundle."""
        project = self.get_project(project_id)
        client = self.get_client(project.client_id) if project.client_id else None
        return ProjectBundle(
            project=project,
            client=client,
            stakeholders=self.list_stakeholders(project_id),
            questions=self.list_questions(project_id),
            responses=self.list_responses(project_id),
            uploads=self.list_uploads(project_id),
        )


class InMemoryProjectStore(ProjectDataStore):
    """Store backed by ProjectBundles held in memory (tests, JSON exports)."""

    def __init__(self, bundles: Iterable[ProjectBundle] = ()):
        self._bundles: Dict[str, ProjectBundle] = {}
        for bundle in bundles:
            self.add(bundle)

    def add(self, bundle: ProjectBundle) -> None:
        self._bundles[bundle.project.id] = bundle

    @classmethod
    def from_export(cls, path: Union[str, Path]) -> "InMemoryProjectStore":
        """Load a JSON export: one bundle, a list of bundles, or {"projects": [...]}.

        Raises:
            DataStoreError: If the file is missing or not a valid export
        """
        path = Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise DataStoreError(f"Cannot read project export {path}: {e}") from e

        if isinstance(data, dict) and "projects" in data:
            items = data["projects"]
        elif isinstance(data, list):
            items = data
        else:
            items = [data]

        try:
            return cls(ProjectBundle.model_validate(item) for item in items)
        except ValidationError as e:
            raise DataStoreError(f"Invalid project export {path}: {e}") from e

    def _bundle(self, project_id: str) -> ProjectBundle:
        if project_id not in self._bundles:
            raise DataStoreError(f"Project not found: {project_id}")
        return self._bundles[project_id]

    def get_project(self, project_id: str) -> Project:
        return self._bundle(project_id).project

    def get_client(self, client_id: str) -> Optional[Client]:
        for bundle in self._bundles.values():
            if bundle.client and bundle.client.id == client_id:
                return bundle.client
        return None

    def list_stakeholders(self, project_id: str) -> List[Stakeholder]:
        return list(self._bundle(project_id).stakeholders)

    def list_questions(self, project_id: str) -> List[Question]:
        return list(self._bundle(project_id).questions)

    def list_responses(self, project_id: str) -> List[InterviewResponse]:
        return list(self._bundle(project_id).responses)

    def list_uploads(self, project_id: str) -> List[ExtractedUpload]:
        return [u for u in self._bundle(project_id).uploads if u.include_in_generation]
