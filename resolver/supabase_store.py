"""Project data store over the hosted backend's REST interface.

Reads the PostgREST endpoints (/rest/v1/<table>) with requests. Read-only:
no inserts, updates or storage downloads. Extraction services fill the
upload content columns out of band.
"""

from typing import Any, Dict, List, Optional

import requests
from pydantic import ValidationError

from config import settings
from contracts import (
    Client,
    ExtractedUpload,
    InterviewResponse,
    Project,
    Question,
    Stakeholder,
)
from errors import DataStoreError
from resolver.store import ProjectDataStore
from structured_logging import get_logger

logger = get_logger(__name__)

UPLOAD_COLUMNS = (
    "id,project_id,file_name,mime_type,upload_type,file_size,description,"
    "include_in_generation,extracted_content,content_type,extraction_status,extraction_error"
)


class SupabaseProjectStore(ProjectDataStore):
    """Thin REST reader for projects, clients, stakeholders, questions, responses and uploads."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        self.base_url = (base_url or settings.supabase_url).rstrip("/")
        self.api_key = api_key or settings.supabase_key
        self.timeout = timeout or settings.store_timeout_seconds
        if not self.base_url or not self.api_key:
            raise DataStoreError(
                "Supabase URL and key are required (DOCFORGE_SUPABASE_URL, DOCFORGE_SUPABASE_KEY)"
            )

    def _headers(self) -> Dict[str, str]:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
        }

    def _select(self, table: str, params: Dict[str, str]) -> List[Dict[str, Any]]:
        """GET /rest/v1/<table> and return the rows."""
        query = {"select": "*"}
        query.update(params)
        try:
            r = requests.get(
                f"{self.base_url}/rest/v1/{table}",
                headers=self._headers(),
                params=query,
                timeout=self.timeout,
            )
            r.raise_for_status()
            rows = r.json()
        except requests.RequestException as e:
            raise DataStoreError(f"Reading {table} failed: {e}") from e
        except ValueError as e:
            raise DataStoreError(f"Reading {table} returned invalid JSON: {e}") from e

        if not isinstance(rows, list):
            raise DataStoreError(f"Reading {table} returned {type(rows).__name__}, expected a list")
        logger.debug(f"Read {len(rows)} rows from {table}")
        return rows

    def _validate(self, model, rows: List[Dict[str, Any]], table: str) -> list:
        try:
            return [model.model_validate(row) for row in rows]
        except ValidationError as e:
            raise DataStoreError(f"Unexpected row shape in {table}: {e}") from e

    def get_project(self, project_id: str) -> Project:
        rows = self._select("projects", {"id": f"eq.{project_id}"})
        if not rows:
            raise DataStoreError(f"Project not found: {project_id}")
        row = rows[0]
        row["status"] = row.get("status") or "active"
        row["progress"] = row.get("progress") or 0
        return self._validate(Project, [row], "projects")[0]

    def get_client(self, client_id: str) -> Optional[Client]:
        rows = self._select("clients", {"id": f"eq.{client_id}"})
        if not rows:
            return None
        return self._validate(Client, rows[:1], "clients")[0]

    def list_stakeholders(self, project_id: str) -> List[Stakeholder]:
        rows = self._select("stakeholders", {"project_id": f"eq.{project_id}", "order": "created_at.asc"})
        for row in rows:
            row["status"] = row.get("status") or "pending"
        return self._validate(Stakeholder, rows, "stakeholders")

    def list_questions(self, project_id: str) -> List[Question]:
        rows = self._select("questions", {"project_id": f"eq.{project_id}", "order": "created_at.asc"})
        for row in rows:
            row["category"] = row.get("category") or "General"
        return self._validate(Question, rows, "questions")

    def list_responses(self, project_id: str) -> List[InterviewResponse]:
        rows = self._select(
            "interview_responses",
            {"project_id": f"eq.{project_id}", "order": "created_at.asc"},
        )
        return self._validate(InterviewResponse, rows, "interview_responses")

    def list_uploads(self, project_id: str) -> List[ExtractedUpload]:
        rows = self._select(
            "project_uploads",
            {
                "select": UPLOAD_COLUMNS,
                "project_id": f"eq.{project_id}",
                "include_in_generation": "eq.true",
                "order": "created_at.asc",
            },
        )
        for row in rows:
            row["upload_id"] = row.pop("id")
            # Columns may be null before the extraction job has run
            row["mime_type"] = row.get("mime_type") or "application/octet-stream"
            row["content_type"] = row.get("content_type") or "binary"
            row["extraction_status"] = row.get("extraction_status") or "pending"
            if row.get("include_in_generation") is None:
                row["include_in_generation"] = True
        return self._validate(ExtractedUpload, rows, "project_uploads")
