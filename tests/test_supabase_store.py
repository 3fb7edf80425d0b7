"""Tests for SupabaseProjectStore with mocked HTTP."""

import pytest
import requests
from unittest.mock import patch, MagicMock

from contracts import ContentType, ExtractionStatus
from errors import DataStoreError
from resolver.supabase_store import SupabaseProjectStore, UPLOAD_COLUMNS


def http_response(rows, status_ok=True):
    response = MagicMock()
    response.json.return_value = rows
    if not status_ok:
        response.raise_for_status.side_effect = requests.HTTPError("401 Unauthorized")
    return response


@pytest.fixture
def store():
    return SupabaseProjectStore(base_url="https://db.example.co/", api_key="service-key", timeout=5)


class TestSupabaseProjectStore:
    """Tests for SupabaseProjectStore."""

    def test_requires_credentials(self):
        with patch("resolver.supabase_store.settings") as mock_settings:
            mock_settings.supabase_url = ""
            mock_settings.supabase_key = ""
            with pytest.raises(DataStoreError, match="DOCFORGE_SUPABASE_URL"):
                SupabaseProjectStore()

    def test_get_project_request(self, store):
        row = {"id": "p-1", "name": "Apollo Portal", "status": None, "progress": None, "client_id": "c-1"}
        with patch("resolver.supabase_store.requests.get", return_value=http_response([row])) as mock_get:
            project = store.get_project("p-1")

        assert project.name == "Apollo Portal"
        assert project.status == "active"
        assert project.progress == 0

        args, kwargs = mock_get.call_args
        assert args[0] == "https://db.example.co/rest/v1/projects"
        assert kwargs["params"] == {"select": "*", "id": "eq.p-1"}
        assert kwargs["headers"]["apikey"] == "service-key"
        assert kwargs["headers"]["Authorization"] == "Bearer service-key"
        assert kwargs["timeout"] == 5

    def test_project_not_found(self, store):
        with patch("resolver.supabase_store.requests.get", return_value=http_response([])):
            with pytest.raises(DataStoreError, match="Project not found"):
                store.get_project("p-404")

    def test_missing_client_is_none(self, store):
        with patch("resolver.supabase_store.requests.get", return_value=http_response([])):
            assert store.get_client("c-404") is None

    def test_http_error(self, store):
        with patch("resolver.supabase_store.requests.get", return_value=http_response([], status_ok=False)):
            with pytest.raises(DataStoreError, match="Reading stakeholders failed"):
                store.list_stakeholders("p-1")

    def test_connection_error(self, store):
        with patch("resolver.supabase_store.requests.get", side_effect=requests.ConnectionError("refused")):
            with pytest.raises(DataStoreError, match="refused"):
                store.list_questions("p-1")

    def test_non_list_body(self, store):
        with patch("resolver.supabase_store.requests.get", return_value=http_response({"message": "bad"})):
            with pytest.raises(DataStoreError, match="expected a list"):
                store.list_responses("p-1")

    def test_unexpected_row_shape(self, store):
        with patch("resolver.supabase_store.requests.get", return_value=http_response([{"id": "s-1"}])):
            with pytest.raises(DataStoreError, match="Unexpected row shape in stakeholders"):
                store.list_stakeholders("p-1")

    def test_question_defaults(self, store):
        rows = [{"id": "q-1", "project_id": "p-1", "text": "Budget?", "category": None}]
        with patch("resolver.supabase_store.requests.get", return_value=http_response(rows)):
            questions = store.list_questions("p-1")
        assert questions[0].category == "General"

    def test_list_uploads_maps_columns(self, store):
        rows = [
            {
                "id": "u-1",
                "project_id": "p-1",
                "file_name": "notes.txt",
                "mime_type": "text/plain",
                "extracted_content": "Kickoff notes",
                "content_type": "text",
                "extraction_status": "completed",
                "include_in_generation": True,
            },
            {
                "id": "u-2",
                "project_id": "p-1",
                "file_name": "call.mp4",
                "mime_type": None,
                "extracted_content": None,
                "content_type": None,
                "extraction_status": None,
                "include_in_generation": None,
            },
        ]
        with patch("resolver.supabase_store.requests.get", return_value=http_response(rows)) as mock_get:
            uploads = store.list_uploads("p-1")

        params = mock_get.call_args[1]["params"]
        assert params["select"] == UPLOAD_COLUMNS
        assert params["include_in_generation"] == "eq.true"

        assert [u.upload_id for u in uploads] == ["u-1", "u-2"]
        assert uploads[0].has_usable_content()
        assert uploads[1].content_type == ContentType.BINARY
        assert uploads[1].extraction_status == ExtractionStatus.PENDING
        assert uploads[1].mime_type == "application/octet-stream"
        assert uploads[1].include_in_generation is True
