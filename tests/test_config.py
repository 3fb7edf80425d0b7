"""Tests for settings, error types and structured logging."""

import logging

import pytest
from pydantic import ValidationError

from config import Settings
from errors import GenerationCancelled, GenerationError, PlanningError
from structured_logging import StructuredFormatter, get_logger, log_with_context


class TestSettings:
    """Settings defaults and environment overrides."""

    def test_defaults(self):
        s = Settings(_env_file=None)
        assert s.context_limit == 100_000
        assert s.hierarchical_threshold == 250_000
        assert s.chars_per_token == 4
        assert s.merge_strategy == "generate"
        assert s.max_parallel_batches == 1

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("DOCFORGE_CONTEXT_LIMIT", "80000")
        monkeypatch.setenv("DOCFORGE_MERGE_STRATEGY", "concatenate")
        s = Settings(_env_file=None)
        assert s.context_limit == 80_000
        assert s.merge_strategy == "concatenate"

    def test_invalid_merge_strategy(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, merge_strategy="summarize")

    def test_context_config(self):
        config = Settings(_env_file=None, context_limit=50_000, hierarchical_threshold=90_000).get_context_config()
        assert config.context_limit == 50_000
        assert config.hierarchical_threshold == 90_000

    def test_context_config_rejects_bad_threshold(self):
        s = Settings(_env_file=None, context_limit=50_000, hierarchical_threshold=40_000)
        with pytest.raises(PlanningError):
            s.get_context_config()


class TestGenerationError:
    """GenerationError carries where a run failed."""

    def test_location_and_str(self):
        error = GenerationError("timeout", phase="detail", index=3)
        assert error.location == "detail pass 3"
        assert str(error) == "[detail pass 3] timeout"

    def test_without_phase(self):
        error = GenerationError("boom")
        assert error.location == "generation"
        assert str(error) == "boom"
        assert error.completed_passes == []

    def test_cancelled_subclass(self):
        error = GenerationCancelled("deadline exceeded", phase="merge")
        assert isinstance(error, GenerationError)
        assert error.location == "merge"


class TestStructuredLogging:
    """log_with_context attaches key=value fields."""

    def test_fields_rendered_by_formatter(self, caplog):
        logger = get_logger("docforge.test")
        with caplog.at_level(logging.INFO, logger="docforge.test"):
            log_with_context(logger, logging.INFO, "Generation call", request_id="abc", phase="detail", index=2)

        record = caplog.records[0]
        assert record.request_id == "abc"
        assert record.extra_data == {"phase": "detail", "index": 2}

        line = StructuredFormatter().format(record)
        assert "message=Generation call" in line
        assert "request_id=abc" in line
        assert "phase=detail index=2" in line

    def test_record_names_the_calling_module(self, caplog):
        logger = get_logger("docforge.test")
        with caplog.at_level(logging.INFO, logger="docforge.test"):
            log_with_context(logger, logging.INFO, "Generation request", request_id="abc")

        record = caplog.records[0]
        assert record.funcName == "test_record_names_the_calling_module"
        assert "module=test_config " in StructuredFormatter().format(record)
