"""Shared fixtures: stub generators and small-budget settings."""

import re
import threading
import time

import pytest

from config import Settings

SECTION = re.compile(r"=== (.+?) ===")


class RecordingGenerator:
    """Deterministic generator that records every prompt it receives."""

    def __init__(self, reply="output", fail_on=None, error=None):
        self.reply = reply
        self.fail_on = fail_on
        self.error = error or RuntimeError("rate limit exceeded")
        self.prompts = []
        self._lock = threading.Lock()

    def generate(self, prompt_text):
        with self._lock:
            self.prompts.append(prompt_text)
            call = len(self.prompts)
        if self.fail_on == call:
            raise self.error
        return f"{self.reply} {call}"


class EchoGenerator:
    """Returns its prompt unchanged, so every input fragment reaches the output."""

    def __init__(self):
        self.calls = 0

    def generate(self, prompt_text):
        self.calls += 1
        return prompt_text


class SectionGenerator:
    """Names the first section of each prompt; optional per-section delays."""

    def __init__(self, delays=None, fail_section=None):
        self.delays = delays or {}
        self.fail_section = fail_section

    def generate(self, prompt_text):
        if "ADDITIONAL DETAILS:" not in prompt_text:
            return "summary"
        match = SECTION.search(prompt_text)
        name = match.group(1) if match else "?"
        time.sleep(self.delays.get(name, 0))
        if name == self.fail_section:
            raise RuntimeError(f"provider error on {name}")
        return f"[{name}]"


def tokens(n, char="x"):
    """Text that estimates to exactly n tokens at 4 chars per token."""
    return char * (n * 4)


@pytest.fixture
def small_settings():
    """Budget knobs scaled down so tests can use short texts."""
    return Settings(
        _env_file=None,
        prompt_reserve_tokens=50,
        min_batch_tokens=1,
        continuity_excerpt_tokens=10,
        grounding_summary_tokens=100,
        merge_strategy="generate",
        max_parallel_batches=1,
    )


@pytest.fixture
def recording_generator():
    return RecordingGenerator()


@pytest.fixture
def echo_generator():
    return EchoGenerator()
