"""Shared fakes for the pipeline tests. No test touches the network."""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import MagicMock

import pytest
import redis

from cache_store import CacheStore
from config import Settings
from errors import SynthesisError
from models import Paper
from pipeline import ArtifactPipeline
from retry import BackoffPolicy

CONVERSATION_RESPONSE = (
    "Sure! Here is the podcast script:\n"
    '{"conversation": ['
    '{"speaker": "Brian", "text": "Big news in agents today."}, '
    '{"speaker": "Jenny", "text": "Yeah, you know, the planning paper stood out."}, '
    '{"speaker": "Brian", "text": "And the vision one too."}'
    "]}\n"
    "Hope this helps!"
)


class FakeRedis:
    """Dict-backed stand-in for the handful of Redis calls the store makes."""

    def __init__(self, fail_set_keys: set[str] | None = None):
        self.data: dict[str, bytes] = {}
        self.get_calls: list[str] = []
        self.set_calls: list[tuple[str, int | None]] = []
        self.fail_set_keys = fail_set_keys or set()

    def ping(self) -> bool:
        return True

    def get(self, key: str) -> bytes | None:
        self.get_calls.append(key)
        return self.data.get(key)

    def set(self, key: str, value: bytes, ex: int | None = None) -> bool:
        self.set_calls.append((key, ex))
        if key in self.fail_set_keys:
            raise redis.ConnectionError("connection reset")
        self.data[key] = bytes(value)
        return True


class StubGenerator:
    """Records prompts; replays queued conversation responses or errors."""

    def __init__(self, summary: str = "<h2>Morning Headline</h2><p>Big day.</p>",
                 conversations: list[str | Exception] | None = None,
                 summary_error: Exception | None = None):
        self.summary = summary
        self.summary_error = summary_error
        self.responses = list(conversations or [CONVERSATION_RESPONSE])
        self.summary_inputs: list[str] = []
        self.conversation_inputs: list[str] = []

    def summarize(self, markdown: str) -> str:
        self.summary_inputs.append(markdown)
        if self.summary_error is not None:
            raise self.summary_error
        return self.summary

    def draft_conversation(self, summary: str) -> str:
        self.conversation_inputs.append(summary)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


class StubSynthesizer:
    """Returns a recognizable audio segment per call; optionally fails on call N."""

    def __init__(self, fail_on_call: int | None = None):
        self.calls: list[tuple[str, str]] = []
        self.fail_on_call = fail_on_call

    def synthesize(self, text: str, voice: str) -> bytes:
        self.calls.append((text, voice))
        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            raise SynthesisError("speech request failed with status 503")
        return f"[{voice}:{text}]".encode("utf-8")


def make_papers(count: int) -> list[Paper]:
    return [
        Paper(
            paper_id=f"2510.{index:05d}",
            title=f"Paper {index}",
            url=f"https://huggingface.co/papers/2510.{index:05d}",
            abstract=f"Abstract for paper {index}.",
            published_at=datetime(2026, 10, 19, 8, 0, tzinfo=UTC),
        )
        for index in range(1, count + 1)
    ]


@pytest.fixture
def settings() -> Settings:
    return Settings(max_papers=3, cache_ttl_seconds=3600, site_url="https://tldr.example.com")


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def cache(fake_redis: FakeRedis, settings: Settings) -> CacheStore:
    return CacheStore(fake_redis, settings.cache_ttl_seconds)


@pytest.fixture
def source() -> MagicMock:
    return MagicMock(return_value=make_papers(2))


@pytest.fixture
def generator() -> StubGenerator:
    return StubGenerator()


@pytest.fixture
def synthesizer() -> StubSynthesizer:
    return StubSynthesizer()


@pytest.fixture
def make_pipeline(settings, cache, source, generator, synthesizer):
    """Build a pipeline from the default fakes, overriding any of them by keyword."""

    def _make(**overrides) -> ArtifactPipeline:
        parts = {
            "settings": settings,
            "cache": cache,
            "fetch_papers": source,
            "generator": generator,
            "synthesizer": synthesizer,
            "backoff": BackoffPolicy(max_attempts=3, base_delay_seconds=0, max_jitter_seconds=0),
        }
        parts.update(overrides)
        return ArtifactPipeline(**parts)

    return _make
