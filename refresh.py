"""Unconditional regeneration of every cached artifact.

Stages run in order and each result is cached as soon as it is built. A
failure stops the remaining stages but keeps whatever was already written;
there is no rollback. Only the feed write is best-effort.
"""

from __future__ import annotations

import logging
import threading

from errors import PipelineError, RefreshError
from pipeline import CONVERSATION, FEED, PODCAST, SUMMARY, ArtifactPipeline, run_stage

LOGGER = logging.getLogger(__name__)


def refresh_all(pipeline: ArtifactPipeline, cancel: threading.Event | None = None) -> list[str]:
    """Rebuild feed, summary, conversation and podcast, bypassing cache reads.

    Runs under its own cancellation event unless one is given, so it is not
    tied to the lifetime of the request that triggered it. Returns the stages
    that were refreshed; raises RefreshError naming the completed stages.
    """
    if not pipeline.cache.usable:
        raise RefreshError("cache store not connected, cannot update caches")

    if cancel is None:
        cancel = threading.Event()
    settings = pipeline.settings
    completed: list[str] = []

    def _store(stage: str, artifact: bytes) -> None:
        key = pipeline.cache_key(stage)
        if not pipeline.cache.set(key, artifact):
            raise RefreshError(f"failed to update {stage} cache key={key}", completed)
        completed.append(stage)
        LOGGER.info("Refreshed %s cache key=%s size=%s", stage, key, len(artifact))

    LOGGER.info("Starting cache update for all artifacts")
    try:
        feed = run_stage(FEED, lambda: pipeline.build_feed(settings.feed_url, cancel))
        if pipeline.cache.set(pipeline.cache_key(FEED), feed):
            completed.append(FEED)
        else:
            LOGGER.error("Failed to update feed cache, continuing with in-memory feed")

        summary = run_stage(
            SUMMARY, lambda: pipeline.build_summary(settings.summary_url, feed, cancel)
        )
        _store(SUMMARY, summary)

        conversation = run_stage(
            CONVERSATION, lambda: pipeline.build_conversation(summary, cancel)
        )
        _store(CONVERSATION, conversation)

        podcast = run_stage(PODCAST, lambda: pipeline.build_podcast(conversation, cancel))
        _store(PODCAST, podcast)
    except RefreshError:
        raise
    except PipelineError as exc:
        LOGGER.error("Cache update stopped after stages=%s: %s", completed, exc)
        raise RefreshError(f"cache update failed: {exc}", completed) from exc

    LOGGER.info("Successfully updated all caches (%s)", ", ".join(completed))
    return completed
