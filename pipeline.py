"""Cache-aside production of the four daily artifacts.

Feed -> Summary -> Conversation -> Podcast. Each ``get_*`` method reads its
own cache key first and, on a miss or an unusable store, builds the artifact
from the previous stage's ``get_*`` result and caches it. The ``build_*``
methods skip the cache read and are shared with the full refresh.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable

from cache_store import CacheStatus, CacheStore
from config import Settings
from errors import (
    GenerationError,
    MalformedArtifactError,
    OperationCancelled,
    PipelineError,
    StageError,
)
from llm_client import TextGenerator, parse_conversation
from models import Conversation, Paper
from retry import BackoffPolicy, call_with_retry
from rss import feed_to_markdown, render_feed, render_summary, summary_body
from tts_client import SpeechSynthesizer, voice_for

LOGGER = logging.getLogger(__name__)

FEED = "feed"
SUMMARY = "summary"
CONVERSATION = "conversation"
PODCAST = "podcast"
STAGES = (FEED, SUMMARY, CONVERSATION, PODCAST)


def _check_cancelled(cancel: threading.Event | None, what: str) -> None:
    if cancel is not None and cancel.is_set():
        raise OperationCancelled(f"cancelled before {what}")


def run_stage(stage: str, build: Callable[[], bytes]) -> bytes:
    """Run ``build`` and annotate any pipeline failure with the stage name."""
    try:
        return build()
    except PipelineError as exc:
        raise StageError(stage, exc) from exc


class ArtifactPipeline:
    def __init__(
        self,
        settings: Settings,
        cache: CacheStore,
        fetch_papers: Callable[[], list[Paper]],
        generator: TextGenerator,
        synthesizer: SpeechSynthesizer,
        backoff: BackoffPolicy | None = None,
    ):
        self.settings = settings
        self.cache = cache
        self.fetch_papers = fetch_papers
        self.generator = generator
        self.synthesizer = synthesizer
        self.backoff = backoff or BackoffPolicy(max_attempts=settings.conversation_max_attempts)

    def cache_key(self, stage: str) -> str:
        return {
            FEED: self.settings.feed_cache_key,
            SUMMARY: self.settings.summary_cache_key,
            CONVERSATION: self.settings.conversation_cache_key,
            PODCAST: self.settings.podcast_cache_key,
        }[stage]

    def _cache_aside(self, stage: str, build: Callable[[], bytes]) -> bytes:
        key = self.cache_key(stage)
        lookup = self.cache.get(key)
        if lookup.hit:
            LOGGER.info("%s cache hit key=%s size=%s", stage, key, len(lookup.value))
            return lookup.value
        if lookup.status is CacheStatus.UNAVAILABLE:
            LOGGER.info("Cache unavailable, generating %s directly", stage)
        else:
            LOGGER.info("%s cache miss key=%s, generating", stage, key)

        artifact = run_stage(stage, build)
        if self.cache.usable and not self.cache.set(key, artifact):
            LOGGER.warning("Failed to cache %s key=%s", stage, key)
        return artifact

    # Feed

    def get_feed(self, request_url: str, cancel: threading.Event | None = None) -> bytes:
        return self._cache_aside(FEED, lambda: self.build_feed(request_url, cancel))

    def build_feed(self, request_url: str, cancel: threading.Event | None = None) -> bytes:
        """Fetch papers and render at most ``max_papers`` of them, in source order."""
        _check_cancelled(cancel, "fetching papers")
        papers = self.fetch_papers()[: self.settings.max_papers]
        LOGGER.info("Rendering feed with %s papers", len(papers))
        return render_feed(papers, self_link=request_url, channel_link=self.settings.papers_page_url)

    # Summary

    def get_summary(self, request_url: str, cancel: threading.Event | None = None) -> bytes:
        return self._cache_aside(
            SUMMARY,
            lambda: self.build_summary(request_url, self.get_feed(request_url, cancel), cancel),
        )

    def build_summary(
        self,
        request_url: str,
        feed_document: bytes,
        cancel: threading.Event | None = None,
    ) -> bytes:
        markdown = feed_to_markdown(feed_document)
        _check_cancelled(cancel, "summarizing")
        briefing = self.generator.summarize(markdown)
        if not briefing.strip():
            raise GenerationError("summary model returned an empty briefing")
        return render_summary(briefing, self_link=request_url, site_url=self.settings.site_url)

    # Conversation

    def get_conversation(self, request_url: str, cancel: threading.Event | None = None) -> bytes:
        return self._cache_aside(
            CONVERSATION,
            lambda: self.build_conversation(self.get_summary(request_url, cancel), cancel),
        )

    def build_conversation(
        self,
        summary_document: bytes,
        cancel: threading.Event | None = None,
    ) -> bytes:
        """Draft the dialogue with retries; returns the JSON transport encoding."""
        body = summary_body(summary_document)

        def attempt(_: int) -> Conversation:
            return parse_conversation(self.generator.draft_conversation(body))

        conversation = call_with_retry(
            attempt,
            self.backoff,
            cancel=cancel,
            label="conversation generation",
        )
        LOGGER.info(
            "Generated conversation entries=%s speakers=%s",
            len(conversation.entries),
            conversation.speakers,
        )
        return conversation.to_json()

    # Podcast

    def get_podcast(self, request_url: str, cancel: threading.Event | None = None) -> bytes:
        return self._cache_aside(
            PODCAST,
            lambda: self.build_podcast(self.get_conversation(request_url, cancel), cancel),
        )

    def build_podcast(
        self,
        conversation_document: bytes,
        cancel: threading.Event | None = None,
    ) -> bytes:
        """Synthesize every entry in order and concatenate the audio."""
        try:
            conversation = Conversation.from_json(conversation_document)
        except ValueError as exc:
            raise MalformedArtifactError(f"failed to parse conversation: {exc}") from exc

        segments: list[bytes] = []
        for index, entry in enumerate(conversation.entries, start=1):
            _check_cancelled(cancel, f"synthesizing entry {index}")
            segments.append(self.synthesizer.synthesize(entry.text, voice_for(entry.speaker)))

        audio = b"".join(segments)
        LOGGER.info("Synthesized podcast segments=%s size=%s", len(segments), len(audio))
        return audio
