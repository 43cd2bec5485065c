"""Environment-driven settings for the daily papers service."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from errors import ConfigError

HF_DAILY_PAPERS_API_URL = "https://huggingface.co/api/daily_papers"
HF_PAPERS_PAGE_URL = "https://huggingface.co/papers"
SITE_URL = "https://tldr.takara.ai"

HF_ROUTER_SUMMARY_URL = "https://router.huggingface.co/hf-inference/models/Qwen/Qwen2.5-72B-Instruct/v1"
HF_ROUTER_CONVERSATION_URL = "https://router.huggingface.co/sambanova/v1"
DEEPINFRA_SPEECH_URL = "https://api.deepinfra.com/v1/openai/audio/speech"


@dataclass(frozen=True, slots=True)
class Settings:
    """Resolved configuration; build with ``load_settings``."""

    papers_api_url: str = HF_DAILY_PAPERS_API_URL
    papers_page_url: str = HF_PAPERS_PAGE_URL
    site_url: str = SITE_URL
    max_papers: int = 50

    cache_url: str = ""
    cache_ttl_seconds: int = 24 * 60 * 60
    feed_cache_key: str = "hf_papers_cache"
    summary_cache_key: str = "hf_papers_summary_cache"
    conversation_cache_key: str = "hf_papers_conversation_cache"
    podcast_cache_key: str = "hf_papers_podcast_cache"

    content_timeout_seconds: int = 30
    generation_timeout_seconds: int = 90
    synthesis_timeout_seconds: int = 60

    hf_api_key: str = ""
    summary_api_url: str = HF_ROUTER_SUMMARY_URL
    summary_model: str = "Qwen/Qwen2.5-72B-Instruct"
    conversation_api_url: str = HF_ROUTER_CONVERSATION_URL
    conversation_model: str = "Qwen2.5-72B-Instruct"
    conversation_max_attempts: int = 3

    tts_api_key: str = ""
    tts_api_url: str = DEEPINFRA_SPEECH_URL
    tts_model: str = "hexgrad/Kokoro-82M"

    update_key: str = ""
    host: str = "0.0.0.0"
    port: int = 8000

    @property
    def feed_url(self) -> str:
        return f"{self.site_url.rstrip('/')}/api/feed"

    @property
    def summary_url(self) -> str:
        return f"{self.site_url.rstrip('/')}/api/summary"


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Read settings from the environment, falling back to defaults."""
    if env is None:
        env = os.environ
    defaults = Settings()

    def _str(name: str, default: str) -> str:
        value = env.get(name)
        return value.strip() if value and value.strip() else default

    def _int(name: str, default: int) -> int:
        raw = env.get(name)
        if raw is None or not raw.strip():
            return default
        try:
            value = int(raw)
        except ValueError as exc:
            raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc
        if value <= 0:
            raise ConfigError(f"{name} must be positive, got {value}")
        return value

    return Settings(
        papers_api_url=_str("PAPERS_API_URL", defaults.papers_api_url),
        papers_page_url=_str("PAPERS_PAGE_URL", defaults.papers_page_url),
        site_url=_str("SITE_URL", defaults.site_url),
        max_papers=_int("MAX_PAPERS", defaults.max_papers),
        cache_url=_str("KV_URL", defaults.cache_url),
        cache_ttl_seconds=_int("CACHE_TTL_SECONDS", defaults.cache_ttl_seconds),
        feed_cache_key=_str("FEED_CACHE_KEY", defaults.feed_cache_key),
        summary_cache_key=_str("SUMMARY_CACHE_KEY", defaults.summary_cache_key),
        conversation_cache_key=_str("CONVERSATION_CACHE_KEY", defaults.conversation_cache_key),
        podcast_cache_key=_str("PODCAST_CACHE_KEY", defaults.podcast_cache_key),
        content_timeout_seconds=_int("CONTENT_TIMEOUT_SECONDS", defaults.content_timeout_seconds),
        generation_timeout_seconds=_int(
            "GENERATION_TIMEOUT_SECONDS", defaults.generation_timeout_seconds
        ),
        synthesis_timeout_seconds=_int(
            "SYNTHESIS_TIMEOUT_SECONDS", defaults.synthesis_timeout_seconds
        ),
        hf_api_key=_str("HF_API_KEY", defaults.hf_api_key),
        summary_api_url=_str("SUMMARY_API_URL", defaults.summary_api_url),
        summary_model=_str("SUMMARY_MODEL", defaults.summary_model),
        conversation_api_url=_str("CONVERSATION_API_URL", defaults.conversation_api_url),
        conversation_model=_str("CONVERSATION_MODEL", defaults.conversation_model),
        conversation_max_attempts=_int(
            "CONVERSATION_MAX_ATTEMPTS", defaults.conversation_max_attempts
        ),
        tts_api_key=_str("DEEPINFRA_API_KEY", defaults.tts_api_key),
        tts_api_url=_str("TTS_API_URL", defaults.tts_api_url),
        tts_model=_str("TTS_MODEL", defaults.tts_model),
        update_key=_str("UPDATE_KEY", defaults.update_key),
        host=_str("HOST", defaults.host),
        port=_int("PORT", defaults.port),
    )
