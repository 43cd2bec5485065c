"""Speech synthesis over DeepInfra's OpenAI-compatible audio endpoint."""

from __future__ import annotations

import logging

import requests

from config import DEEPINFRA_SPEECH_URL
from errors import SynthesisError

LOGGER = logging.getLogger(__name__)

RESPONSE_FORMAT = "mp3"
DEFAULT_VOICE = "af_bella"
VOICE_BY_SPEAKER: dict[str, str] = {
    "Brian": "am_michael",
    "Jenny": "af_bella",
}


def voice_for(speaker: str) -> str:
    return VOICE_BY_SPEAKER.get(speaker, DEFAULT_VOICE)


class SpeechSynthesizer:
    def __init__(
        self,
        api_key: str,
        api_url: str = DEEPINFRA_SPEECH_URL,
        model: str = "hexgrad/Kokoro-82M",
        timeout_seconds: float = 60,
    ):
        self.api_key = api_key
        self.api_url = api_url
        self.model = model
        self.timeout_seconds = timeout_seconds

    def synthesize(self, text: str, voice: str) -> bytes:
        """Return MP3 bytes for ``text`` spoken with ``voice``."""
        if not self.api_key:
            raise SynthesisError("DEEPINFRA_API_KEY environment variable is required")

        payload = {
            "model": self.model,
            "input": text,
            "voice": voice,
            "response_format": RESPONSE_FORMAT,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            response = requests.post(
                self.api_url,
                headers=headers,
                json=payload,
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise SynthesisError(f"speech request to {self.api_url} failed: {exc}") from exc

        audio = response.content
        if not audio:
            raise SynthesisError(f"speech request to {self.api_url} returned no audio")
        LOGGER.debug("Synthesized %s bytes with voice=%s", len(audio), voice)
        return audio
