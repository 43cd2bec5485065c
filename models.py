"""Shared typed models for the pipeline."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True, slots=True)
class Paper:
    """Normalized paper record produced by the content source.

    ``abstract`` is None when the source had no abstract for the paper.
    """

    paper_id: str
    title: str
    url: str
    abstract: str | None
    published_at: datetime


@dataclass(frozen=True, slots=True)
class DialogueEntry:
    speaker: str
    text: str


@dataclass(frozen=True, slots=True)
class Conversation:
    """Ordered two-speaker dialogue derived from the daily summary."""

    entries: tuple[DialogueEntry, ...]

    @property
    def speakers(self) -> list[str]:
        """Distinct speaker names in order of first appearance."""
        seen: list[str] = []
        for entry in self.entries:
            if entry.speaker not in seen:
                seen.append(entry.speaker)
        return seen

    @classmethod
    def from_payload(cls, payload: Any) -> Conversation:
        """Build a conversation from a decoded ``{"conversation": [...]}`` object.

        Raises ValueError when the payload is not a non-empty list of
        speaker/text entries spoken by at most two speakers.
        """
        if not isinstance(payload, dict):
            raise ValueError("Conversation payload must be a JSON object")

        raw_entries = payload.get("conversation")
        if not isinstance(raw_entries, list):
            raise ValueError("Conversation payload has no 'conversation' list")

        entries: list[DialogueEntry] = []
        for index, item in enumerate(raw_entries):
            if not isinstance(item, dict):
                raise ValueError(f"Conversation entry {index} is not an object")
            speaker = item.get("speaker")
            text = item.get("text")
            if not isinstance(speaker, str) or not speaker.strip():
                raise ValueError(f"Conversation entry {index} has no speaker")
            if not isinstance(text, str):
                raise ValueError(f"Conversation entry {index} has no text")
            entries.append(DialogueEntry(speaker=speaker.strip(), text=text))

        if not entries:
            raise ValueError("Conversation contains no entries")

        conversation = cls(entries=tuple(entries))
        if len(conversation.speakers) > 2:
            raise ValueError(
                f"Conversation has more than two speakers: {conversation.speakers}"
            )
        return conversation

    @classmethod
    def from_json(cls, data: bytes | str) -> Conversation:
        try:
            payload = json.loads(data)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Conversation is not valid JSON: {exc}") from exc
        return cls.from_payload(payload)

    def to_payload(self) -> dict[str, Any]:
        return {
            "conversation": [
                {"speaker": entry.speaker, "text": entry.text} for entry in self.entries
            ]
        }

    def to_json(self) -> bytes:
        """Encode in the transport format used for caching and HTTP responses."""
        return json.dumps(self.to_payload(), indent=2, ensure_ascii=False).encode("utf-8")
