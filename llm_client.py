"""Text generation over the OpenAI-compatible Hugging Face router."""

from __future__ import annotations

import json
import logging
import threading
from json import JSONDecodeError
from typing import Any

from openai import OpenAI, OpenAIError

from errors import GenerationError
from models import Conversation

LOGGER = logging.getLogger(__name__)

MAX_TOKENS = 4096
SUMMARY_TEMPERATURE = 0.6
CONVERSATION_TEMPERATURE = 0.7
TOP_P = 0.95

REASONING_OPEN = "<think>"
REASONING_CLOSE = "</think>"

SUMMARY_PROMPT = """Create a brief morning briefing on these AI research papers, written in a conversational style for busy professionals. Focus on what's new and what it means for businesses and society.
Format the output in HTML:
<h2>Morning Headline</h2>
<p>(1 sentence)</p>

<h2>What's New</h2>
<p>(2-3 sentences, written like you're explaining it to a friend over coffee, with citations to papers as <a href="link">Paper Name</a>)</p>
<ul>
  <li>Cover all papers in a natural, flowing narrative</li>
  <li>Group related papers together</li>
  <li>Include key metrics and outcomes</li>
  <li>Keep the tone light and engaging</li>
</ul>

Keep it under 200 words. Start with the most impressive or important paper. Focus on outcomes and implications, not technical details. Write like you're explaining it to a friend over coffee. Do not write a word count.

Do not enclose the HTML in a markdown code block, just return the HTML.

Below are the paper abstracts and information in markdown format:
"""

CONVERSATION_PROMPT = """Welcome to Daily Papers! Today, we're diving into the latest AI research in an engaging and
informative discussion. The goal is to make it a **bite-sized podcast** that's **engaging, natural, and insightful** while covering
the key points of each paper.

Here are today's research papers:
{summary}

Convert this into a **conversational podcast-style discussion** between two experts, Brian and Jenny.
Ensure the conversation:
1. Flows naturally with realistic back-and-forth dialogue
2. Uses casual phrasing and occasional filler words (like "um", "you know")
3. Maintains professional insights while being engaging
4. Covers each paper meaningfully but concisely
5. Focuses on practical implications and key findings
6. Keeps a dynamic pace with natural transitions
7. Avoids the hosts calling each other by name, just "you" and "I".

Return the conversation in this exact JSON format:
{{
    "conversation": [
        {{"speaker": "Brian", "text": ""}},
        {{"speaker": "Jenny", "text": ""}}
    ]
}}"""


class TextGenerator:
    """Chat-completion client for the summary and conversation prompts.

    The SDK's own retries are disabled; the conversation stage owns its retry
    policy and every other caller fails on the first error.
    """

    def __init__(
        self,
        api_key: str,
        summary_api_url: str,
        summary_model: str,
        conversation_api_url: str,
        conversation_model: str,
        timeout_seconds: float = 90,
    ):
        self.api_key = api_key
        self.summary_api_url = summary_api_url
        self.summary_model = summary_model
        self.conversation_api_url = conversation_api_url
        self.conversation_model = conversation_model
        self.timeout_seconds = timeout_seconds
        self._clients: dict[str, OpenAI] = {}
        self._clients_lock = threading.Lock()

    def summarize(self, markdown: str) -> str:
        """Turn the feed markdown into an HTML morning briefing."""
        LOGGER.info("Requesting summary from model=%s", self.summary_model)
        content = self._complete(
            base_url=self.summary_api_url,
            model=self.summary_model,
            prompt=SUMMARY_PROMPT + markdown,
            temperature=SUMMARY_TEMPERATURE,
            extra_body={"separate_reasoning": True},
        )
        briefing = strip_reasoning(content)
        if not briefing:
            raise GenerationError("no summary text after reasoning block")
        return briefing

    def draft_conversation(self, summary: str) -> str:
        """Ask for a two-speaker dialogue; returns the raw response text."""
        LOGGER.info("Requesting conversation from model=%s", self.conversation_model)
        return self._complete(
            base_url=self.conversation_api_url,
            model=self.conversation_model,
            prompt=CONVERSATION_PROMPT.format(summary=summary),
            temperature=CONVERSATION_TEMPERATURE,
        )

    def _complete(
        self,
        base_url: str,
        model: str,
        prompt: str,
        temperature: float,
        extra_body: dict[str, Any] | None = None,
    ) -> str:
        if not self.api_key:
            raise GenerationError("HF_API_KEY environment variable is required")

        client = self._client(base_url)
        try:
            response = client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=MAX_TOKENS,
                temperature=temperature,
                top_p=TOP_P,
                stream=False,
                extra_body=extra_body,
            )
        except OpenAIError as exc:
            raise GenerationError(f"request to {base_url} failed: {exc}") from exc

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as exc:
            raise GenerationError(f"unexpected response shape from {base_url}") from exc

        if not content or not content.strip():
            raise GenerationError(f"no valid response content returned from {base_url}")
        return content

    def _client(self, base_url: str) -> OpenAI:
        """Return the shared client for one router URL, creating it on first use."""
        with self._clients_lock:
            client = self._clients.get(base_url)
            if client is None:
                client = OpenAI(
                    api_key=self.api_key,
                    base_url=base_url,
                    timeout=self.timeout_seconds,
                    max_retries=0,
                )
                self._clients[base_url] = client
            return client

    def close(self) -> None:
        with self._clients_lock:
            for client in self._clients.values():
                client.close()
            self._clients.clear()


def strip_reasoning(content: str) -> str:
    """Drop leaked chain-of-thought: keep only text after the closing think tag."""
    if REASONING_OPEN in content and REASONING_CLOSE in content:
        return content.rsplit(REASONING_CLOSE, 1)[1].strip()
    return content


def parse_conversation(content: str) -> Conversation:
    """Decode a conversation from model output that may wrap the JSON in prose."""
    try:
        payload = json.loads(content)
    except JSONDecodeError:
        payload = _extract_first_json_object(content)

    try:
        return Conversation.from_payload(payload)
    except ValueError as exc:
        raise GenerationError(f"invalid conversation JSON: {exc}") from exc


def _extract_first_json_object(content: str) -> dict[str, Any]:
    """Extract the first decodable JSON object from an arbitrary string."""
    decoder = json.JSONDecoder()
    for index, char in enumerate(content):
        if char != "{":
            continue
        try:
            candidate, _ = decoder.raw_decode(content[index:])
        except JSONDecodeError:
            continue
        if isinstance(candidate, dict):
            return candidate
    raise GenerationError("no valid JSON object found in model output")
