"""CLI entrypoint for the daily papers feed, summary and podcast service."""

from __future__ import annotations

import argparse
import functools
import logging
import os
import sys

from dotenv import load_dotenv

from cache_store import CacheStore
from config import Settings, load_settings
from errors import PipelineError
from hf_feed import fetch_papers
from llm_client import TextGenerator
from pipeline import ArtifactPipeline
from refresh import refresh_all
from server import serve
from tts_client import SpeechSynthesizer

ARTIFACT_COMMANDS = ("feed", "summary", "conversation", "podcast")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line flags."""
    parser = argparse.ArgumentParser(
        description="Serve the Hugging Face daily papers feed, summary, conversation and podcast"
    )
    parser.add_argument(
        "command",
        nargs="?",
        choices=["serve", "refresh", *ARTIFACT_COMMANDS],
        default="serve",
        help=(
            "'serve' (default): run the HTTP server. "
            "'refresh': regenerate and re-cache every artifact. "
            "'feed' | 'summary' | 'conversation' | 'podcast': produce one artifact "
            "through the cache and write it to stdout or --output."
        ),
    )
    parser.add_argument("--output", default=None, help="File to write a single artifact to")
    return parser.parse_args(argv)


def build_pipeline(settings: Settings) -> ArtifactPipeline:
    """Wire the cache store and upstream clients into a pipeline."""
    cache = CacheStore.connect(settings.cache_url, settings.cache_ttl_seconds)
    generator = TextGenerator(
        api_key=settings.hf_api_key,
        summary_api_url=settings.summary_api_url,
        summary_model=settings.summary_model,
        conversation_api_url=settings.conversation_api_url,
        conversation_model=settings.conversation_model,
        timeout_seconds=settings.generation_timeout_seconds,
    )
    synthesizer = SpeechSynthesizer(
        api_key=settings.tts_api_key,
        api_url=settings.tts_api_url,
        model=settings.tts_model,
        timeout_seconds=settings.synthesis_timeout_seconds,
    )
    return ArtifactPipeline(
        settings=settings,
        cache=cache,
        fetch_papers=functools.partial(
            fetch_papers,
            api_url=settings.papers_api_url,
            timeout=settings.content_timeout_seconds,
        ),
        generator=generator,
        synthesizer=synthesizer,
    )


def run_artifact(pipeline: ArtifactPipeline, command: str, output: str | None) -> None:
    """Produce one artifact through the cache and write it out."""
    settings = pipeline.settings
    getters = {
        "feed": lambda: pipeline.get_feed(settings.feed_url),
        "summary": lambda: pipeline.get_summary(settings.summary_url),
        "conversation": lambda: pipeline.get_conversation(settings.summary_url),
        "podcast": lambda: pipeline.get_podcast(settings.summary_url),
    }
    artifact = getters[command]()

    if output:
        with open(output, "wb") as fh:
            fh.write(artifact)
        logging.info("Wrote %s (%s bytes) to %s", command, len(artifact), output)
    else:
        sys.stdout.buffer.write(artifact)
        sys.stdout.buffer.write(b"\n")


def main(argv: list[str] | None = None) -> int:
    """Initialize config and execute the requested command."""
    load_dotenv()
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(message)s",
    )
    args = parse_args(argv)

    try:
        settings = load_settings()
    except PipelineError as exc:
        logging.error("Invalid configuration: %s", exc)
        return 2

    pipeline = build_pipeline(settings)

    try:
        if args.command == "serve":
            serve(pipeline, settings)
        elif args.command == "refresh":
            completed = refresh_all(pipeline)
            logging.info("Refresh complete: %s", ", ".join(completed))
        else:
            run_artifact(pipeline, args.command, args.output)
    except PipelineError as exc:
        logging.exception("Command %s failed: %s", args.command, exc)
        return 1
    finally:
        pipeline.generator.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
