"""WSGI front end exposing the artifacts over HTTP."""

from __future__ import annotations

import hmac
import json
import logging
import threading
from datetime import UTC, datetime
from socketserver import ThreadingMixIn
from typing import Any, Callable, Iterable
from wsgiref.simple_server import WSGIServer, make_server

from config import Settings
from errors import PipelineError
from pipeline import ArtifactPipeline
from refresh import refresh_all

LOGGER = logging.getLogger(__name__)

VERSION = "1.0.0"
ENDPOINTS = ["/api/feed", "/api/summary", "/api/conversation", "/api/podcast"]

_CORS_HEADERS = [
    ("Access-Control-Allow-Origin", "*"),
    ("Access-Control-Allow-Methods", "GET, POST, OPTIONS"),
    ("Access-Control-Allow-Headers", "Content-Type, X-Update-Key"),
]

_STATUS_TEXT = {
    200: "200 OK",
    401: "401 Unauthorized",
    404: "404 Not Found",
    405: "405 Method Not Allowed",
    500: "500 Internal Server Error",
}

StartResponse = Callable[[str, list[tuple[str, str]]], Any]


class InflightRequests:
    """Cancellation events for the read requests currently being served."""

    def __init__(self) -> None:
        self._events: set[threading.Event] = set()
        self._lock = threading.Lock()

    def open(self) -> threading.Event:
        event = threading.Event()
        with self._lock:
            self._events.add(event)
        return event

    def close(self, event: threading.Event) -> None:
        with self._lock:
            self._events.discard(event)

    def cancel_all(self) -> int:
        with self._lock:
            events = list(self._events)
        for event in events:
            event.set()
        return len(events)


def _now() -> str:
    return datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def _respond(
    start_response: StartResponse,
    status: int,
    body: bytes,
    content_type: str,
    extra_headers: list[tuple[str, str]] | None = None,
) -> list[bytes]:
    headers = [("Content-Type", content_type), ("Content-Length", str(len(body)))]
    headers.extend(_CORS_HEADERS)
    headers.extend(extra_headers or [])
    start_response(_STATUS_TEXT[status], headers)
    return [body]


def _json(start_response: StartResponse, status: int, payload: dict[str, Any]) -> list[bytes]:
    return _respond(start_response, status, json.dumps(payload).encode("utf-8"), "application/json")


def _text(start_response: StartResponse, status: int, message: str) -> list[bytes]:
    return _respond(start_response, status, f"{message}\n".encode("utf-8"), "text/plain; charset=utf-8")


def create_app(
    pipeline: ArtifactPipeline,
    settings: Settings,
    inflight: InflightRequests | None = None,
) -> Callable[..., Iterable[bytes]]:
    """Build the WSGI callable for the feed, summary, conversation and podcast routes.

    Each read request gets its own cancellation event, registered in
    ``inflight`` while the artifact is produced.
    """
    requests_inflight = inflight if inflight is not None else InflightRequests()

    def app(environ: dict[str, Any], start_response: StartResponse) -> Iterable[bytes]:
        method = environ.get("REQUEST_METHOD", "GET").upper()
        raw_path = environ.get("PATH_INFO", "") or ""
        path = raw_path.rstrip("/") or "/api"
        if path != "/api" and not path.startswith("/api/"):
            path = "/api" + path
        request_url = f"https://{environ.get('HTTP_HOST', 'localhost')}{raw_path}"

        if method == "OPTIONS":
            return _respond(start_response, 200, b"", "text/plain")

        if path == "/api/update-cache":
            return _update_cache(environ, start_response, method)

        if method != "GET":
            return _text(start_response, 405, "Method Not Allowed")

        if path == "/api":
            return _json(start_response, 200, {
                "status": "ok",
                "endpoints": ENDPOINTS,
                "cache_status": pipeline.cache.usable,
                "timestamp": _now(),
                "version": VERSION,
            })

        cancel = requests_inflight.open()
        try:
            if path == "/api/feed":
                feed = pipeline.get_feed(request_url, cancel=cancel)
                return _respond(start_response, 200, feed, "application/rss+xml")
            if path == "/api/summary":
                summary = pipeline.get_summary(request_url, cancel=cancel)
                return _respond(start_response, 200, summary, "application/rss+xml")
            if path == "/api/conversation":
                conversation = pipeline.get_conversation(request_url, cancel=cancel)
                return _respond(start_response, 200, conversation, "application/json")
            if path == "/api/podcast":
                audio = pipeline.get_podcast(request_url, cancel=cancel)
                return _respond(start_response, 200, audio, "audio/mpeg", [
                    ("Content-Disposition", 'inline; filename="daily-papers-podcast.mp3"'),
                    ("Accept-Ranges", "bytes"),
                ])
        except PipelineError as exc:
            LOGGER.exception("Failed to serve %s", path)
            return _text(start_response, 500, f"Error generating {path.rsplit('/', 1)[-1]}: {exc}")
        finally:
            requests_inflight.close(cancel)

        return _text(start_response, 404, "404 page not found")

    def _update_cache(
        environ: dict[str, Any], start_response: StartResponse, method: str
    ) -> list[bytes]:
        if method != "POST":
            return _text(start_response, 405, "Method Not Allowed")

        supplied = environ.get("HTTP_X_UPDATE_KEY", "")
        expected = settings.update_key
        if not expected or not hmac.compare_digest(supplied.encode(), expected.encode()):
            return _text(start_response, 401, "Unauthorized")

        try:
            refresh_all(pipeline)
        except PipelineError as exc:
            LOGGER.exception("Failed to update caches via API")
            return _text(start_response, 500, f"Error updating caches: {exc}")

        return _json(start_response, 200, {
            "status": "Cache updated successfully",
            "timestamp": _now(),
        })

    return app


class ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    daemon_threads = True


def serve(pipeline: ArtifactPipeline, settings: Settings) -> None:
    """Serve the app until interrupted, one thread per request."""
    inflight = InflightRequests()
    app = create_app(pipeline, settings, inflight)
    with make_server(settings.host, settings.port, app, server_class=ThreadingWSGIServer) as httpd:
        LOGGER.info("Serving on http://%s:%s", settings.host, settings.port)
        try:
            httpd.serve_forever()
        except KeyboardInterrupt:
            LOGGER.info("Shutting down")
        finally:
            cancelled = inflight.cancel_all()
            if cancelled:
                LOGGER.info("Cancelled %s in-flight requests", cancelled)
