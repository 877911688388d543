from __future__ import annotations

import json
import logging
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Callable, Optional
from urllib.parse import urlparse

log = logging.getLogger("feed_api.health")


def health_payload(phase: str, ms_since_update: int, dead_threshold_ms: int) -> tuple[int, dict]:
    healthy = ms_since_update <= dead_threshold_ms
    payload = {
        "status": "ok" if healthy else "stalled",
        "phase": phase,
        "ms_since_last_update": ms_since_update,
        "dead_threshold_ms": dead_threshold_ms,
    }
    return (200 if healthy else 503), payload


class _Handler(BaseHTTPRequestHandler):
    server: "_HealthHTTPServer"

    def do_GET(self) -> None:
        parsed = urlparse(self.path)
        if parsed.path != "/health":
            self._send_json(404, {"error": "not_found"})
            return
        probe = self.server.probe
        if probe is None:
            self._send_json(503, {"status": "starting"})
            return
        phase, ms_since_update = probe()
        status, payload = health_payload(phase, ms_since_update, self.server.dead_threshold_ms)
        self._send_json(status, payload)

    def log_message(self, format: str, *args) -> None:  # noqa: A003
        return

    def _send_json(self, status: int, payload: dict) -> None:
        body = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)


class _HealthHTTPServer(ThreadingHTTPServer):
    daemon_threads = True
    probe: Optional[Callable[[], tuple[str, int]]] = None
    dead_threshold_ms: int = 300_000


class HealthServer:
    """Serves ``GET /health`` from a background thread.

    ``probe`` returns ``(phase, ms_since_last_update)`` for the current feed;
    it is swapped on every supervised restart.
    """

    def __init__(self, host: str = "0.0.0.0", port: int = 8080, dead_threshold_ms: int = 300_000) -> None:
        self.host = host
        self.port = int(port)
        self.dead_threshold_ms = int(dead_threshold_ms)
        self._httpd: Optional[_HealthHTTPServer] = None
        self._thread: Optional[threading.Thread] = None

    def set_probe(self, probe: Optional[Callable[[], tuple[str, int]]]) -> None:
        if self._httpd is not None:
            self._httpd.probe = probe

    def start(self) -> None:
        self._httpd = _HealthHTTPServer((self.host, self.port), _Handler)
        self._httpd.dead_threshold_ms = self.dead_threshold_ms
        self._thread = threading.Thread(target=self._httpd.serve_forever, name="health-http", daemon=True)
        self._thread.start()
        log.info("Health endpoint listening on http://%s:%s/health", self.host, self._httpd.server_address[1])

    @property
    def bound_port(self) -> Optional[int]:
        return None if self._httpd is None else int(self._httpd.server_address[1])

    def stop(self) -> None:
        if self._httpd is None:
            return
        self._httpd.shutdown()
        self._httpd.server_close()
        self._httpd = None
