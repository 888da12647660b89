from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from urllib.parse import unquote, urlsplit

from labmap.service.audit import RequestAuditLog
from labmap.service.codec import CABINET_BASE, MACHINE_BASE, reply_to_bytes
from labmap.service.query import ERROR_NOT_FOUND, QueryService, Reply

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServerConfig:
    host: str = ""
    port: int = 8889
    audit_path: Path | None = None


class LabmapHandler(BaseHTTPRequestHandler):
    server_version = "labmap/1.0"

    def _send_reply(self, status: int, reply: Reply) -> None:
        body = reply_to_bytes(reply)
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Cache-Control", "no-cache")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _route(self, path: str) -> tuple[int, Reply]:
        query: QueryService = self.server.query  # type: ignore[attr-defined]

        if path in (MACHINE_BASE, MACHINE_BASE.rstrip("/")):
            return 200, query.machines_reply()

        if path in (CABINET_BASE, CABINET_BASE.rstrip("/")):
            return 200, query.cabinets_reply()

        if path.startswith(CABINET_BASE):
            name = unquote(path[len(CABINET_BASE):])
            return 200, query.cabinet_reply(name)

        return 404, Reply.failed(ERROR_NOT_FOUND)

    def do_GET(self) -> None:  # noqa: N802
        audit: RequestAuditLog | None = self.server.audit  # type: ignore[attr-defined]

        start = time.time()
        path = urlsplit(self.path).path

        try:
            status_code, reply = self._route(path)
        except Exception:
            logger.exception("query %s failed", path)
            status_code = 500
            reply = Reply.failed("Internal Error")

        if audit is not None:
            audit.record(path, status_code, reply, started=start)

        self._send_reply(status_code, reply)

    def _method_not_allowed(self) -> None:
        try:
            length = int(self.headers.get("Content-Length", "0") or "0")
        except ValueError:
            # body length unknown, so the connection cannot be reused
            length = 0
            self.close_connection = True
        if length > 0:
            self.rfile.read(length)
        self._send_reply(405, Reply.failed("Method Not Allowed"))

    do_POST = _method_not_allowed  # noqa: N815
    do_PUT = _method_not_allowed  # noqa: N815
    do_DELETE = _method_not_allowed  # noqa: N815
    do_PATCH = _method_not_allowed  # noqa: N815

    def log_message(self, format: str, *args: object) -> None:  # noqa: A002
        logger.info("%s %s", self.address_string(), format % args)


class LabmapHttpServer(ThreadingHTTPServer):
    daemon_threads = True

    def __init__(self, config: ServerConfig, query: QueryService) -> None:
        super().__init__((config.host, config.port), LabmapHandler)
        self.query = query
        self.audit = RequestAuditLog(path=config.audit_path) if config.audit_path else None


def run_server(config: ServerConfig, query: QueryService) -> None:
    server = LabmapHttpServer(config, query)
    host, port = server.server_address[:2]
    logger.info("labmap listening on http://%s:%s%s", host or "0.0.0.0", port, MACHINE_BASE)
    try:
        server.serve_forever()
    finally:
        server.server_close()
