"""
Client library.

Performs the three labmap queries against a server base URL, for example
http://labmap.example:8889. Any transport error, non 200 response, undecodable
body or Failed envelope raises LabmapClientError.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from labmap.core.errors import LabmapClientError
from labmap.core.types import CabinetEntry
from labmap.service.codec import CABINET_BASE, MACHINE_BASE, ReplyDecodeError, decode_reply
from labmap.service.query import Reply

DEFAULT_TIMEOUT_SECONDS = 20.0


@dataclass(frozen=True)
class LabmapClient:
    base_url: str
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS

    def _get(self, uri: str) -> Reply:
        url = f"{self.base_url.rstrip('/')}{uri}"
        req = Request(url, headers={"Accept": "application/json"}, method="GET")

        try:
            with urlopen(req, timeout=self.timeout_seconds) as resp:
                body = resp.read()
        except HTTPError as exc:
            raise LabmapClientError(f"status code: {exc.code} {exc.reason}") from exc
        except (URLError, OSError) as exc:
            raise LabmapClientError(f"get: {exc}") from exc

        try:
            reply = decode_reply(json.loads(body.decode("utf-8")))
        except (ValueError, ReplyDecodeError) as exc:
            raise LabmapClientError(f"unmarshal: {exc}") from exc

        if not reply.ok:
            detail = f" ({reply.error})" if reply.error else ""
            raise LabmapClientError(f"status: {reply.status}{detail}")

        return reply

    def _query(self, what: str, uri: str) -> Reply:
        try:
            return self._get(uri)
        except LabmapClientError as exc:
            raise LabmapClientError(f"get {what} ({self.base_url}{uri}): {exc}") from exc

    def machines(self) -> list[str]:
        reply = self._query("machines", MACHINE_BASE)
        return list(reply.machines or [])

    def cabinets(self) -> dict[str, CabinetEntry]:
        reply = self._query("cabinets", CABINET_BASE)
        return dict(reply.cabinets or {})

    def cabinet(self, machine: str) -> CabinetEntry:
        reply = self._query("cabinet", CABINET_BASE + quote(machine, safe=""))
        if reply.cabinet is None:
            raise LabmapClientError(f"get cabinet ({self.base_url}{CABINET_BASE}{machine}): empty reply")
        return reply.cabinet
