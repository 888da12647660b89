"""
Key value config source.

This is a minimal http client approach with no third party deps.

Design
The service lists every key under a prefix with GET <base_url>/<namespace>.
Accepted response shapes:

  [{"key": "labmap/lin302", "value": "{...}"}, ...]
  {"records": [{"key": ..., "value": ...}, ...]}
  ["lin302 lnx3 pos2 com1-yes com2-no pdu5", ...]

Values that arrive as json objects are serialized back to text so the parser
always receives strings. Keyed listings are returned in key order.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from http.client import HTTPException
from typing import Any, Protocol
from urllib.error import URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from labmap.core.errors import SourceUnavailable
from labmap.core.types import RawRecord
from labmap.sources.base import ConfigSource
from labmap.sources.static import record_payload


class HttpClient(Protocol):
    """Simple http client interface for testability."""

    def get_json(self, url: str, headers: dict[str, str]) -> Any:
        """Return parsed json for the given url."""


@dataclass
class UrllibHttpClient(HttpClient):
    """Default http client using urllib."""

    timeout_seconds: float = 10

    def get_json(self, url: str, headers: dict[str, str]) -> Any:
        req = Request(url, headers=headers, method="GET")
        with urlopen(req, timeout=self.timeout_seconds) as resp:
            body = resp.read().decode("utf-8")
        return json.loads(body)


def _records_from_listing(data: Any, url: str) -> list[RawRecord]:
    if isinstance(data, dict):
        data = data.get("records")
    if not isinstance(data, list):
        raise SourceUnavailable(f"unexpected listing shape from {url}")

    keyed: list[tuple[str, str]] = []
    plain: list[RawRecord] = []
    for i, item in enumerate(data):
        if isinstance(item, dict) and "key" in item:
            keyed.append((str(item["key"]), record_payload(item.get("value", ""))))
        else:
            plain.append(RawRecord(key=f"{url}[{i}]", payload=record_payload(item)))

    keyed.sort(key=lambda kv: kv[0])
    return [RawRecord(key=k, payload=v) for k, v in keyed] + plain


@dataclass(frozen=True)
class KeyValueSource(ConfigSource):
    """
    Load records from a remote key value listing.

    token is optional. If provided, it is sent as an Authorization header.
    """

    base_url: str
    token: str | None = None
    http: HttpClient = field(default_factory=UrllibHttpClient)

    def list(self, namespace: str) -> list[RawRecord]:
        url = f"{self.base_url.rstrip('/')}/{quote(namespace)}"

        headers: dict[str, str] = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Token {self.token}"

        try:
            data = self.http.get_json(url, headers=headers)
        except (URLError, OSError, HTTPException, ValueError) as exc:
            raise SourceUnavailable(f"listing {url} failed: {exc}") from exc

        return _records_from_listing(data, url)
