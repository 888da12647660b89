"""
Request audit trail.

Enabled with --audit-log. Every served request becomes one line:

  {"duration_ms": 0, "error": "Not Found", "outcome": "Failed",
   "path": "/v1/cabinet/linXXX", "status": 200, "ts_unix": 1760000000}
"""

from __future__ import annotations

import json
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path

from labmap.service.query import Reply


@dataclass
class RequestAuditLog:
    """Appends one sorted-key JSON line per request. Handler threads share one instance."""

    path: Path
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def record(self, path: str, status: int, reply: Reply, started: float) -> None:
        now = time.time()
        line = json.dumps(
            {
                "path": path,
                "status": status,
                "outcome": reply.status,
                "error": reply.error or "",
                "duration_ms": int((now - started) * 1000.0),
                "ts_unix": int(now),
            },
            sort_keys=True,
        )
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")
