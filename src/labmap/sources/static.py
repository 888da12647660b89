"""
File backed config sources.

LineFileSource reads the classic lab map, one positional record per line:

  # machine cabinet position com1 com2 outlet [kvm]
  lin302 lnx3 pos2 com1-yes com2-no pdu5
  lin401 lnx4 pos1 com1-yes com2-yes pdu3 kvm2

JsonFileSource reads structured records:

  {"labmap": [{"name": "lin302", "cabinet": 3, ...}, ...]}

or a bare list of records when the file only holds one namespace.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from labmap.core.errors import SourceUnavailable
from labmap.core.types import RawRecord
from labmap.sources.base import ConfigSource


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise SourceUnavailable(f"cannot read {path}: {exc}") from exc


def record_payload(value: Any) -> str:
    """Raw records are strings. Objects are serialized back to JSON text."""
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True)


@dataclass(frozen=True)
class LineFileSource(ConfigSource):
    """
    Load positional records from a line oriented text file.

    The namespace is ignored, the file is the namespace.
    """

    path: Path

    def list(self, namespace: str) -> list[RawRecord]:
        text = _read_text(self.path)

        records: list[RawRecord] = []
        for lineno, line in enumerate(text.splitlines(), start=1):
            stripped = line.strip()
            if not stripped or stripped.startswith("#"):
                continue
            records.append(RawRecord(key=f"{self.path}:{lineno}", payload=stripped))
        return records


@dataclass(frozen=True)
class JsonFileSource(ConfigSource):
    """
    Load structured records from a local json file.

    path points to a json file that matches the schema described in the module docstring.
    """

    path: Path

    def list(self, namespace: str) -> list[RawRecord]:
        text = _read_text(self.path)
        try:
            data = json.loads(text)
        except ValueError as exc:
            raise SourceUnavailable(f"invalid json in {self.path}: {exc}") from exc

        if isinstance(data, dict):
            data = data.get(namespace, [])
        if not isinstance(data, list):
            raise SourceUnavailable(f"{self.path}: records must be a list")

        return [
            RawRecord(key=f"{self.path}[{i}]", payload=record_payload(item))
            for i, item in enumerate(data)
        ]
