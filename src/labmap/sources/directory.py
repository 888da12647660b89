"""
Directory config source.

Reads one record per file from a local directory tree, for example a git
working copy kept up to date by a cron job outside this process.

Layout
root/<namespace>/*.json and root/<namespace>/*.rec, read in file name order.
A .json file holds a structured record, a .rec file a positional line.

We do not run git here. Keeping git operations outside makes this safer and
more predictable.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from labmap.core.errors import SourceUnavailable
from labmap.core.types import RawRecord
from labmap.sources.base import ConfigSource

RECORD_SUFFIXES = (".json", ".rec")


@dataclass(frozen=True)
class DirectorySource(ConfigSource):
    """
    Load records from files inside root/<namespace>.

    A missing namespace directory is an empty listing.
    A missing root is a failure, since it usually means a broken mount.
    """

    root: Path

    def list(self, namespace: str) -> list[RawRecord]:
        if not self.root.is_dir():
            raise SourceUnavailable(f"config directory not found: {self.root}")

        ns_dir = self.root / namespace
        if not ns_dir.exists():
            return []

        records: list[RawRecord] = []
        try:
            for p in sorted(ns_dir.iterdir()):
                if not p.is_file() or p.suffix not in RECORD_SUFFIXES:
                    continue
                records.append(RawRecord(key=str(p), payload=p.read_text(encoding="utf-8").strip()))
        except (OSError, UnicodeDecodeError) as exc:
            raise SourceUnavailable(f"cannot read {ns_dir}: {exc}") from exc

        return records
