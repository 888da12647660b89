"""
Config source interfaces.

Goal
Keep the registry source agnostic. A source only has to list raw records for a
namespace, the parser decides what they mean.

Contract
list returns every record or raises SourceUnavailable. A partial listing would
silently purge machines on publish, so sources never return one.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from labmap.core.types import RawRecord


class ConfigSource(Protocol):
    """
    Config source interface.

    list returns the raw records stored under namespace, in source order.
    """

    def list(self, namespace: str) -> list[RawRecord]:
        """List raw records for namespace."""


@dataclass(frozen=True)
class StaticSource(ConfigSource):
    """
    Fixed in memory listing.

    Handy for tests and for seeding a registry from code.
    """

    records: tuple[RawRecord, ...] = ()

    def list(self, namespace: str) -> list[RawRecord]:
        return list(self.records)
