"""
Query service.

Read only accessors used by the transport layer. Each call takes one snapshot
from the registry and answers from it alone, so a response never mixes two
refresh generations.

The *_reply helpers wrap the answers in the reply envelope. They are transport
neutral, the HTTP handler only encodes what they return.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from labmap.core.errors import NotFound
from labmap.core.types import CabinetEntry
from labmap.registry.store import Registry

STATUS_SUCCESS = "Success"
STATUS_FAILED = "Failed"
ERROR_NOT_FOUND = "Not Found"


@dataclass(frozen=True)
class Reply:
    """
    Response envelope.

    status is Success or Failed. error is only set for Failed.
    Exactly one of cabinet, cabinets, machines is set on a successful query.
    """

    status: str
    error: Optional[str] = None
    cabinet: Optional[CabinetEntry] = None
    cabinets: Optional[Dict[str, CabinetEntry]] = None
    machines: Optional[List[str]] = None

    @property
    def ok(self) -> bool:
        return self.status == STATUS_SUCCESS

    @classmethod
    def failed(cls, error: str) -> Reply:
        return cls(status=STATUS_FAILED, error=error)


class QueryService:
    """Lookup contract over a Registry. Never mutates it."""

    def __init__(self, registry: Registry) -> None:
        self._registry = registry

    def get_machine_list(self) -> list[str]:
        """Return machine names in machine order."""
        return list(self._registry.snapshot().machine_names)

    def get_all_cabinets(self) -> dict[str, CabinetEntry]:
        """Return name -> entry, iterated in machine order."""
        return dict(self._registry.snapshot().entries)

    def get_cabinet(self, name: str) -> CabinetEntry:
        """Return the entry for name. Raises NotFound."""
        entry = self._registry.snapshot().get(name)
        if entry is None:
            raise NotFound(name)
        return entry

    def machines_reply(self) -> Reply:
        return Reply(status=STATUS_SUCCESS, machines=self.get_machine_list())

    def cabinets_reply(self) -> Reply:
        return Reply(status=STATUS_SUCCESS, cabinets=self.get_all_cabinets())

    def cabinet_reply(self, name: str) -> Reply:
        try:
            entry = self.get_cabinet(name)
        except NotFound:
            return Reply.failed(ERROR_NOT_FOUND)
        return Reply(status=STATUS_SUCCESS, cabinet=entry)
