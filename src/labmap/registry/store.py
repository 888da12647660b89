"""
Registry store.

We keep the current snapshot behind a single reference.
publish swaps that reference, readers copy it once and work on their copy.

Why not a lock around reads
Refresh may run while many HTTP threads are reading. Rebinding an attribute
is atomic, and the snapshot it points to is frozen, so a reader sees either
the old generation or the new one and never waits on the writer.
Writers are serialized with a lock so generations stay monotonic.
"""

from __future__ import annotations

import threading
from typing import Mapping, Optional

from labmap.core.types import CabinetEntry
from labmap.registry.snapshot import RegistrySnapshot, empty_snapshot


class Registry:
    """
    Machine registry keyed by machine name.

    Created empty, populated by the first refresh, replaced wholesale by every
    later refresh. There is no way to add or remove a single entry.
    """

    def __init__(self) -> None:
        self._snapshot: RegistrySnapshot = empty_snapshot()
        self._write_lock = threading.Lock()

    def publish(self, snapshot: RegistrySnapshot) -> RegistrySnapshot:
        """
        Replace the visible snapshot.

        The published snapshot is stamped with the next generation number and
        returned.
        """
        with self._write_lock:
            stamped = snapshot.with_generation(self._snapshot.generation + 1)
            self._snapshot = stamped
        return stamped

    def snapshot(self) -> RegistrySnapshot:
        """Return the current snapshot. Use this when a caller needs several reads."""
        return self._snapshot

    def get(self, name: str) -> Optional[CabinetEntry]:
        """Return the entry for name if present."""
        return self._snapshot.get(name)

    def list_all(self) -> Mapping[str, CabinetEntry]:
        """Return the current name -> entry mapping."""
        return self._snapshot.entries

    def list_machines(self) -> tuple[str, ...]:
        """Return the current machine names in machine order."""
        return self._snapshot.machine_names

    @property
    def generation(self) -> int:
        return self._snapshot.generation

    @property
    def loaded(self) -> bool:
        """True once anything has been published, even an empty snapshot."""
        return self._snapshot.generation > 0
