"""
Registry snapshots.

A snapshot pairs the ordered machine names with the entry mapping. Both halves
are built together and frozen together, which is what makes publishing a
single reference assignment safe for readers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from labmap.core.errors import SnapshotInvariantError
from labmap.core.types import CabinetEntry
from labmap.registry.ordering import machine_sort_key, sort_machines


@dataclass(frozen=True)
class RegistrySnapshot:
    """
    Immutable view of the registry.

    machine_names
    Exactly the keys of entries, in machine order, no duplicates.

    entries
    Read only mapping name -> CabinetEntry, iterated in machine order.

    generation
    0 for the initial empty snapshot, then one per publish. Not part of equality,
    so two cycles over the same source compare equal.
    """

    machine_names: tuple[str, ...]
    entries: Mapping[str, CabinetEntry]
    generation: int = field(default=0, compare=False)

    def __post_init__(self) -> None:
        names = self.machine_names
        if len(set(names)) != len(names):
            raise SnapshotInvariantError("machine names contain duplicates")
        if set(names) != set(self.entries.keys()):
            raise SnapshotInvariantError("machine names do not match entry keys")
        if list(names) != sorted(names, key=machine_sort_key):
            raise SnapshotInvariantError("machine names are not in machine order")

    def get(self, name: str) -> CabinetEntry | None:
        return self.entries.get(name)

    def __len__(self) -> int:
        return len(self.machine_names)

    def with_generation(self, generation: int) -> RegistrySnapshot:
        return RegistrySnapshot(
            machine_names=self.machine_names,
            entries=self.entries,
            generation=generation,
        )


def build_snapshot(entries: Mapping[str, CabinetEntry], generation: int = 0) -> RegistrySnapshot:
    """
    Build a snapshot from a name -> entry mapping.

    The mapping is copied, so later changes by the caller are not visible.
    """
    names = tuple(sort_machines(entries.keys()))
    ordered = {name: entries[name] for name in names}
    return RegistrySnapshot(
        machine_names=names,
        entries=MappingProxyType(ordered),
        generation=generation,
    )


def empty_snapshot() -> RegistrySnapshot:
    return build_snapshot({})
