"""
Registry package.

This makes the registry folder an explicit package so both Python and mypy
resolve modules consistently.
"""

from labmap.registry.ordering import machine_sort_key, sort_machines
from labmap.registry.snapshot import RegistrySnapshot, build_snapshot
from labmap.registry.store import Registry

__all__ = ["Registry", "RegistrySnapshot", "build_snapshot", "machine_sort_key", "sort_machines"]
