from __future__ import annotations

from dataclasses import asdict
from typing import Any, Mapping

from labmap.core.types import CabinetEntry

# wire key -> attribute, in wire order
_WIRE_FIELDS: tuple[tuple[str, str], ...] = (
    ("vtm0", "vtm0"),
    ("vtm1", "vtm1"),
    ("cabinet", "cabinet_id"),
    ("position", "position"),
    ("com1", "com1"),
    ("serial1", "serial1"),
    ("params1", "params1"),
    ("com2", "com2"),
    ("serial2", "serial2"),
    ("params2", "params2"),
    ("outlet", "outlet"),
    ("kvm", "kvm"),
    ("pdu0", "pdu0"),
    ("pdu1", "pdu1"),
)

_REQUIRED = ("vtm0", "vtm1", "cabinet", "position", "outlet", "pdu0", "pdu1")


def entry_to_json_dict(entry: CabinetEntry) -> dict[str, Any]:
    """
    Convert a CabinetEntry into its JSON wire shape.

    Optional fields that are not set are left out rather than sent as null.
    """
    raw = asdict(entry)
    out: dict[str, Any] = {}
    for wire, attr in _WIRE_FIELDS:
        value = raw[attr]
        if value is None:
            continue
        out[wire] = value
    return out


def entry_from_json_dict(obj: Mapping[str, Any]) -> CabinetEntry:
    """
    Convert a wire dict back into a CabinetEntry.

    Empty strings count as absent, so replies from servers that always emit
    every key decode the same way.
    """
    missing = [k for k in _REQUIRED if k not in obj]
    if missing:
        raise ValueError(f"cabinet entry missing keys: {', '.join(missing)}")

    kwargs: dict[str, Any] = {}
    for wire, attr in _WIRE_FIELDS:
        value = obj.get(wire)
        if wire in _REQUIRED:
            kwargs[attr] = str(value)
        elif value is None or value == "":
            kwargs[attr] = None
        else:
            kwargs[attr] = str(value)
    return CabinetEntry(**kwargs)


def entries_to_json_dict(entries: Mapping[str, CabinetEntry]) -> dict[str, Any]:
    """Convert a name -> entry mapping, keeping the mapping order."""
    return {name: entry_to_json_dict(entry) for name, entry in entries.items()}
