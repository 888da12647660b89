"""
Record parser.

Two front ends decode raw payloads into CabinetRecord:

positional
  lin302 lnx3 pos2 com1-yes com2-no pdu5 [kvm7]

structured
  {"name": "lin302", "cabinet": 3, "position": 2,
   "com1": {"enabled": true, "speed": 9600, "bits": 8, "stopbits": 1,
            "parity": "n", "device": "/dev/ttyS0"},
   "com2": {"enabled": false}, "pdu": 5, "kvm": 7}

derive_entry then applies the naming rules once for both.

Ingestion is best effort. parse_record never raises for a bad payload, it
reports the drop and returns None so one broken record cannot abort a refresh.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional

from labmap.core.errors import MalformedRecord
from labmap.core.types import (
    CabinetEntry,
    CabinetRecord,
    PortConfig,
    RawRecord,
    RecordFormat,
    SerialSettings,
)

logger = logging.getLogger(__name__)

DropHook = Callable[[RawRecord, str], None]

CABINET_PREFIX = "lnx"
DISABLED_PARAMS = "no"

_SETTING_KEYS = ("speed", "bits", "stopbits", "parity", "device")
_DIGITS = re.compile(r"[0-9]+")


@dataclass
class ParseStats:
    """Counters for one batch of records."""

    accepted: int = 0
    dropped: int = 0


# -------------------------------
# Positional front end
# -------------------------------


def _strip_required(token: str, prefix: str) -> str:
    if not token.startswith(prefix):
        raise MalformedRecord(f"expected {prefix!r} token, got {token!r}")
    value = token[len(prefix):]
    if not value:
        raise MalformedRecord(f"empty value in {token!r}")
    return value


def _positional_port(token: str, prefix: str) -> PortConfig:
    flag = _strip_required(token, prefix)
    if flag == "yes":
        return PortConfig(enabled=True)
    if flag == "no":
        return PortConfig(enabled=False)
    raise MalformedRecord(f"expected yes or no in {token!r}")


def parse_positional(payload: str) -> CabinetRecord:
    """Decode a positional line into a CabinetRecord."""
    words = payload.split()
    if len(words) not in (6, 7):
        raise MalformedRecord(f"expected 6 or 7 fields, got {len(words)}")

    name, cab = words[0], words[1]
    cabinet_id = cab[len(CABINET_PREFIX):] if cab.startswith(CABINET_PREFIX) else cab
    if not cabinet_id:
        raise MalformedRecord(f"empty cabinet in {cab!r}")

    kvm: Optional[str] = None
    if len(words) == 7:
        kvm = _strip_required(words[6], "kvm")

    return CabinetRecord(
        name=name,
        cabinet_id=cabinet_id,
        position=_strip_required(words[2], "pos"),
        com1=_positional_port(words[3], "com1-"),
        com2=_positional_port(words[4], "com2-"),
        outlet=_strip_required(words[5], "pdu"),
        kvm=kvm,
    )


# -------------------------------
# Structured front end
# -------------------------------


def _require_number_text(value: Any, name: str) -> str:
    """Return a whole number as text. Digit strings are kept as written, e.g. "03"."""
    # bool is an int subclass, and never a valid number here
    if isinstance(value, bool):
        raise MalformedRecord(f"{name} must be an integer")
    if isinstance(value, int) and value >= 0:
        return str(value)
    if isinstance(value, str) and _DIGITS.fullmatch(value.strip()):
        return value.strip()
    raise MalformedRecord(f"{name} must be an integer")


def _require_int(value: Any, name: str) -> int:
    return int(_require_number_text(value, name))


def _require_str(value: Any, name: str) -> str:
    if not isinstance(value, str) or not value:
        raise MalformedRecord(f"{name} must be a non empty string")
    return value


def _structured_port(value: Any, name: str) -> PortConfig:
    if value is None:
        return PortConfig(enabled=False)
    if not isinstance(value, dict):
        raise MalformedRecord(f"{name} must be an object")

    enabled = value.get("enabled", False)
    if not isinstance(enabled, bool):
        raise MalformedRecord(f"{name}.enabled must be a boolean")
    if not enabled:
        return PortConfig(enabled=False)

    present = [k for k in _SETTING_KEYS if value.get(k) is not None]
    if not present:
        return PortConfig(enabled=True)
    if len(present) != len(_SETTING_KEYS):
        missing = sorted(set(_SETTING_KEYS) - set(present))
        raise MalformedRecord(f"{name} is missing {', '.join(missing)}")

    settings = SerialSettings(
        speed=_require_int(value["speed"], f"{name}.speed"),
        bits=_require_int(value["bits"], f"{name}.bits"),
        stopbits=_require_int(value["stopbits"], f"{name}.stopbits"),
        parity=_require_str(value["parity"], f"{name}.parity"),
        device=_require_str(value["device"], f"{name}.device"),
    )
    return PortConfig(enabled=True, settings=settings)


def parse_structured(payload: str) -> CabinetRecord:
    """Decode a JSON object payload into a CabinetRecord."""
    try:
        obj = json.loads(payload)
    except (ValueError, RecursionError) as exc:
        raise MalformedRecord(f"invalid json: {exc}") from exc
    if not isinstance(obj, dict):
        raise MalformedRecord("record must be an object")

    kvm_raw = obj.get("kvm")
    kvm = None if kvm_raw is None else _require_number_text(kvm_raw, "kvm")

    return CabinetRecord(
        name=_require_str(obj.get("name"), "name"),
        cabinet_id=_require_number_text(obj.get("cabinet"), "cabinet"),
        position=_require_number_text(obj.get("position"), "position"),
        com1=_structured_port(obj.get("com1"), "com1"),
        com2=_structured_port(obj.get("com2"), "com2"),
        outlet=_require_number_text(obj.get("pdu"), "pdu"),
        kvm=kvm,
    )


# -------------------------------
# Derivation
# -------------------------------


def console_command(cabinet_id: str, position: str, port: int) -> str:
    """Console server command for a port, e.g. telnet lnx3-debug 10021."""
    return f"telnet {CABINET_PREFIX}{cabinet_id}-debug 100{position}{port}"


def port_params(settings: SerialSettings) -> str:
    return f"{settings.speed},{settings.bits},{settings.stopbits},{settings.parity}:{settings.device}"


def _port_fields(
    record: CabinetRecord,
    port: PortConfig,
    number: int,
) -> tuple[Optional[str], Optional[str], Optional[str]]:
    """Return (com, serial, params) for one port."""
    if not port.enabled:
        return None, None, DISABLED_PARAMS
    com = console_command(record.cabinet_id, record.position, number)
    if port.settings is None:
        return com, None, None
    return com, port.settings.device, port_params(port.settings)


def derive_entry(record: CabinetRecord) -> CabinetEntry:
    """Apply the naming rules to a canonical record."""
    com1, serial1, params1 = _port_fields(record, record.com1, 1)
    com2, serial2, params2 = _port_fields(record, record.com2, 2)

    kvm = None
    if record.kvm is not None:
        kvm = f"{CABINET_PREFIX}{record.kvm}-kvm"

    return CabinetEntry(
        vtm0=f"{record.name}-vtm0",
        vtm1=f"{record.name}-vtm1",
        cabinet_id=record.cabinet_id,
        position=record.position,
        outlet=record.outlet,
        pdu0=f"{CABINET_PREFIX}{record.cabinet_id}-pdu0",
        pdu1=f"{CABINET_PREFIX}{record.cabinet_id}-pdu1",
        com1=com1,
        serial1=serial1,
        params1=params1,
        com2=com2,
        serial2=serial2,
        params2=params2,
        kvm=kvm,
    )


# -------------------------------
# Entry point
# -------------------------------


def decode_record(payload: str, fmt: RecordFormat = RecordFormat.auto) -> CabinetRecord:
    """
    Decode a payload with the front end selected by fmt.

    Raises MalformedRecord.
    """
    if fmt == RecordFormat.auto:
        fmt = RecordFormat.structured if payload.lstrip().startswith("{") else RecordFormat.positional
    if fmt == RecordFormat.structured:
        return parse_structured(payload)
    return parse_positional(payload)


def parse_record(
    raw: RawRecord,
    fmt: RecordFormat = RecordFormat.auto,
    on_drop: DropHook | None = None,
) -> tuple[str, CabinetEntry] | None:
    """
    Parse one raw record into (machine name, entry).

    Returns None when the record is malformed. The drop is logged and
    reported to on_drop when given.
    """
    try:
        record = decode_record(raw.payload, fmt)
    except MalformedRecord as exc:
        reason = str(exc)
        logger.debug("dropping record %s: %s", raw.key, reason)
        if on_drop is not None:
            on_drop(raw, reason)
        return None
    return record.name, derive_entry(record)
