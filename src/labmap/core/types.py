"""
Core types.

This file defines the shared data structures used across labmap.

Important design choice
Both raw record formats decode into one canonical intermediate, CabinetRecord.
All naming rules live in the parser and run on CabinetRecord only, so the two
formats can never drift apart.

CabinetEntry is what callers see. It is immutable because snapshots are
replaced wholesale and never edited in place.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Optional


class RecordFormat(StrEnum):
    """
    Raw record formats.

    positional
      Space separated tokens, one machine per line.
      lin302 lnx3 pos2 com1-yes com2-no pdu5 kvm7

    structured
      A JSON object with name, cabinet, position, com1, com2, pdu, kvm.

    auto
      Pick structured when the payload looks like a JSON object,
      positional otherwise.
    """

    positional = "positional"
    structured = "structured"
    auto = "auto"


@dataclass(frozen=True)
class RawRecord:
    """
    One raw record as handed out by a config source.

    key identifies where the record came from, for logs.
    payload is opaque to the source.
    """

    key: str
    payload: str


@dataclass(frozen=True)
class SerialSettings:
    """Line settings for a serial console port."""

    speed: int
    bits: int
    stopbits: int
    parity: str
    device: str


@dataclass(frozen=True)
class PortConfig:
    """
    One console port.

    settings is only known for structured records. Positional records only
    say whether the port is wired.
    """

    enabled: bool
    settings: Optional[SerialSettings] = None


@dataclass(frozen=True)
class CabinetRecord:
    """
    Canonical intermediate produced by both parser front ends.

    cabinet_id, position and outlet are kept as strings to preserve the
    formatting of the source.
    kvm is None when the source does not name a KVM.
    """

    name: str
    cabinet_id: str
    position: str
    com1: PortConfig
    com2: PortConfig
    outlet: str
    kvm: Optional[str] = None


@dataclass(frozen=True)
class CabinetEntry:
    """
    The full topology record for one machine.

    com1 and com2 are console access commands, only set for wired ports.
    serial and params describe the port line settings when they are known.
    params is the literal "no" for a port that is not wired.
    kvm is only set when the source names a KVM.
    """

    vtm0: str
    vtm1: str
    cabinet_id: str
    position: str
    outlet: str
    pdu0: str
    pdu1: str
    com1: Optional[str] = None
    serial1: Optional[str] = None
    params1: Optional[str] = None
    com2: Optional[str] = None
    serial2: Optional[str] = None
    params2: Optional[str] = None
    kvm: Optional[str] = None
