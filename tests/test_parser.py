from __future__ import annotations

import json

import pytest

from labmap.core.errors import MalformedRecord
from labmap.core.types import RawRecord, RecordFormat
from labmap.parser.records import decode_record, derive_entry, parse_positional, parse_record


def raw(payload: str, key: str = "test:1") -> RawRecord:
    return RawRecord(key=key, payload=payload)


def structured(**overrides) -> str:
    obj = {
        "name": "lin302",
        "cabinet": 3,
        "position": 2,
        "com1": {
            "enabled": True,
            "speed": 9600,
            "bits": 8,
            "stopbits": 1,
            "parity": "n",
            "device": "/dev/ttyS0",
        },
        "com2": {"enabled": False},
        "pdu": 5,
    }
    obj.update(overrides)
    return json.dumps(obj)


def test_structured_record_derives_console_and_power_names():
    """
    A machine in cabinet 3, slot 2, COM1 wired at 9600, outlet 5, no KVM.
    """
    name, entry = parse_record(raw(structured()))

    assert name == "lin302"
    assert entry.vtm0 == "lin302-vtm0"
    assert entry.vtm1 == "lin302-vtm1"
    assert entry.cabinet_id == "3"
    assert entry.position == "2"
    assert entry.com1 == "telnet lnx3-debug 10021"
    assert entry.serial1 == "/dev/ttyS0"
    assert entry.params1 == "9600,8,1,n:/dev/ttyS0"
    assert entry.com2 is None
    assert entry.serial2 is None
    assert entry.params2 == "no"
    assert entry.outlet == "5"
    assert entry.pdu0 == "lnx3-pdu0"
    assert entry.pdu1 == "lnx3-pdu1"
    assert entry.kvm is None


def test_structured_record_with_kvm():
    _, entry = parse_record(raw(structured(kvm=7)))

    assert entry.kvm == "lnx7-kvm"


def test_structured_record_without_ports_has_both_disabled():
    payload = json.dumps({"name": "x1", "cabinet": 1, "position": 4, "pdu": 2})

    _, entry = parse_record(raw(payload))

    assert entry.com1 is None
    assert entry.com2 is None
    assert entry.params1 == "no"
    assert entry.params2 == "no"


def test_positional_line_with_kvm():
    name, entry = parse_record(raw("lin401 lnx4 pos1 com1-yes com2-yes pdu3 kvm2"))

    assert name == "lin401"
    assert entry.cabinet_id == "4"
    assert entry.position == "1"
    assert entry.com1 == "telnet lnx4-debug 10011"
    assert entry.com2 == "telnet lnx4-debug 10012"
    assert entry.outlet == "3"
    assert entry.pdu0 == "lnx4-pdu0"
    assert entry.pdu1 == "lnx4-pdu1"
    assert entry.kvm == "lnx2-kvm"


def test_positional_cabinet_prefix_is_optional():
    record = parse_positional("m1 12 pos3 com1-no com2-yes pdu8")

    assert record.cabinet_id == "12"
    assert not record.com1.enabled
    assert record.com2.enabled


def test_positional_com2_reads_its_own_token():
    _, entry = parse_record(raw("m1 lnx5 pos2 com1-no com2-yes pdu1"))

    assert entry.com1 is None
    assert entry.com2 == "telnet lnx5-debug 10022"


def test_positional_enabled_port_has_no_line_settings():
    _, entry = parse_record(raw("m1 lnx5 pos2 com1-yes com2-no pdu1"))

    assert entry.serial1 is None
    assert entry.params1 is None
    assert entry.params2 == "no"


@pytest.mark.parametrize(
    "payload",
    [
        "",
        "m1 lnx5 pos2 com1-yes com2-no",
        "m1 lnx5 pos2 com1-yes com2-no pdu1 kvm1 extra",
        "m1 lnx5 slot2 com1-yes com2-no pdu1",
        "m1 lnx5 pos2 com1-maybe com2-no pdu1",
        "m1 lnx5 pos2 com2-yes com1-no pdu1",
        "m1 lnx pos2 com1-yes com2-no pdu1",
        "m1 lnx5 pos2 com1-yes com2-no outlet1",
        "m1 lnx5 pos2 com1-yes com2-no pdu1 kvm",
    ],
)
def test_malformed_positional_lines_are_dropped(payload: str):
    drops: list[str] = []

    result = parse_record(raw(payload), RecordFormat.positional, on_drop=lambda r, reason: drops.append(reason))

    assert result is None
    assert len(drops) == 1


@pytest.mark.parametrize(
    "payload",
    [
        "{not json",
        "[1, 2]",
        json.dumps({"cabinet": 3, "position": 2, "pdu": 5}),
        structured(cabinet="three"),
        structured(position=True),
        structured(pdu=None),
        structured(com1={"enabled": "yes"}),
        structured(com1={"enabled": True, "speed": 9600}),
        structured(com2=["enabled"]),
    ],
)
def test_malformed_structured_records_are_dropped(payload: str):
    drops: list[RawRecord] = []

    result = parse_record(raw(payload), RecordFormat.structured, on_drop=lambda r, reason: drops.append(r))

    assert result is None
    assert [r.key for r in drops] == ["test:1"]


def test_numeric_strings_keep_their_source_formatting():
    _, entry = parse_record(raw(structured(cabinet="03", pdu="5")))

    assert entry.cabinet_id == "03"
    assert entry.outlet == "5"
    assert entry.pdu0 == "lnx03-pdu0"
    assert entry.com1 == "telnet lnx03-debug 10021"


@pytest.mark.parametrize("value", ["\u00b2", "\u0663", "1\u00b2", "-3", " ", -1])
def test_non_ascii_or_negative_numbers_are_dropped(value):
    drops: list[str] = []

    result = parse_record(raw(structured(cabinet=value)), on_drop=lambda r, reason: drops.append(reason))

    assert result is None
    assert drops == ["cabinet must be an integer"]


def test_deeply_nested_json_is_dropped():
    payload = "[" * 100000 + "]" * 100000

    assert parse_record(raw(payload), RecordFormat.structured) is None


def test_auto_format_picks_front_end_from_payload():
    assert decode_record(structured()).name == "lin302"
    assert decode_record("m1 lnx5 pos2 com1-yes com2-no pdu1").name == "m1"


def test_forced_format_does_not_fall_back():
    with pytest.raises(MalformedRecord):
        decode_record("m1 lnx5 pos2 com1-yes com2-no pdu1", RecordFormat.structured)


def test_both_formats_derive_the_same_entry():
    from_line = derive_entry(parse_positional("lin302 lnx3 pos2 com1-yes com2-no pdu5 kvm7"))
    from_json = derive_entry(
        decode_record(json.dumps({"name": "lin302", "cabinet": 3, "position": 2,
                                  "com1": {"enabled": True}, "pdu": 5, "kvm": 7}))
    )

    assert from_line == from_json
