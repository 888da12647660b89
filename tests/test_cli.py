from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterator

import pytest
from click.testing import CliRunner

from labmap.cli import cli
from labmap.core.logs import LOGGER_NAME


@pytest.fixture(autouse=True)
def reset_labmap_logger() -> Iterator[None]:
    """The CLI attaches a handler to the runner stderr, drop it after each test."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


def test_dump_prints_cabinets_reply(tmp_path: Path):
    lab = tmp_path / "lab.map"
    lab.write_text(
        "lin302 lnx3 pos2 com1-yes com2-no pdu5\nbroken line\nlin401 lnx4 pos1 com1-no com2-yes pdu3 kvm2\n",
        encoding="utf-8",
    )

    result = CliRunner().invoke(cli, ["--log-level", "ERROR", "dump", "--map", str(lab)])

    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["status"] == "Success"
    assert list(payload["cabinets"]) == ["lin401", "lin302"]
    assert payload["cabinets"]["lin401"]["com2"] == "telnet lnx4-debug 10012"


def test_dump_reads_structured_json_file(tmp_path: Path):
    lab = tmp_path / "lab.json"
    lab.write_text(
        json.dumps({"labmap": [{"name": "m1", "cabinet": 2, "position": 5, "pdu": 8}]}),
        encoding="utf-8",
    )

    result = CliRunner().invoke(cli, ["--log-level", "ERROR", "dump", "--map", str(lab)])

    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["cabinets"]["m1"]["pdu1"] == "lnx2-pdu1"


def test_dump_missing_map_fails(tmp_path: Path):
    result = CliRunner().invoke(cli, ["--log-level", "ERROR", "dump", "--map", str(tmp_path / "no_file")])

    assert result.exit_code != 0
    assert "initial load failed" in result.output


def test_machines_against_unreachable_server_fails():
    result = CliRunner().invoke(
        cli, ["--log-level", "ERROR", "machines", "--url", "http://127.0.0.1:1", "--timeout", "1"]
    )

    assert result.exit_code == 1
