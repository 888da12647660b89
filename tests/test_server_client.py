from __future__ import annotations

import json
import threading
from http.client import HTTPConnection
from pathlib import Path
from typing import Iterator
from urllib.error import HTTPError
from urllib.request import Request, urlopen

import pytest

from labmap.core.errors import LabmapClientError
from labmap.core.types import RawRecord
from labmap.refresh.scheduler import RefreshScheduler
from labmap.registry.store import Registry
from labmap.service.client import LabmapClient
from labmap.service.query import QueryService
from labmap.service.server import LabmapHttpServer, ServerConfig
from labmap.sources import StaticSource

LAB = (
    "lin302 lnx3 pos2 com1-yes com2-no pdu5",
    "lin401 lnx4 pos1 com1-yes com2-yes pdu3 kvm2",
    json.dumps(
        {
            "name": "bench 1",
            "cabinet": 9,
            "position": 7,
            "com1": {"enabled": True, "speed": 115200, "bits": 8, "stopbits": 1, "parity": "n", "device": "/dev/ttyUSB0"},
            "pdu": 1,
        }
    ),
)


@pytest.fixture
def server(tmp_path: Path) -> Iterator[LabmapHttpServer]:
    registry = Registry()
    source = StaticSource(records=tuple(RawRecord(key=str(i), payload=p) for i, p in enumerate(LAB)))
    RefreshScheduler(source, registry).run_cycle()

    srv = LabmapHttpServer(
        ServerConfig(host="127.0.0.1", port=0, audit_path=tmp_path / "audit.jsonl"),
        QueryService(registry),
    )
    thread = threading.Thread(target=srv.serve_forever, daemon=True)
    thread.start()
    try:
        yield srv
    finally:
        srv.shutdown()
        srv.server_close()
        thread.join(timeout=5.0)


def base_url(srv: LabmapHttpServer) -> str:
    host, port = srv.server_address[:2]
    return f"http://{host}:{port}"


def get(url: str) -> tuple[int, dict[str, str], str]:
    try:
        with urlopen(Request(url), timeout=5) as resp:
            return resp.status, dict(resp.headers), resp.read().decode("utf-8")
    except HTTPError as exc:
        return exc.code, dict(exc.headers), exc.read().decode("utf-8")


def test_machines_endpoint(server: LabmapHttpServer):
    status, headers, body = get(base_url(server) + "/v1/machines/")

    assert status == 200
    assert headers["Content-Type"] == "application/json"
    assert headers["Cache-Control"] == "no-cache"
    assert json.loads(body) == {"status": "Success", "machines": ["lin401", "lin302", "bench 1"]}
    assert body.startswith('{\n    "status"')


def test_cabinet_not_found_is_delivered_as_failed_envelope(server: LabmapHttpServer):
    status, _, body = get(base_url(server) + "/v1/cabinet/linXXX")

    assert status == 200
    assert json.loads(body) == {"status": "Failed", "error": "Not Found"}


def test_unknown_route_is_404(server: LabmapHttpServer):
    status, _, body = get(base_url(server) + "/v2/whatever")

    assert status == 404
    assert json.loads(body)["status"] == "Failed"


def test_post_is_rejected(server: LabmapHttpServer):
    req = Request(base_url(server) + "/v1/machines/", data=b"{}", method="POST")

    with pytest.raises(HTTPError) as excinfo:
        urlopen(req, timeout=5)

    assert excinfo.value.code == 405


def test_client_machines_and_cabinets(server: LabmapHttpServer):
    client = LabmapClient(base_url=base_url(server))

    assert client.machines() == ["lin401", "lin302", "bench 1"]

    cabinets = client.cabinets()
    assert set(cabinets) == {"lin401", "lin302", "bench 1"}
    assert cabinets["lin401"].kvm == "lnx2-kvm"


def test_client_cabinet_quotes_machine_name(server: LabmapHttpServer):
    entry = LabmapClient(base_url=base_url(server)).cabinet("bench 1")

    assert entry.com1 == "telnet lnx9-debug 10071"
    assert entry.serial1 == "/dev/ttyUSB0"
    assert entry.params1 == "115200,8,1,n:/dev/ttyUSB0"
    assert entry.params2 == "no"


def test_client_raises_on_failed_envelope(server: LabmapHttpServer):
    client = LabmapClient(base_url=base_url(server))

    with pytest.raises(LabmapClientError, match="Not Found"):
        client.cabinet("linXXX")


def test_client_raises_on_unreachable_server():
    client = LabmapClient(base_url="http://127.0.0.1:1", timeout_seconds=1)

    with pytest.raises(LabmapClientError, match="get machines"):
        client.machines()


def test_requests_are_audited(server: LabmapHttpServer, tmp_path: Path):
    get(base_url(server) + "/v1/cabinet/linXXX")

    lines = (tmp_path / "audit.jsonl").read_text(encoding="utf-8").splitlines()
    event = json.loads(lines[-1])

    assert event["path"] == "/v1/cabinet/linXXX"
    assert event["status"] == 200
    assert event["outcome"] == "Failed"
    assert event["error"] == "Not Found"


def test_post_with_invalid_content_length_gets_405_envelope(server: LabmapHttpServer):
    host, port = server.server_address[:2]
    conn = HTTPConnection(host, port, timeout=5)
    try:
        conn.putrequest("POST", "/v1/machines/")
        conn.putheader("Content-Length", "abc")
        conn.endheaders()
        resp = conn.getresponse()
        body = resp.read().decode("utf-8")
    finally:
        conn.close()

    assert resp.status == 405
    assert json.loads(body) == {"status": "Failed", "error": "Method Not Allowed"}
