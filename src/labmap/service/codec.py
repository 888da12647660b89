from __future__ import annotations

import json
from typing import Any

from labmap.core.serialization import entries_to_json_dict, entry_from_json_dict, entry_to_json_dict
from labmap.service.query import Reply

CABINET_BASE = "/v1/cabinet/"
MACHINE_BASE = "/v1/machines/"

JSON_INDENT = 4


class ReplyDecodeError(ValueError):
    """Raised when a reply body does not have the envelope shape."""


def _require_dict(value: Any, name: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ReplyDecodeError(f"{name} must be an object")
    return value


def encode_reply(reply: Reply) -> dict[str, Any]:
    """
    Convert a Reply into its JSON shape.

    Unset members are left out. An empty machines list or cabinets mapping is
    kept, it is a valid answer.
    """
    payload: dict[str, Any] = {"status": reply.status}
    if reply.error:
        payload["error"] = reply.error
    if reply.cabinet is not None:
        payload["cabinet"] = entry_to_json_dict(reply.cabinet)
    if reply.cabinets is not None:
        payload["cabinets"] = entries_to_json_dict(reply.cabinets)
    if reply.machines is not None:
        payload["machines"] = list(reply.machines)
    return payload


def reply_to_bytes(reply: Reply) -> bytes:
    """Pretty printed UTF-8 JSON body."""
    return json.dumps(encode_reply(reply), indent=JSON_INDENT).encode("utf-8")


def decode_reply(payload: Any) -> Reply:
    obj = _require_dict(payload, "reply")

    status = obj.get("status")
    if not isinstance(status, str) or not status:
        raise ReplyDecodeError("status must be a non empty string")

    error = obj.get("error")
    if error is not None and not isinstance(error, str):
        raise ReplyDecodeError("error must be a string")

    try:
        cabinet = None
        if obj.get("cabinet") is not None:
            cabinet = entry_from_json_dict(_require_dict(obj["cabinet"], "cabinet"))

        cabinets = None
        if obj.get("cabinets") is not None:
            raw = _require_dict(obj["cabinets"], "cabinets")
            cabinets = {
                str(name): entry_from_json_dict(_require_dict(value, f"cabinets.{name}"))
                for name, value in raw.items()
            }
    except ReplyDecodeError:
        raise
    except ValueError as exc:
        raise ReplyDecodeError(str(exc)) from exc

    machines = None
    if obj.get("machines") is not None:
        raw_machines = obj["machines"]
        if not isinstance(raw_machines, list):
            raise ReplyDecodeError("machines must be a list")
        machines = [str(m) for m in raw_machines]

    return Reply(
        status=status,
        error=error or None,
        cabinet=cabinet,
        cabinets=cabinets,
        machines=machines,
    )
