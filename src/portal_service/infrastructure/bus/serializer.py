from __future__ import annotations

import json
from datetime import date, datetime
from typing import Any
from uuid import UUID


class _Encoder(json.JSONEncoder):
    def default(self, o: object) -> Any:
        if isinstance(o, UUID):
            return str(o)
        if isinstance(o, (datetime, date)):
            return o.isoformat()
        if isinstance(o, (set, frozenset)):
            return sorted(o)
        return super().default(o)


def dumps(value: Any) -> str:
    return json.dumps(value, cls=_Encoder)


def loads(raw: str | bytes) -> Any:
    return json.loads(raw)


def serialize_event(event: dict[str, Any]) -> str:
    if "type" not in event:
        raise ValueError("event has no 'type'")
    return dumps(event)


def deserialize_event(raw: str | bytes) -> dict[str, Any]:
    data = loads(raw)
    if not isinstance(data, dict) or "type" not in data:
        raise ValueError("not an event envelope")
    return data
