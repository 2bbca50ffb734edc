from __future__ import annotations

import json
from datetime import datetime
from typing import Any

ENVELOPE_VERSION = 1


class _Encoder(json.JSONEncoder):
    def default(self, o: object) -> Any:
        if isinstance(o, datetime):
            return o.isoformat()
        return super().default(o)


def serialize_event(event_type: str, payload: dict[str, Any]) -> str:
    envelope = {"v": ENVELOPE_VERSION, "event": event_type, "data": payload}
    return json.dumps(envelope, cls=_Encoder, separators=(",", ":"))


def deserialize_event(raw: str | bytes) -> tuple[str, dict[str, Any]]:
    """Decode an envelope. Raises ValueError on foreign versions or a non-object body."""
    envelope = json.loads(raw)
    if not isinstance(envelope, dict) or envelope.get("v") != ENVELOPE_VERSION:
        raise ValueError("unsupported envelope")
    data = envelope["data"]
    if not isinstance(data, dict):
        raise ValueError("envelope data must be an object")
    return envelope["event"], data
