# party_trivia/events.py
"""Server-sent event envelopes shared by the stream route and the client."""
import json
from typing import Optional

CONNECTED = "connected"
UPDATE = "update"
ERROR = "error"


def connected_event() -> dict:
    return {"type": CONNECTED}


def update_event(room_doc: dict) -> dict:
    return {"type": UPDATE, "room": room_doc}


def error_event(message: str) -> dict:
    return {"type": ERROR, "error": message}


def encode_sse(envelope: dict) -> str:
    """Frame one envelope as an SSE `data:` message."""
    return f"data: {json.dumps(envelope, separators=(',', ':'))}\n\n"


def decode_sse_line(line: str) -> Optional[dict]:
    """
    Parse one line of an event stream. Returns the envelope for `data:` lines
    and None for comments, blank separators and other fields.
    """
    if not line.startswith("data:"):
        return None
    payload = line[len("data:"):].strip()
    if not payload:
        return None
    envelope = json.loads(payload)
    if not isinstance(envelope, dict) or "type" not in envelope:
        raise ValueError(f"Malformed event envelope: {payload[:80]}")
    return envelope
