# party_trivia/ids.py
import base64
import binascii
import json
import random
import string
import uuid
from typing import Optional

ROOM_CODE_LENGTH = 5
ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits


def new_room_code(length: int = ROOM_CODE_LENGTH) -> str:
    return "".join(random.choices(ROOM_CODE_ALPHABET, k=length))


def new_player_id(prefix: str = "player") -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def normalize_code(code: str) -> str:
    """Room codes are case-insensitive; the stored form is upper case."""
    return (code or "").strip().upper()


def encode_room_config(config: dict) -> str:
    """Pack a room config into the URL-safe token carried by share links."""
    raw = json.dumps(config, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii")


def decode_room_config(token: str) -> Optional[dict]:
    """Inverse of encode_room_config. Returns None for anything unreadable."""
    if not token:
        return None
    try:
        padded = token + "=" * (-len(token) % 4)
        data = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")))
    except (binascii.Error, ValueError, UnicodeError):
        return None
    if not isinstance(data, dict) or not data.get("code"):
        return None
    return data
