"""Join code and identifier generation."""

import secrets
import string
from uuid import uuid4

ROOM_CODE_LENGTH = 6
ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_room_code() -> str:
    """Return a random 6-character uppercase alphanumeric join code."""
    return "".join(secrets.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))


def normalize_room_code(code: str) -> str:
    """Canonical form used for lookups: codes compare case-insensitively."""
    return code.strip().upper()


def new_id() -> str:
    """Opaque identifier for rooms and participants."""
    return uuid4().hex
