from __future__ import annotations

import re
from typing import NewType
from uuid import UUID

AccountId = NewType("AccountId", str)
MessageId = NewType("MessageId", UUID)
RoomKey = NewType("RoomKey", str)

_ACCOUNT_ID_RE = re.compile(r"[A-Za-z0-9_-]{1,64}")


def is_valid_account_id(value: object) -> bool:
    return isinstance(value, str) and _ACCOUNT_ID_RE.fullmatch(value) is not None


def room_key(a: str, b: str) -> RoomKey:
    """Order-independent key for the two-party room of ``a`` and ``b``."""
    lo, hi = sorted((a, b))
    return RoomKey(f"chat_{lo}_{hi}")
