from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

_BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def now_utc() -> datetime:
    return datetime.now(UTC)


def make_id(prefix: str) -> str:
    return f"{prefix}_{uuid4().hex[:12]}"


def to_base36(value: int) -> str:
    if value < 0:
        return "-" + to_base36(-value)
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def make_run_id(seed: int) -> str:
    stamp = to_base36(int(seed) % 2**32)
    seed_part = "".join(ch for ch in str(seed) if ch.isascii() and ch.isalnum())[:6].upper() or "201"
    return f"RUN-{stamp}-{seed_part}"
