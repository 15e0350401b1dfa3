"""Time-ordered identifiers for webhooks and captured requests.

Identifiers use the UUIDv7 layout: a 48-bit unix millisecond timestamp, a
12-bit counter and 62 random bits. Their canonical lowercase string form
sorts lexicographically in the same order as the underlying integers, so
``id > last_id`` comparisons in SQL follow creation order.

Within a process the sequence is strictly increasing even if the wall clock
steps backwards. Across processes there is no shared counter; the random
tail keeps ids unique and ordering is approximate to the millisecond.
"""

import secrets
import threading
import time
import uuid

_MAX_COUNTER = 0xFFF

_lock = threading.Lock()
_last_ms = 0
_counter = 0


def _next_timestamp_and_counter() -> tuple[int, int]:
    global _last_ms, _counter

    with _lock:
        now_ms = time.time_ns() // 1_000_000
        if now_ms > _last_ms:
            _last_ms = now_ms
            # Start low so a burst in the same millisecond has room to count.
            _counter = secrets.randbits(9)
        else:
            _counter += 1
            if _counter > _MAX_COUNTER:
                _last_ms += 1
                _counter = 0
        return _last_ms, _counter


def new_id() -> str:
    """Return a new UUIDv7 string."""
    timestamp_ms, counter = _next_timestamp_and_counter()
    value = (timestamp_ms & 0xFFFF_FFFF_FFFF) << 80
    value |= 0x7 << 76
    value |= counter << 64
    value |= 0b10 << 62
    value |= secrets.randbits(62)
    return str(uuid.UUID(int=value))


def is_valid_id(identifier: str) -> bool:
    """Return True if ``identifier`` is a canonical UUIDv7 string."""
    try:
        parsed = uuid.UUID(identifier)
    except (ValueError, AttributeError, TypeError):
        return False
    return parsed.version == 7 and str(parsed) == identifier
