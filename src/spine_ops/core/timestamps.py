"""
UTC timestamp helpers and submission identifiers (stdlib-only).

Time casting normalises every value to an aware UTC ``datetime``; the
helpers here keep that normalisation in one place.

Features:
    - **utc_now():** Timezone-aware UTC datetime
    - **ensure_utc():** Naive values are taken as UTC, aware values converted
    - **to_iso8601_millis():** ``2022-12-22T10:30:24.000Z`` rendering
    - **generate_ulid():** Time-sortable ids for submission log context

Tags:
    timestamps, ulid, utc, datetime, spine-ops, stdlib-only

Doc-Types:
    - API Reference
"""

import random
import time
from datetime import UTC, date, datetime


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(UTC)


def ensure_utc(value: datetime | date) -> datetime:
    """Return ``value`` as an aware UTC datetime.

    Dates become midnight UTC. Naive datetimes are assumed to already be UTC.
    """
    if not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def to_iso8601_millis(dt: datetime) -> str:
    """Render an aware datetime as UTC ISO-8601 with millisecond precision."""
    dt = ensure_utc(dt)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def generate_ulid() -> str:
    """
    Generate a ULID-like identifier.

    Format: 26 characters, base32 encoded, time-sortable.
    """
    timestamp_ms = int(time.time() * 1000)
    timestamp_chars = _encode_base32(timestamp_ms, 10)
    random_part = "".join(random.choices(_ENCODING, k=16))
    return timestamp_chars + random_part


# Crockford base32
_ENCODING = "0123456789ABCDEFGHJKMNPQRSTVWXYZ"
_ENCODING_LEN = len(_ENCODING)


def _encode_base32(value: int, length: int) -> str:
    result = []
    for _ in range(length):
        result.append(_ENCODING[value % _ENCODING_LEN])
        value //= _ENCODING_LEN
    return "".join(reversed(result))
