"""
Snowflake identifiers — time-ordered 64-bit ids rendered as 16 hex chars.

Not distributed, so there is no machine id: the low 22 bits are a single
extended sequence counter and the rest is milliseconds since the epoch.
"""

from __future__ import annotations

import re
import secrets
import threading
import time
from datetime import datetime, timezone
from typing import Union

DEFAULT_EPOCH = 1420070400000  # 2015-01-01T00:00:00Z, milliseconds

PATTERN = re.compile(r"^[0-9a-f]{16}$")

_SEQUENCE_BITS = 22
_SEQUENCE_MASK = (1 << _SEQUENCE_BITS) - 1
_VALUE_MASK = (1 << 64) - 1

Timelike = Union[datetime, int, float, str]


class SnowflakeError(ValueError):
    """Raised for malformed snowflakes or timestamps before the epoch."""


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _to_hex(value: int) -> str:
    if value < 0 or value > _VALUE_MASK:
        raise SnowflakeError(f"value out of range for a snowflake: {value}")
    return format(value, "016x")


def _to_int(value: Union[str, int]) -> int:
    if isinstance(value, int):
        return value
    if not valid(value):
        raise SnowflakeError(f"not a snowflake: {value!r}")
    return int(value, 16)


def _epoch_ms(epoch: Union[int, datetime]) -> int:
    if isinstance(epoch, datetime):
        return int(epoch.timestamp() * 1000)
    return int(epoch)


class Source:
    """Snowflake generator with its own epoch and sequence counter."""

    def __init__(self, epoch: Union[int, datetime] = DEFAULT_EPOCH, sequence: int | None = None):
        self.epoch = _epoch_ms(epoch)
        self._lock = threading.Lock()
        self._seq = 0
        self.set_sequence(secrets.randbits(_SEQUENCE_BITS) if sequence is None else sequence)

    @property
    def sequence(self) -> int:
        return self._seq & _SEQUENCE_MASK

    def set_sequence(self, value: int) -> "Source":
        with self._lock:
            self._seq = value & _SEQUENCE_MASK
        return self

    def reset(self) -> "Source":
        return self.set_sequence(0)

    def epoch_date(self) -> datetime:
        return datetime.fromtimestamp(self.epoch / 1000, tz=timezone.utc)

    def next(self, timestamp: int | None = None) -> str:
        """Generate the next snowflake for *timestamp* (ms, default now)."""
        ts = _now_ms() if timestamp is None else int(timestamp)
        if ts < self.epoch:
            raise SnowflakeError(f"timestamp {ts} is before the epoch {self.epoch}")
        with self._lock:
            self._seq = (self._seq + 1) & _SEQUENCE_MASK
            seq = self._seq
        return _to_hex(((ts - self.epoch) << _SEQUENCE_BITS) | seq)


DEFAULT_SOURCE = Source()


def next_id(timestamp: int | None = None, source: Source = DEFAULT_SOURCE) -> str:
    """Next snowflake from *source* (the shared default source if omitted)."""
    return source.next(timestamp)


def valid(value: str) -> bool:
    return isinstance(value, str) and PATTERN.match(value) is not None


def _bound(timelike: Timelike, source: Source, low_bits: int) -> str:
    if isinstance(timelike, str):
        if not valid(timelike):
            raise SnowflakeError(f"not a snowflake: {timelike!r}")
        return timelike
    if isinstance(timelike, datetime):
        ms = int(timelike.timestamp() * 1000)
    else:
        ms = int(timelike)
    if ms < source.epoch:
        raise SnowflakeError(f"timestamp {ms} is before the epoch {source.epoch}")
    return _to_hex(((ms - source.epoch) << _SEQUENCE_BITS) | low_bits)


def lowerbound(timelike: Timelike, source: Source = DEFAULT_SOURCE) -> str:
    """Smallest snowflake for the given time (a snowflake passes through)."""
    return _bound(timelike, source, 0)


def upperbound(timelike: Timelike, source: Source = DEFAULT_SOURCE) -> str:
    """Largest snowflake for the given time (a snowflake passes through)."""
    return _bound(timelike, source, _SEQUENCE_MASK)


# Field accessors use the classic 12-bit sequence / 10-bit machine split.

def get_sequence(value: Union[str, int]) -> int:
    return _to_int(value) & 0xFFF


def get_machine_id(value: Union[str, int]) -> int:
    return (_to_int(value) & 0x3FF000) >> 12


def get_timestamp(value: Union[str, int], epoch: int = DEFAULT_EPOCH) -> int:
    return (_to_int(value) >> _SEQUENCE_BITS) + epoch


def get_date(value: Union[str, int], epoch: int = DEFAULT_EPOCH) -> datetime:
    return datetime.fromtimestamp(get_timestamp(value, epoch) / 1000, tz=timezone.utc)
