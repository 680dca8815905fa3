"""CRC-32 over target memory, as used by the qCRC packet."""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from typing import Protocol

from .errors import ProbeError

_POLY = 0x04C11DB7
_MASK = 0xFFFFFFFF
_CHUNK = 0x1000
_KEEPALIVE_INTERVAL = 1.0


def _make_table() -> tuple[int, ...]:
    table = []
    for byte in range(256):
        crc = byte << 24
        for _ in range(8):
            crc = ((crc << 1) ^ _POLY) if crc & 0x80000000 else (crc << 1)
        table.append(crc & _MASK)
    return tuple(table)


_TABLE = _make_table()


class MemoryReader(Protocol):
    def mem_read(self, addr: int, length: int) -> bytes: ...


def crc32_update(crc: int, data: Iterable[int]) -> int:
    """Feed *data* into a running MSB-first CRC-32 and return the new value."""
    crc &= _MASK
    for byte in data:
        crc = ((crc << 8) & _MASK) ^ _TABLE[((crc >> 24) ^ byte) & 0xFF]
    return crc


def generic_crc32(
    target: MemoryReader,
    base: int,
    length: int,
    keepalive: Callable[[], None] | None = None,
) -> int:
    """Compute the CRC-32 of *length* bytes of target memory at *base*.

    *keepalive* is called whenever more than a second passes between chunks,
    so a waiting debugger does not time out. A failed read raises ProbeError.
    """
    crc = _MASK
    last = time.monotonic()
    while length:
        now = time.monotonic()
        if now > last + _KEEPALIVE_INTERVAL:
            last = now
            if keepalive is not None:
                keepalive()
        chunk = min(_CHUNK, length)
        try:
            data = target.mem_read(base, chunk)
        except ProbeError as exc:
            raise ProbeError(
                f"generic_crc32 error around address 0x{base:08x}"
            ) from exc
        crc = crc32_update(crc, data[:chunk])
        base += chunk
        length -= chunk
    return crc