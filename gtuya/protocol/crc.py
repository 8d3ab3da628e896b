"""Table-driven CRC-32 (IEEE 802.3) used for 55AA frame integrity."""

from __future__ import annotations

CRC32_POLYNOMIAL = 0xEDB88320


def _build_table() -> tuple[int, ...]:
    table = []
    for i in range(256):
        c = i
        for _ in range(8):
            c = (CRC32_POLYNOMIAL ^ (c >> 1)) if c & 1 else (c >> 1)
        table.append(c)
    return tuple(table)


CRC32_TABLE = _build_table()


def crc32(data: bytes, offset: int = 0, length: int | None = None) -> int:
    """Compute CRC-32 over data[offset:offset + length]."""
    if length is None:
        length = len(data) - offset
    crc = 0xFFFFFFFF
    for byte in data[offset : offset + length]:
        crc = CRC32_TABLE[(crc ^ byte) & 0xFF] ^ (crc >> 8)
    return crc ^ 0xFFFFFFFF
