"""Tuya local protocol constants."""

from __future__ import annotations

from enum import IntEnum, StrEnum


# Packet framing
PREFIX_55AA = b"\x00\x00\x55\xaa"
SUFFIX = b"\x00\x00\xaa\x55"

# Header: prefix(4) + sequence(4) + command(4) + length(4) = 16 bytes
HEADER_SIZE = 16
SUFFIX_SIZE = 4
CRC32_SIZE = 4
RETCODE_SIZE = 4

# Smallest frame worth parsing: header + crc + suffix
MIN_FRAME_SIZE = HEADER_SIZE + CRC32_SIZE + SUFFIX_SIZE

# Version header: version string zero-filled to 15 bytes
VERSION_HEADER_SIZE = 15
VERSION_33_PREFIX = b"3.3"

AES_BLOCK_SIZE = 16
LOCAL_KEY_SIZE = 16

# Sequence numbers are unsigned 32-bit on the wire
SEQNO_MASK = 0xFFFFFFFF


class ProtocolVersion(StrEnum):
    """Protocol versions using the plaintext-header 55AA framing."""

    V31 = "3.1"
    V32 = "3.2"
    V33 = "3.3"


class Command(IntEnum):
    """Tuya protocol command IDs."""

    CONTROL = 7
    DP_QUERY = 10


def version_header(version: str) -> bytes:
    """Return the 15-byte zero-filled version header for a version string."""
    return version.encode("ascii").ljust(VERSION_HEADER_SIZE, b"\x00")
