"""Tuya local protocol implementation (55AA framing, v3.1 to v3.3)."""

from .connection import FrameAccumulator, ReadState, TuyaTransport
from .constants import Command, ProtocolVersion
from .crc import crc32
from .encryption import TuyaCipher, UnpadMode
from .messages import (
    MessageCodec,
    TuyaMessage,
    build_control_frame,
    build_query_frame,
    parse_response_frame,
)

__all__ = [
    "Command",
    "FrameAccumulator",
    "MessageCodec",
    "ProtocolVersion",
    "ReadState",
    "TuyaCipher",
    "TuyaMessage",
    "TuyaTransport",
    "UnpadMode",
    "build_control_frame",
    "build_query_frame",
    "crc32",
    "parse_response_frame",
]
