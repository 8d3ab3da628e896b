"""Tuya protocol message encoding/decoding for 55AA frames (v3.1 to v3.3)."""

from __future__ import annotations

import json
import logging
import struct
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..exceptions import ProtocolError, UnsupportedVersionError
from .constants import (
    CRC32_SIZE,
    HEADER_SIZE,
    MIN_FRAME_SIZE,
    PREFIX_55AA,
    RETCODE_SIZE,
    SEQNO_MASK,
    SUFFIX,
    SUFFIX_SIZE,
    VERSION_33_PREFIX,
    VERSION_HEADER_SIZE,
    Command,
    ProtocolVersion,
    version_header,
)
from .crc import crc32
from .encryption import TuyaCipher, UnpadMode

if TYPE_CHECKING:
    from ..device import Device

_LOGGER = logging.getLogger(__name__)


@dataclass
class TuyaMessage:
    """A decoded response frame."""

    seqno: int
    command: int
    retcode: int | None
    payload: bytes
    data: Any = None


class MessageCodec:
    """Builds request frames for one device and parses its responses."""

    def __init__(
        self,
        device_id: str,
        local_key: bytes | str,
        version: str = ProtocolVersion.V33,
        unpad_mode: UnpadMode = UnpadMode.LENIENT,
    ) -> None:
        try:
            self._version = ProtocolVersion(version)
        except ValueError as err:
            raise UnsupportedVersionError(
                f"Protocol version {version!r} is not supported (only 3.1-3.3 framing)"
            ) from err
        self._device_id = device_id
        self._cipher = TuyaCipher(local_key, unpad_mode)
        self._version_header = version_header(self._version)

    @classmethod
    def for_device(cls, device: Device, unpad_mode: UnpadMode = UnpadMode.LENIENT) -> MessageCodec:
        return cls(device.dev_id, device.local_key, device.ver, unpad_mode)

    @property
    def version(self) -> ProtocolVersion:
        """Return the protocol version."""
        return self._version

    def _payload(self, dps: dict[str, Any] | None = None) -> bytes:
        obj: dict[str, Any] = {
            "devId": self._device_id,
            "uid": "",
            "t": int(time.time()),
        }
        if dps is not None:
            obj["dps"] = dps
        return json.dumps(obj, separators=(",", ":"), ensure_ascii=False).encode("utf-8")

    def encode_control(self, dps: dict[str, Any], seqno: int) -> bytes:
        """Encode a CONTROL frame setting the given data points.

        The version header goes in front of the ciphertext in the clear.
        """
        encrypted = self._cipher.encrypt_ecb(self._payload(dps))
        return self.pack(Command.CONTROL, self._version_header + encrypted, seqno)

    def encode_query(self, seqno: int) -> bytes:
        """Encode a DP_QUERY frame (ciphertext only, no version header)."""
        encrypted = self._cipher.encrypt_ecb(self._payload())
        return self.pack(Command.DP_QUERY, encrypted, seqno)

    @staticmethod
    def pack(command: int, payload: bytes, seqno: int) -> bytes:
        """Wrap a payload in the 55AA header, CRC32 and suffix."""
        total_len = len(payload) + CRC32_SIZE + SUFFIX_SIZE
        body = PREFIX_55AA + struct.pack(">III", seqno & SEQNO_MASK, command, total_len) + payload
        return body + struct.pack(">I", crc32(body)) + SUFFIX

    def decode(self, data: bytes) -> TuyaMessage:
        """Decode a response frame and parse its JSON payload."""
        if len(data) < MIN_FRAME_SIZE:
            raise ProtocolError(f"Frame too short ({len(data)} bytes, need {MIN_FRAME_SIZE})")

        _prefix, seqno, command, _total_len = struct.unpack(">IIII", data[:HEADER_SIZE])

        payload_end = len(data) - CRC32_SIZE - SUFFIX_SIZE
        if data[-SUFFIX_SIZE:] == SUFFIX:
            expected_crc = struct.unpack(">I", data[payload_end : payload_end + CRC32_SIZE])[0]
            actual_crc = crc32(data, 0, payload_end)
            if expected_crc != actual_crc:
                _LOGGER.debug("CRC32 mismatch: expected %08x, got %08x", expected_crc, actual_crc)
        else:
            _LOGGER.debug("Frame missing suffix, parsing best-effort")

        encrypted = data[HEADER_SIZE:payload_end]

        retcode = None
        if len(encrypted) >= RETCODE_SIZE and encrypted[:RETCODE_SIZE] == b"\x00" * RETCODE_SIZE:
            retcode = 0
            encrypted = encrypted[RETCODE_SIZE:]

        if len(encrypted) >= VERSION_HEADER_SIZE and encrypted[:3] == VERSION_33_PREFIX:
            encrypted = encrypted[VERSION_HEADER_SIZE:]

        payload = self._cipher.decrypt_ecb(encrypted)
        try:
            parsed = json.loads(payload.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as err:
            raise ProtocolError(f"Failed to parse JSON payload: {err}") from err

        return TuyaMessage(seqno=seqno, command=command, retcode=retcode, payload=payload, data=parsed)


def build_control_frame(
    device: Device, dps: dict[str, Any], seqno: int, unpad_mode: UnpadMode = UnpadMode.LENIENT
) -> bytes:
    """Build a CONTROL frame for a device."""
    return MessageCodec.for_device(device, unpad_mode).encode_control(dps, seqno)


def build_query_frame(device: Device, seqno: int, unpad_mode: UnpadMode = UnpadMode.LENIENT) -> bytes:
    """Build a DP_QUERY frame for a device."""
    return MessageCodec.for_device(device, unpad_mode).encode_query(seqno)


def parse_response_frame(device: Device, frame: bytes, unpad_mode: UnpadMode = UnpadMode.LENIENT) -> Any:
    """Decode a response frame from a device and return its JSON value."""
    return MessageCodec.for_device(device, unpad_mode).decode(frame).data
