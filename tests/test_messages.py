"""Tests for Tuya frame encoding/decoding."""

from __future__ import annotations

import binascii
import json
import struct
from unittest.mock import patch

import pytest

from gtuya.device import Device
from gtuya.exceptions import CryptoError, ProtocolError, UnsupportedVersionError
from gtuya.protocol.constants import (
    HEADER_SIZE,
    PREFIX_55AA,
    SUFFIX,
    Command,
    ProtocolVersion,
)
from gtuya.protocol.encryption import TuyaCipher, UnpadMode
from gtuya.protocol.messages import (
    MessageCodec,
    build_control_frame,
    build_query_frame,
    parse_response_frame,
)


def _split(frame: bytes) -> tuple[tuple[int, int, int, int], bytes, int]:
    header = struct.unpack(">IIII", frame[:HEADER_SIZE])
    payload = frame[HEADER_SIZE:-8]
    crc = struct.unpack(">I", frame[-8:-4])[0]
    return header, payload, crc


class TestControlFrame:
    """CONTROL frames carry a clear version header before the ciphertext."""

    def test_layout(self, device: Device) -> None:
        frame = build_control_frame(device, {"20": True}, seqno=5)
        (prefix, seqno, command, length), payload, crc = _split(frame)

        assert frame[:4] == PREFIX_55AA
        assert frame[-4:] == SUFFIX
        assert prefix == 0x000055AA
        assert seqno == 5
        assert command == Command.CONTROL == 0x07
        assert length == len(payload) + 8
        assert crc == binascii.crc32(frame[: HEADER_SIZE + len(payload)]) & 0xFFFFFFFF

    def test_version_header_and_payload(self, device: Device, local_key: str, device_id: str) -> None:
        with patch("gtuya.protocol.messages.time.time", return_value=1700000000.7):
            frame = build_control_frame(device, {"22": 512}, seqno=1)
        _, payload, _ = _split(frame)

        assert payload[:15] == b"3.3" + b"\x00" * 12
        plaintext = TuyaCipher(local_key).decrypt_ecb(payload[15:])
        assert json.loads(plaintext) == {
            "devId": device_id,
            "uid": "",
            "t": 1700000000,
            "dps": {"22": 512},
        }

    def test_version_header_follows_device(self, device_record: dict) -> None:
        device = Device.from_record({**device_record, "ver": "3.1"})
        _, payload, _ = _split(build_control_frame(device, {"20": False}, seqno=1))
        assert payload[:15] == b"3.1" + b"\x00" * 12

    def test_non_ascii_sent_as_raw_utf8(self, device: Device, local_key: str) -> None:
        _, payload, _ = _split(build_control_frame(device, {"1": "Küche"}, seqno=1))
        plaintext = TuyaCipher(local_key).decrypt_ecb(payload[15:])
        assert "Küche".encode("utf-8") in plaintext
        assert b"\\u00fc" not in plaintext
        assert json.loads(plaintext)["dps"] == {"1": "Küche"}

    def test_seqno_wraps_to_32_bits(self, device: Device) -> None:
        frame = build_control_frame(device, {"20": True}, seqno=0x1_0000_0002)
        assert struct.unpack(">I", frame[4:8])[0] == 2


class TestQueryFrame:
    """DP_QUERY frames carry ciphertext only."""

    def test_layout(self, device: Device, local_key: str, device_id: str) -> None:
        frame = build_query_frame(device, seqno=9)
        (_, seqno, command, length), payload, crc = _split(frame)

        assert seqno == 9
        assert command == Command.DP_QUERY == 0x0A
        assert length == len(payload) + 8
        assert len(payload) % 16 == 0
        assert crc == binascii.crc32(frame[:-8]) & 0xFFFFFFFF

        data = json.loads(TuyaCipher(local_key).decrypt_ecb(payload))
        assert set(data) == {"devId", "uid", "t"}
        assert data["devId"] == device_id
        assert data["uid"] == ""
        assert isinstance(data["t"], int)


class TestParseResponse:
    """Decoding of device responses."""

    def test_roundtrip_with_retcode(self, device: Device, make_response_frame) -> None:
        payload = {"devId": device.dev_id, "dps": {"20": True, "22": 512}}
        frame = make_response_frame(payload)
        assert parse_response_frame(device, frame) == payload

    def test_roundtrip_without_retcode(self, device: Device, make_response_frame) -> None:
        payload = {"dps": {"20": False}}
        assert parse_response_frame(device, make_response_frame(payload, retcode=False)) == payload

    def test_roundtrip_with_version_header(self, device: Device, make_response_frame) -> None:
        payload = {"dps": {"1": "white"}}
        frame = make_response_frame(payload, version_header=True)
        assert parse_response_frame(device, frame) == payload

    def test_decode_message_fields(self, device: Device, make_response_frame) -> None:
        codec = MessageCodec.for_device(device)
        msg = codec.decode(make_response_frame({"dps": {}}, seqno=77, command=Command.DP_QUERY))
        assert msg.seqno == 77
        assert msg.command == Command.DP_QUERY
        assert msg.retcode == 0
        assert msg.data == {"dps": {}}

    def test_too_short(self, device: Device) -> None:
        with pytest.raises(ProtocolError, match="too short"):
            parse_response_frame(device, b"\x00" * 10)

    def test_empty(self, device: Device) -> None:
        with pytest.raises(ProtocolError):
            parse_response_frame(device, b"")

    def test_not_json(self, device: Device, local_key: str) -> None:
        body = TuyaCipher(local_key).encrypt_ecb(b"not json at all")
        frame = MessageCodec.pack(Command.DP_QUERY, body, 1)
        with pytest.raises(ProtocolError, match="JSON"):
            parse_response_frame(device, frame)

    def test_wrong_key(self, device: Device, make_response_frame) -> None:
        other = Device.from_record(
            {"ip": "10.0.0.2", "devId": device.dev_id, "localKey": "fedcba9876543210"}
        )
        with pytest.raises(ProtocolError):
            parse_response_frame(other, make_response_frame({"dps": {"20": True}}))

    def test_unaligned_ciphertext(self, device: Device) -> None:
        frame = MessageCodec.pack(Command.DP_QUERY, b"\x01" * 17, 1)
        with pytest.raises(CryptoError):
            parse_response_frame(device, frame)

    def test_crc_mismatch_still_parses(self, device: Device, make_response_frame) -> None:
        frame = bytearray(make_response_frame({"dps": {"20": True}}))
        frame[-8] ^= 0xFF
        assert parse_response_frame(device, bytes(frame)) == {"dps": {"20": True}}

    def test_strict_mode_rejects_bad_padding(self, device: Device, local_key: str) -> None:
        from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

        enc = Cipher(algorithms.AES(local_key.encode()), modes.ECB()).encryptor()
        body = enc.update(b'{"dps":{}}' + b" " * 5 + b"\x00") + enc.finalize()
        frame = MessageCodec.pack(Command.DP_QUERY, body, 1)

        with pytest.raises(ProtocolError, match="JSON"):
            parse_response_frame(device, frame, UnpadMode.LENIENT)
        with pytest.raises(CryptoError):
            parse_response_frame(device, frame, UnpadMode.STRICT)


class TestCodecVersions:
    def test_supported_versions(self, local_key: str) -> None:
        for version in ("3.1", "3.2", "3.3"):
            assert MessageCodec("dev", local_key, version).version == ProtocolVersion(version)

    @pytest.mark.parametrize("version", ["3.4", "3.5", "2.0", ""])
    def test_unsupported_versions_rejected(self, local_key: str, version: str) -> None:
        with pytest.raises(UnsupportedVersionError, match="not supported"):
            MessageCodec("dev", local_key, version)

    def test_invalid_key_rejected(self) -> None:
        with pytest.raises(CryptoError):
            MessageCodec("dev", "tooshort")
