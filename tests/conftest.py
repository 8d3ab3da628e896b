"""Shared test fixtures for gtuya tests."""

from __future__ import annotations

import json
import struct

import pytest

from gtuya.device import Device
from gtuya.protocol.constants import SUFFIX
from gtuya.protocol.crc import crc32
from gtuya.protocol.encryption import TuyaCipher
from gtuya.registry import DeviceRegistry, InMemoryDeviceStore


@pytest.fixture
def local_key() -> str:
    """A test local key (16 ASCII characters)."""
    return "0123456789abcdef"


@pytest.fixture
def device_id() -> str:
    return "bf1234567890abcdefgh"


@pytest.fixture
def device_record(local_key: str, device_id: str) -> dict:
    """A complete device record as stored in the device list."""
    return {
        "key": "living-room",
        "name": "Living room lamp",
        "ip": "192.168.1.50",
        "port": 6668,
        "devId": device_id,
        "localKey": local_key,
        "ver": "3.3",
    }


@pytest.fixture
def device(device_record: dict) -> Device:
    return Device.from_record(device_record)


@pytest.fixture
def store(device_record: dict) -> InMemoryDeviceStore:
    return InMemoryDeviceStore(json.dumps([device_record]))


@pytest.fixture
def registry(store: InMemoryDeviceStore) -> DeviceRegistry:
    reg = DeviceRegistry(store)
    reg.start()
    return reg


@pytest.fixture
def make_response_frame(local_key: str):
    """Build a device response frame: optional retcode, optional 3.3 header, ciphertext."""

    def _make(
        payload: dict,
        seqno: int = 1,
        command: int = 10,
        retcode: bool = True,
        version_header: bool = False,
    ) -> bytes:
        body = TuyaCipher(local_key).encrypt_ecb(json.dumps(payload).encode("utf-8"))
        if version_header:
            body = b"3.3" + b"\x00" * 12 + body
        if retcode:
            body = b"\x00\x00\x00\x00" + body
        header = b"\x00\x00\x55\xaa" + struct.pack(">III", seqno, command, len(body) + 8)
        return header + body + struct.pack(">I", crc32(header + body)) + SUFFIX

    return _make
