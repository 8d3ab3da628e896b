"""Errors raised by the gtuya client."""

from __future__ import annotations


class GTuyaError(Exception):
    """Base class for all gtuya errors."""


class DeviceNotFoundError(GTuyaError, LookupError):
    """No known device matches the requested key or devId."""

    def __init__(self, id_or_key: str) -> None:
        super().__init__(f"Device not found: {id_or_key}")
        self.id_or_key = id_or_key


class InvalidDeviceError(GTuyaError, ValueError):
    """A device record failed validation."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__("Invalid device: " + "; ".join(errors))
        self.errors = errors


class CryptoError(GTuyaError):
    """The cipher backend could not encrypt or decrypt a payload."""


class DeviceConnectionError(GTuyaError, ConnectionError):
    """Connecting to, writing to or reading from a device failed."""


class ProtocolError(GTuyaError):
    """A frame could not be built or parsed."""


class UnsupportedVersionError(ProtocolError):
    """The device advertises a protocol revision this codec cannot speak."""
