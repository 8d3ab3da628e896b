"""Local-network client for Tuya plugs and lights."""

from .client import DeviceStatus, SequenceCounter, TuyaClient
from .const import VERSION
from .device import Device, validate_device
from .exceptions import (
    CryptoError,
    DeviceConnectionError,
    DeviceNotFoundError,
    GTuyaError,
    InvalidDeviceError,
    ProtocolError,
    UnsupportedVersionError,
)
from .registry import DeviceRegistry, DeviceStore, InMemoryDeviceStore

__version__ = VERSION

__all__ = [
    "CryptoError",
    "Device",
    "DeviceConnectionError",
    "DeviceNotFoundError",
    "DeviceRegistry",
    "DeviceStatus",
    "DeviceStore",
    "GTuyaError",
    "InMemoryDeviceStore",
    "InvalidDeviceError",
    "ProtocolError",
    "SequenceCounter",
    "TuyaClient",
    "UnsupportedVersionError",
    "validate_device",
]
