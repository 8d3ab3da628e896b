"""Request-level commands for Tuya plugs and lights."""

from __future__ import annotations

import asyncio
import logging
import math
import threading
from dataclasses import dataclass, field
from numbers import Real
from typing import Any

from .const import BRIGHTNESS_MAX, BRIGHTNESS_MIN, DP_BRIGHTNESS, DP_POWER, IDENTIFY_DELAY
from .device import Device
from .exceptions import ProtocolError
from .protocol.connection import TuyaTransport
from .protocol.constants import SEQNO_MASK
from .protocol.encryption import UnpadMode
from .protocol.messages import MessageCodec
from .registry import DeviceRegistry

_LOGGER = logging.getLogger(__name__)


class SequenceCounter:
    """Thread-safe 32-bit frame sequence counter starting at 1."""

    def __init__(self, start: int = 1) -> None:
        self._value = start & SEQNO_MASK
        self._lock = threading.Lock()

    def next(self) -> int:
        """Return the current value and advance, wrapping at 2**32."""
        with self._lock:
            value = self._value
            self._value = (self._value + 1) & SEQNO_MASK
            return value


@dataclass
class DeviceStatus:
    """Power and brightness reported by a device."""

    on: bool
    brightness: int | float | None = None
    dps: dict[str, Any] = field(default_factory=dict)


def clamp_brightness(value: float) -> int:
    """Clamp to the 0..1000 brightness range and round halves up to an integer."""
    if not math.isfinite(value):
        raise ValueError(f"Brightness must be a finite number, got {value!r}")
    return max(BRIGHTNESS_MIN, min(BRIGHTNESS_MAX, math.floor(value + 0.5)))


def status_from_payload(payload: Any) -> DeviceStatus:
    """Map a decoded DP_QUERY response onto a DeviceStatus."""
    dps = payload.get("dps") if isinstance(payload, dict) else None
    if not isinstance(dps, dict):
        dps = {}
    brightness = dps.get(DP_BRIGHTNESS)
    if isinstance(brightness, bool) or not isinstance(brightness, Real):
        brightness = None
    return DeviceStatus(on=bool(dps.get(DP_POWER)), brightness=brightness, dps=dps)


class TuyaClient:
    """Sends power, brightness and status commands to registered devices.

    Each call opens its own connection; nothing is retried.
    """

    def __init__(
        self,
        registry: DeviceRegistry,
        transport: TuyaTransport | None = None,
        unpad_mode: UnpadMode = UnpadMode.LENIENT,
    ) -> None:
        self._registry = registry
        self._transport = transport or TuyaTransport()
        self._unpad_mode = unpad_mode
        self._sequence = SequenceCounter()

    @property
    def registry(self) -> DeviceRegistry:
        return self._registry

    def _codec(self, device: Device) -> MessageCodec:
        return MessageCodec.for_device(device, self._unpad_mode)

    async def set_dps(self, id_or_key: str, dps: dict[str, Any]) -> None:
        """Send a CONTROL frame with arbitrary data points, fire-and-forget."""
        device = self._registry.resolve(id_or_key)
        frame = self._codec(device).encode_control(dps, self._sequence.next())
        _LOGGER.debug("Sending %s to %s (%s)", dps, device.name, device.ip)
        await self._transport.send(device, frame)

    async def send_power(self, id_or_key: str, on: bool) -> None:
        """Switch a device on or off."""
        await self.set_dps(id_or_key, {DP_POWER: bool(on)})

    async def send_brightness(self, id_or_key: str, value: float) -> None:
        """Set brightness, clamped to 0..1000."""
        await self.set_dps(id_or_key, {DP_BRIGHTNESS: clamp_brightness(value)})

    async def query_status(self, id_or_key: str) -> DeviceStatus:
        """Query the device's data points and report power and brightness."""
        device = self._registry.resolve(id_or_key)
        codec = self._codec(device)
        frame = codec.encode_query(self._sequence.next())
        response = await self._transport.send_and_receive(device, frame)
        if not response:
            raise ProtocolError(f"No response from {device.name} ({device.ip})")
        message = codec.decode(response)
        return status_from_payload(message.data)

    async def set_level(self, id_or_key: str, value: float, is_on: bool | None = None) -> bool:
        """Apply a combined power/brightness level and return the resulting power state.

        A level of 0 or below switches the device off. Otherwise the device is
        switched on first unless is_on says it already is.
        """
        if value <= 0:
            await self.send_power(id_or_key, False)
            return False
        if not is_on:
            await self.send_power(id_or_key, True)
        await self.send_brightness(id_or_key, value)
        return True

    async def identify(self, id_or_key: str, delay: float = IDENTIFY_DELAY) -> None:
        """Blink a device: switch it on, wait briefly, switch it off."""
        await self.send_power(id_or_key, True)
        await asyncio.sleep(delay)
        await self.send_power(id_or_key, False)
