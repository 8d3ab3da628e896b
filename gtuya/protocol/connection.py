"""Per-request async TCP transport for Tuya devices."""

from __future__ import annotations

import asyncio
import logging
from enum import StrEnum
from typing import TYPE_CHECKING

from ..const import ACK_TIMEOUT, CONNECT_TIMEOUT, MAX_FRAME_SIZE, READ_CHUNK_SIZE, RESPONSE_TIMEOUT
from ..exceptions import DeviceConnectionError, ProtocolError
from .constants import SUFFIX, SUFFIX_SIZE

if TYPE_CHECKING:
    from ..device import Device

_LOGGER = logging.getLogger(__name__)


class ReadState(StrEnum):
    """Lifecycle of a single request/response exchange."""

    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    WRITING = "writing"
    READING = "reading"
    DONE = "done"
    CLOSED = "closed"
    TIMED_OUT = "timed_out"


# States in which the read loop stops
TERMINAL_STATES = {ReadState.DONE, ReadState.CLOSED, ReadState.TIMED_OUT}


class FrameAccumulator:
    """Collects response chunks until the frame suffix, EOF or the deadline."""

    def __init__(self, max_size: int = MAX_FRAME_SIZE) -> None:
        self._max_size = max_size
        self._buffer = bytearray()
        self.state = ReadState.IDLE

    @property
    def data(self) -> bytes:
        return bytes(self._buffer)

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES

    def feed(self, chunk: bytes) -> ReadState:
        """Append a chunk; an empty chunk means the peer closed the stream."""
        if not chunk:
            self.state = ReadState.CLOSED
            return self.state

        if len(self._buffer) + len(chunk) > self._max_size:
            raise ProtocolError(
                f"Response exceeds {self._max_size} bytes without a frame suffix"
            )

        self._buffer.extend(chunk)
        self.state = ReadState.READING
        if len(self._buffer) >= SUFFIX_SIZE and self._buffer[-SUFFIX_SIZE:] == SUFFIX:
            self.state = ReadState.DONE
        return self.state

    def expire(self) -> ReadState:
        self.state = ReadState.TIMED_OUT
        return self.state


class TuyaTransport:
    """Opens one connection per request; connections are never reused."""

    def __init__(
        self,
        connect_timeout: float = CONNECT_TIMEOUT,
        response_timeout: float = RESPONSE_TIMEOUT,
        ack_timeout: float = ACK_TIMEOUT,
        max_frame_size: int = MAX_FRAME_SIZE,
    ) -> None:
        self._connect_timeout = connect_timeout
        self._response_timeout = response_timeout
        self._ack_timeout = ack_timeout
        self._max_frame_size = max_frame_size

    async def send(self, device: Device, frame: bytes) -> None:
        """Write a frame and don't wait for a meaningful reply.

        One chunk of whatever the device answers is read and discarded so the
        device sees an orderly exchange before the socket closes.
        """
        reader, writer = await self._open(device)
        try:
            await self._write(device, writer, frame)
            try:
                ack = await asyncio.wait_for(reader.read(READ_CHUNK_SIZE), timeout=self._ack_timeout)
                _LOGGER.debug("Discarded %d byte reply from %s", len(ack), device.ip)
            except (asyncio.TimeoutError, OSError) as err:
                _LOGGER.debug("No reply from %s after send: %r", device.ip, err)
        finally:
            await self._close(device, writer)

    async def send_and_receive(self, device: Device, frame: bytes) -> bytes:
        """Write a frame and return the raw response frame.

        Reads until the buffer ends with the 55AA suffix, the device closes
        the stream or the response deadline passes. Whatever was collected
        is returned; it may be empty or truncated.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._response_timeout

        reader, writer = await self._open(device)
        accumulator = FrameAccumulator(self._max_frame_size)
        try:
            await self._write(device, writer, frame)
            _LOGGER.debug("%s: %s", device.ip, ReadState.READING)
            while not accumulator.finished:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    accumulator.expire()
                    break
                try:
                    chunk = await asyncio.wait_for(reader.read(READ_CHUNK_SIZE), timeout=remaining)
                except asyncio.TimeoutError:
                    accumulator.expire()
                    break
                except OSError as err:
                    raise DeviceConnectionError(f"Read from {device.ip}:{device.port} failed: {err}") from err
                accumulator.feed(chunk)
        finally:
            await self._close(device, writer)

        _LOGGER.debug(
            "%s: read finished (%s) with %d bytes", device.ip, accumulator.state, len(accumulator.data)
        )
        return accumulator.data

    async def _open(self, device: Device) -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
        _LOGGER.debug("%s: %s to port %s", device.ip, ReadState.CONNECTING, device.port)
        try:
            reader, writer = await asyncio.wait_for(
                asyncio.open_connection(device.ip, device.port),
                timeout=self._connect_timeout,
            )
        except (asyncio.TimeoutError, OSError) as err:
            raise DeviceConnectionError(f"Failed to connect to {device.ip}:{device.port}: {err!r}") from err
        _LOGGER.debug("%s: %s", device.ip, ReadState.CONNECTED)
        return reader, writer

    async def _write(self, device: Device, writer: asyncio.StreamWriter, frame: bytes) -> None:
        _LOGGER.debug("%s: %s %d bytes", device.ip, ReadState.WRITING, len(frame))
        try:
            writer.write(frame)
            await writer.drain()
        except OSError as err:
            raise DeviceConnectionError(f"Send to {device.ip}:{device.port} failed: {err}") from err

    async def _close(self, device: Device, writer: asyncio.StreamWriter) -> None:
        try:
            writer.close()
            await writer.wait_closed()
        except OSError:
            _LOGGER.debug("Error while closing connection to %s", device.ip, exc_info=True)
        _LOGGER.debug("%s: %s", device.ip, ReadState.CLOSED)
