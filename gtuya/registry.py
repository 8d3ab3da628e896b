"""Device registry backed by an external JSON device-list store."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Protocol

import voluptuous as vol

from .const import CONF_DEVICE_ID, CONF_KEY
from .device import Device, new_device_record, validate_device
from .exceptions import DeviceNotFoundError, InvalidDeviceError

_LOGGER = logging.getLogger(__name__)


class DeviceStore(Protocol):
    """Opaque holder of the device list as JSON text."""

    def get_all(self) -> str:
        ...

    def set_all(self, text: str) -> None:
        ...

    def subscribe(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Call callback whenever the stored text changes. Returns unsubscribe function."""
        ...


class InMemoryDeviceStore:
    """DeviceStore keeping the blob in memory; notifies subscribers synchronously."""

    def __init__(self, text: str = "[]") -> None:
        self._text = text
        self._subscribers: list[Callable[[], None]] = []

    def get_all(self) -> str:
        return self._text

    def set_all(self, text: str) -> None:
        self._text = text
        for callback in list(self._subscribers):
            callback()

    def subscribe(self, callback: Callable[[], None]) -> Callable[[], None]:
        self._subscribers.append(callback)
        return lambda: self._subscribers.remove(callback)


def _record_key(record: dict[str, Any]) -> str | None:
    key = record.get(CONF_KEY) or record.get(CONF_DEVICE_ID)
    return str(key) if key else None


def dedupe_records(records: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Collapse records sharing a key, keeping the last one supplied.

    Records with neither a key nor a devId are dropped.
    """
    by_key: dict[str, dict[str, Any]] = {}
    for record in records:
        if not isinstance(record, dict):
            continue
        key = _record_key(record)
        if key is None:
            continue
        by_key[key] = record
    return list(by_key.values())


class DeviceRegistry:
    """Holds the active device set and writes edits back through the store."""

    def __init__(self, store: DeviceStore) -> None:
        self._store = store
        self._devices: dict[str, Device] = {}
        self._on_changed: list[Callable[[list[Device]], None]] = []
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def devices(self) -> list[Device]:
        """Return a copy of the active device list."""
        return list(self._devices.values())

    def start(self) -> list[Device]:
        """Load the device list and follow store changes."""
        devices = self.load()
        if self._unsubscribe is None:
            self._unsubscribe = self._store.subscribe(self._handle_store_changed)
        return devices

    def stop(self) -> None:
        """Stop following store changes."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def on_changed(self, callback: Callable[[list[Device]], None]) -> Callable[[], None]:
        """Register a callback for device list changes. Returns unregister function."""
        self._on_changed.append(callback)
        return lambda: self._on_changed.remove(callback)

    def _read_records(self) -> list[Any]:
        text = self._store.get_all() or "[]"
        try:
            records = json.loads(text)
        except json.JSONDecodeError as err:
            _LOGGER.warning("Device list is not valid JSON: %s", err)
            return []
        if not isinstance(records, list):
            _LOGGER.warning("Device list is not a JSON array (got %s)", type(records).__name__)
            return []
        return records

    def load(self) -> list[Device]:
        """Parse the store's device list and make it the active set."""
        devices: dict[str, Device] = {}
        for record in self._read_records():
            if not isinstance(record, dict):
                _LOGGER.debug("Skipping non-object device record: %r", record)
                continue
            try:
                device = Device.from_record(record)
            except vol.Invalid as err:
                _LOGGER.debug("Skipping device record %s: %s", _record_key(record), err)
                continue
            devices[device.key] = device

        self._devices = devices
        _LOGGER.debug("Loaded %d device(s)", len(devices))
        return self.devices

    def get(self, id_or_key: str) -> Device | None:
        """Find a device by key, falling back to its devId."""
        device = self._devices.get(id_or_key)
        if device is not None:
            return device
        for device in self._devices.values():
            if device.dev_id == id_or_key:
                return device
        return None

    def resolve(self, id_or_key: str) -> Device:
        """Like get(), but raise DeviceNotFoundError for unknown devices."""
        device = self.get(id_or_key)
        if device is None:
            raise DeviceNotFoundError(id_or_key)
        return device

    def apply(self, records: list[dict[str, Any] | Device]) -> list[dict[str, Any]]:
        """Write a new device list back through the store, deduplicated by key."""
        plain = [r.to_record() if isinstance(r, Device) else r for r in records]
        deduped = dedupe_records(plain)
        self._store.set_all(json.dumps(deduped))
        return deduped

    def upsert(self, record: dict[str, Any] | Device) -> list[dict[str, Any]]:
        """Validate a record and replace the stored record with its key, or append it."""
        if isinstance(record, Device):
            record = record.to_record()
        errors = validate_device(record)
        if errors:
            raise InvalidDeviceError(errors)

        key = _record_key(record)
        records = dedupe_records(self._read_records())
        for pos, existing in enumerate(records):
            if _record_key(existing) == key:
                records[pos] = record
                break
        else:
            records.append(record)
        return self.apply(records)

    def remove(self, key: str) -> list[dict[str, Any]]:
        """Drop the record with the given key from the stored list."""
        records = [r for r in dedupe_records(self._read_records()) if _record_key(r) != key]
        return self.apply(records)

    def add_placeholder(self) -> dict[str, Any]:
        """Append an unconfigured record with a fresh key and return it.

        The placeholder is stored but not active until it is filled in.
        """
        record = new_device_record()
        self.apply(dedupe_records(self._read_records()) + [record])
        return record

    def _handle_store_changed(self) -> None:
        devices = self.load()
        for callback in list(self._on_changed):
            try:
                callback(devices)
            except Exception:
                _LOGGER.exception("Device list listener failed")
