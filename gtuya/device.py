"""Device descriptors and device record validation."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any

import voluptuous as vol

from .const import (
    CONF_DEVICE_ID,
    CONF_IP,
    CONF_KEY,
    CONF_LOCAL_KEY,
    CONF_NAME,
    CONF_PORT,
    CONF_VERSION,
    DEFAULT_NAME,
    DEFAULT_PORT,
    DEFAULT_VERSION,
    NEW_DEVICE_NAME,
    mask_credential,
)
from .protocol.constants import LOCAL_KEY_SIZE


def _non_empty(value: Any) -> str:
    if value is None or isinstance(value, (bool, dict, list)):
        raise vol.Invalid("must be a non-empty string")
    value = str(value).strip()
    if not value:
        raise vol.Invalid("must not be empty")
    return value


def _local_key(value: Any) -> str:
    value = str(value)
    if len(value) != LOCAL_KEY_SIZE:
        raise vol.Invalid(f"must be exactly {LOCAL_KEY_SIZE} characters")
    if not value.isascii():
        raise vol.Invalid("must be ASCII")
    return value


DEVICE_SCHEMA = vol.Schema(
    {
        vol.Optional(CONF_KEY): vol.Any(None, vol.Coerce(str)),
        vol.Optional(CONF_NAME, default=DEFAULT_NAME): vol.Any(None, vol.Coerce(str)),
        vol.Required(CONF_IP): _non_empty,
        vol.Optional(CONF_PORT, default=DEFAULT_PORT): vol.Any(
            None, vol.All(vol.Coerce(int), vol.Range(min=1, max=65535))
        ),
        vol.Required(CONF_DEVICE_ID): _non_empty,
        vol.Required(CONF_LOCAL_KEY): _local_key,
        vol.Optional(CONF_VERSION, default=DEFAULT_VERSION): vol.Any(None, vol.Coerce(str)),
    },
    extra=vol.REMOVE_EXTRA,
)

# Human-readable messages for each record field, as shown to whoever edits the list
_FIELD_ERRORS = {
    CONF_NAME: "Name is required",
    CONF_IP: "IP is required",
    CONF_PORT: "Port 1..65535",
    CONF_DEVICE_ID: "devId is required",
    CONF_LOCAL_KEY: "localKey: 16 chars",
    CONF_VERSION: "Version (e.g. 3.3)",
}


@dataclass(frozen=True)
class Device:
    """Identity and connection facts for one controllable device."""

    key: str
    name: str
    ip: str
    port: int
    dev_id: str
    local_key: str
    ver: str = DEFAULT_VERSION

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> Device:
        """Build a Device from a store record, raising vol.Invalid if unusable."""
        data = DEVICE_SCHEMA(dict(record))
        return cls(
            key=data.get(CONF_KEY) or data[CONF_DEVICE_ID],
            name=data.get(CONF_NAME) or DEFAULT_NAME,
            ip=data[CONF_IP],
            port=data[CONF_PORT] or DEFAULT_PORT,
            dev_id=data[CONF_DEVICE_ID],
            local_key=data[CONF_LOCAL_KEY],
            ver=data.get(CONF_VERSION) or DEFAULT_VERSION,
        )

    def to_record(self) -> dict[str, Any]:
        return {
            CONF_KEY: self.key,
            CONF_NAME: self.name,
            CONF_IP: self.ip,
            CONF_PORT: self.port,
            CONF_DEVICE_ID: self.dev_id,
            CONF_LOCAL_KEY: self.local_key,
            CONF_VERSION: self.ver,
        }

    def __repr__(self) -> str:
        return (
            f"Device(key={self.key!r}, name={self.name!r}, ip={self.ip!r}, port={self.port}, "
            f"dev_id={self.dev_id!r}, local_key={mask_credential(self.local_key)!r}, ver={self.ver!r})"
        )


def validate_device(record: dict[str, Any]) -> list[str]:
    """Return the problems with a device record, empty when it is usable.

    Stricter than loading: a name and a version must also be filled in.
    """
    errors: list[str] = []
    for field in (CONF_NAME, CONF_VERSION):
        if not str(record.get(field) or "").strip():
            errors.append(_FIELD_ERRORS[field])
    try:
        DEVICE_SCHEMA(dict(record))
    except vol.MultipleInvalid as err:
        for error in err.errors:
            field = error.path[0] if error.path else None
            message = _FIELD_ERRORS.get(field, str(error))
            if message not in errors:
                errors.append(message)
    return errors


def new_device_record() -> dict[str, Any]:
    """Return a placeholder record with a fresh random key."""
    return {
        CONF_KEY: str(uuid.uuid4()),
        CONF_NAME: NEW_DEVICE_NAME,
        CONF_IP: "",
        CONF_PORT: DEFAULT_PORT,
        CONF_DEVICE_ID: "",
        CONF_LOCAL_KEY: "",
        CONF_VERSION: DEFAULT_VERSION,
    }
