"""Constants for the gtuya local client."""

from __future__ import annotations

VERSION = "1.0.0"

# Device record defaults
DEFAULT_PORT = 6668
DEFAULT_NAME = "Tuya Led"
DEFAULT_VERSION = "3.3"
NEW_DEVICE_NAME = "New Device"

# Device record keys (camelCase, as stored in the device list blob)
CONF_KEY = "key"
CONF_NAME = "name"
CONF_IP = "ip"
CONF_PORT = "port"
CONF_DEVICE_ID = "devId"
CONF_LOCAL_KEY = "localKey"
CONF_VERSION = "ver"

# Data points
DP_POWER = "20"
DP_BRIGHTNESS = "22"

BRIGHTNESS_MIN = 0
BRIGHTNESS_MAX = 1000

# Transport timeouts (seconds)
CONNECT_TIMEOUT = 3.0
RESPONSE_TIMEOUT = 4.0
ACK_TIMEOUT = 1.0

READ_CHUNK_SIZE = 1024
# Upper bound on an accumulated response frame
MAX_FRAME_SIZE = 64 * 1024

# Pause between on and off in identify()
IDENTIFY_DELAY = 0.5


def mask_credential(value: str) -> str:
    """Mask a credential string for safe logging (show first 3 + last 3 chars)."""
    if len(value) <= 6:
        return "***"
    return f"{value[:3]}***{value[-3:]}"
