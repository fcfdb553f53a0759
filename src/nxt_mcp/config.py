"""Runtime settings with ``NXT_*`` environment overrides."""

from __future__ import annotations

import os
from dataclasses import dataclass

# Bluetooth serial (SPP) link
DEFAULT_PORT = "/dev/rfcomm0"
DEFAULT_BAUDRATE = 115200

# USB identifiers of the NXT brick
USB_VENDOR_ID = 0x0694
USB_PRODUCT_ID = 0x0002

DEFAULT_TIMEOUT = 2.0  # seconds to wait for a reply
DEFAULT_LOG_LEVEL = "INFO"

TRANSPORTS = ("bluetooth", "usb")


@dataclass
class Settings:
    """Connection settings for the brick."""

    port: str = DEFAULT_PORT
    baudrate: int = DEFAULT_BAUDRATE
    transport: str = "bluetooth"
    timeout: float = DEFAULT_TIMEOUT
    log_level: str = DEFAULT_LOG_LEVEL

    def __post_init__(self) -> None:
        if self.transport not in TRANSPORTS:
            raise ValueError(
                f"Unknown transport '{self.transport}'. Valid: {list(TRANSPORTS)}"
            )

    @property
    def length_prefixed(self) -> bool:
        """Bluetooth links wrap every telegram in a 2-byte length prefix."""
        return self.transport == "bluetooth"

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        return cls(
            port=env.get("NXT_PORT", DEFAULT_PORT),
            baudrate=int(env.get("NXT_BAUDRATE", DEFAULT_BAUDRATE)),
            transport=env.get("NXT_TRANSPORT", "bluetooth").lower(),
            timeout=float(env.get("NXT_TIMEOUT", DEFAULT_TIMEOUT)),
            log_level=env.get("NXT_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
        )
