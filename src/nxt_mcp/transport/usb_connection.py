"""USB connection to the brick via pyusb.

The brick enumerates as a vendor-specific device with one bulk OUT
endpoint (0x01) and one bulk IN endpoint (0x82). Each bulk packet is one
whole telegram, so this link uses the direct (unprefixed) envelope.
"""

from __future__ import annotations

import logging

import usb.core
import usb.util

from ..config import USB_PRODUCT_ID, USB_VENDOR_ID
from ..errors import TransportError
from .base import ReaderThread, Transport

logger = logging.getLogger(__name__)

INTERFACE = 0
EP_OUT = 0x01
EP_IN = 0x82
PACKET_SIZE = 64
READ_TIMEOUT_MS = 100
WRITE_TIMEOUT_MS = 1000


class USBTransport(Transport):
    """Manages the USB bulk connection to the brick.

    Usage::

        transport = USBTransport()
        transport.on_data(handle_bytes)
        transport.open()
        transport.write(telegram)
        transport.close()
    """

    def __init__(
        self,
        vendor_id: int = USB_VENDOR_ID,
        product_id: int = USB_PRODUCT_ID,
    ) -> None:
        super().__init__()
        self._vendor_id = vendor_id
        self._product_id = product_id
        self._device = None
        self._reader: ReaderThread | None = None
        self._connected = False

    @property
    def connected(self) -> bool:
        return self._connected

    def open(self) -> None:
        """Find and claim the brick.

        Raises:
            TransportError: If the device cannot be found or claimed.
        """
        if self._connected:
            return
        try:
            dev = usb.core.find(idVendor=self._vendor_id, idProduct=self._product_id)
            if dev is None:
                raise TransportError(
                    f"No brick found ({self._vendor_id:#06x}:{self._product_id:#06x}). "
                    f"Ensure it is switched on and you have permissions."
                )
            try:
                if dev.is_kernel_driver_active(INTERFACE):
                    dev.detach_kernel_driver(INTERFACE)
            except NotImplementedError:
                # Not supported on every platform
                pass
            dev.set_configuration()
            usb.util.claim_interface(dev, INTERFACE)
        except usb.core.USBError as e:
            raise TransportError(f"Could not open brick over USB: {e}") from e

        self._device = dev
        self._connected = True
        self._reader = ReaderThread("nxt-usb", self._read, self._emit)
        self._reader.start()
        logger.info(
            "Connected via USB: %s %s",
            usb.util.get_string(dev, dev.iManufacturer) or "",
            usb.util.get_string(dev, dev.iProduct) or "",
        )

    def close(self) -> None:
        if not self._connected:
            return
        self._connected = False
        if self._reader is not None:
            self._reader.stop()
            self._reader.join(timeout=1.0)
            self._reader = None
        try:
            usb.util.release_interface(self._device, INTERFACE)
            usb.util.dispose_resources(self._device)
        except usb.core.USBError as e:
            logger.warning("Error closing device: %s", e)
        finally:
            self._device = None
            logger.info("Disconnected")

    def write(self, data: bytes) -> None:
        if not self._connected:
            raise TransportError("Not connected to brick")
        try:
            written = self._device.write(EP_OUT, data, timeout=WRITE_TIMEOUT_MS)
        except usb.core.USBError as e:
            raise TransportError(f"USB write failed: {e}") from e
        if written != len(data):
            raise TransportError(f"Short USB write: {written} of {len(data)} bytes")
        logger.debug("TX %s", data.hex(" "))

    def _read(self) -> bytes | None:
        if not self._connected:
            return None
        try:
            data = bytes(self._device.read(EP_IN, PACKET_SIZE, timeout=READ_TIMEOUT_MS))
        except usb.core.USBTimeoutError:
            return None
        logger.debug("RX %s", data.hex(" "))
        return data
