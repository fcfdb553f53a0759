"""Bluetooth serial (SPP) connection to the brick via pyserial.

Pair the brick first so the OS exposes a virtual serial port
(``/dev/rfcomm0``, ``/dev/tty.NXT-DevB``, ``COM5``...). Telegrams on this
link use the 2-byte length-prefixed envelope.
"""

from __future__ import annotations

import logging

import serial

from ..config import DEFAULT_BAUDRATE, DEFAULT_PORT
from ..errors import TransportError
from .base import ReaderThread, Transport

logger = logging.getLogger(__name__)

READ_TIMEOUT_S = 0.1


class SerialTransport(Transport):
    """Manages the serial port and a reader thread feeding received bytes.

    Usage::

        transport = SerialTransport("/dev/rfcomm0")
        transport.on_data(handle_bytes)
        transport.open()
        transport.write(telegram)
        transport.close()
    """

    def __init__(self, port: str = DEFAULT_PORT, baudrate: int = DEFAULT_BAUDRATE) -> None:
        super().__init__()
        self.port = port
        self.baudrate = baudrate
        self._serial: serial.Serial | None = None
        self._reader: ReaderThread | None = None

    @property
    def connected(self) -> bool:
        return self._serial is not None and self._serial.is_open

    def open(self) -> None:
        if self.connected:
            return
        try:
            self._serial = serial.Serial(
                port=self.port,
                baudrate=self.baudrate,
                timeout=READ_TIMEOUT_S,
            )
        except serial.SerialException as e:
            raise TransportError(f"Could not open {self.port}: {e}") from e

        self._reader = ReaderThread(f"nxt-serial-{self.port}", self._read, self._emit)
        self._reader.start()
        logger.info("Connected to %s at %d baud", self.port, self.baudrate)

    def close(self) -> None:
        if self._serial is None:
            return
        if self._reader is not None:
            self._reader.stop()
        try:
            self._serial.close()
        except serial.SerialException as e:
            logger.warning("Error closing %s: %s", self.port, e)
        finally:
            if self._reader is not None:
                self._reader.join(timeout=1.0)
            self._reader = None
            self._serial = None
            logger.info("Disconnected from %s", self.port)

    def write(self, data: bytes) -> None:
        if not self.connected:
            raise TransportError("Not connected to brick")
        try:
            self._serial.write(data)
            self._serial.flush()
        except serial.SerialException as e:
            raise TransportError(f"Write to {self.port} failed: {e}") from e
        logger.debug("TX %s", data.hex(" "))

    def _read(self) -> bytes | None:
        ser = self._serial
        if ser is None:
            return None
        data = ser.read(max(1, ser.in_waiting))
        if data:
            logger.debug("RX %s", data.hex(" "))
        return data
