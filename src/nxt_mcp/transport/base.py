"""Byte-stream transport contract used by :class:`~nxt_mcp.brick.Brick`."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable

logger = logging.getLogger(__name__)

DataCallback = Callable[[bytes], None]


class Transport(ABC):
    """A bidirectional byte stream to the brick.

    Subclasses implement ``open``/``close``/``write`` and push received
    bytes to the registered data callbacks via :meth:`_emit`, typically
    from a reader thread started in ``open``.
    """

    def __init__(self) -> None:
        self._callbacks: list[DataCallback] = []

    @property
    @abstractmethod
    def connected(self) -> bool:
        ...

    @abstractmethod
    def open(self) -> None:
        """Open the stream. Raises ``TransportError`` on failure."""

    @abstractmethod
    def close(self) -> None:
        """Close the stream. Safe to call when already closed."""

    @abstractmethod
    def write(self, data: bytes) -> None:
        """Write ``data`` in full. Raises ``TransportError`` on failure."""

    def on_data(self, callback: DataCallback) -> None:
        self._callbacks.append(callback)

    def _emit(self, data: bytes) -> None:
        for callback in list(self._callbacks):
            try:
                callback(data)
            except Exception:
                # A failing consumer must not kill the reader thread
                logger.exception("Data callback raised")


class ReaderThread(threading.Thread):
    """Daemon thread that calls ``read()`` until stopped and emits non-empty chunks."""

    def __init__(self, name: str, read: Callable[[], bytes | None], emit: DataCallback) -> None:
        super().__init__(name=name, daemon=True)
        self._read = read
        self._emit = emit
        self._stop_event = threading.Event()

    def stop(self) -> None:
        self._stop_event.set()

    def run(self) -> None:
        while not self._stop_event.is_set():
            try:
                data = self._read()
            except Exception as e:
                if not self._stop_event.is_set():
                    logger.warning("Reader %s stopped: %s", self.name, e)
                return
            if data:
                self._emit(data)
