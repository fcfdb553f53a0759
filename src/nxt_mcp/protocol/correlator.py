"""Pending-response registry: routes reply telegrams to the caller waiting on them.

The protocol carries no sequence numbers, so replies are matched by opcode
alone. At most one request per opcode can be outstanding; registering a
second one replaces the first, whose callback then never fires. Its
``on_replaced`` hook runs instead, so the owner can release its waiter.
Replies with no registration are dropped without error (the link is lossy by
contract).

Transports deliver data on their own reader thread, so the registry is
guarded by a lock. Callbacks always run with the lock released, which lets
a callback issue the next command straight away.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Optional

from ..errors import NXTError, ProtocolStatusError, ResponseTimeout
from .framing import Frame, Framer

logger = logging.getLogger(__name__)

# callback(error, status, frame)
ResponseCallback = Callable[[Optional[Exception], Optional[int], Optional[Frame]], None]


@dataclass(eq=False)
class PendingResponse:
    """A registration for one expected reply."""

    opcode: int
    callback: ResponseCallback
    timer: threading.Timer | None = field(default=None, repr=False)
    on_replaced: Callable[[], object] | None = field(default=None, repr=False)


class ResponseCorrelator:
    """Owns the opcode-keyed registry of pending replies."""

    def __init__(self, framer: Framer) -> None:
        self._framer = framer
        self._pending: dict[int, PendingResponse] = {}
        self._lock = threading.Lock()

    def __contains__(self, opcode: int) -> bool:
        with self._lock:
            return opcode in self._pending

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def pending(self, opcode: int) -> PendingResponse | None:
        with self._lock:
            return self._pending.get(opcode)

    def register(
        self,
        opcode: int,
        callback: ResponseCallback,
        timeout: float | None = None,
        on_replaced: Callable[[], object] | None = None,
    ) -> PendingResponse:
        """Register ``callback`` for the next reply to ``opcode``.

        Args:
            opcode: Opcode the reply will echo.
            callback: Called once as ``callback(error, status, frame)``.
            timeout: Seconds to wait before failing with ``ResponseTimeout``.
                ``None`` waits forever.
            on_replaced: Called with no arguments if a later registration for
                the same opcode replaces this one. Its callback never fires.
        """
        entry = PendingResponse(opcode=opcode, callback=callback, on_replaced=on_replaced)
        with self._lock:
            replaced = self._pending.get(opcode)
            self._pending[opcode] = entry
        if replaced is not None:
            logger.warning(
                "Replacing pending response for opcode 0x%02X; the earlier request is cancelled",
                opcode,
            )
            self._stop_timer(replaced)
            if replaced.on_replaced is not None:
                replaced.on_replaced()
        if timeout is not None:
            entry.timer = threading.Timer(timeout, self._expire, args=(entry, timeout))
            entry.timer.daemon = True
            entry.timer.start()
        return entry

    def dispatch(self, data: bytes) -> bool:
        """Deliver one raw reply telegram.

        Returns:
            True if a pending callback received the reply.
        """
        frame = self._framer.unwrap(data)
        if frame is None:
            logger.debug("Dropping short telegram: %s", bytes(data).hex(" "))
            return False

        opcode = frame.opcode
        with self._lock:
            entry = self._pending.pop(opcode, None)
        if entry is None:
            logger.debug("Dropping unmatched reply for opcode 0x%02X", opcode)
            return False

        self._stop_timer(entry)
        error = None
        if frame.status != 0:
            error = ProtocolStatusError(frame.status, opcode)
        entry.callback(error, frame.status, frame)
        return True

    def fail(self, entry: PendingResponse, error: NXTError) -> bool:
        """Fail ``entry`` with ``error`` if it is still registered.

        Returns:
            True if the callback was invoked.
        """
        if not self._remove(entry):
            return False
        entry.callback(error, None, None)
        return True

    def cancel(self, entry: PendingResponse) -> bool:
        """Remove ``entry`` without invoking its callback."""
        return self._remove(entry)

    def fail_all(self, error: NXTError) -> int:
        """Fail every pending entry with ``error``; returns how many there were."""
        with self._lock:
            entries = list(self._pending.values())
            self._pending.clear()
        for entry in entries:
            self._stop_timer(entry)
            entry.callback(error, None, None)
        return len(entries)

    def _remove(self, entry: PendingResponse) -> bool:
        with self._lock:
            if self._pending.get(entry.opcode) is not entry:
                return False
            del self._pending[entry.opcode]
        self._stop_timer(entry)
        return True

    def _expire(self, entry: PendingResponse, timeout: float) -> None:
        error = ResponseTimeout(
            f"No reply for opcode 0x{entry.opcode:02X} within {timeout:g}s"
        )
        if self.fail(entry, error):
            logger.warning("Timed out waiting for opcode 0x%02X", entry.opcode)

    @staticmethod
    def _stop_timer(entry: PendingResponse) -> None:
        if entry.timer is not None and entry.timer is not threading.current_thread():
            entry.timer.cancel()
