"""Transport envelopes for commands and replies.

Direct mode (USB) sends the command bytes as they are::

    +------+--------+---------+
    | Type | Opcode | Payload |
    +------+--------+---------+

Length-prefixed mode (Bluetooth) prepends the command length::

    +-----------+------+--------+---------+
    | Length LE | Type | Opcode | Payload |
    | 2 bytes   | 1 B  | 1 B    |         |
    +-----------+------+--------+---------+

Replies carry the same envelope, followed by ``[0x02][opcode][status]`` and
the opcode-specific fields. The envelope offset (``shift``) is fixed when
the :class:`Framer` is built and every reply offset is taken relative to it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

LENGTH_PREFIX_SIZE = 2
REPLY_HEADER_SIZE = 3  # type + opcode + status
MAX_TELEGRAM = 64


@dataclass
class Frame:
    """A reply telegram with the envelope and header split off."""

    type: int
    opcode: int
    status: int
    payload: bytes

    def __repr__(self) -> str:
        return (
            f"Frame(type=0x{self.type:02X}, opcode=0x{self.opcode:02X}, "
            f"status=0x{self.status:02X}, "
            f"payload={self.payload.hex(' ') if self.payload else '(empty)'})"
        )


class Framer:
    """Wraps outgoing commands and unwraps incoming replies for one envelope mode."""

    def __init__(self, length_prefixed: bool = True) -> None:
        self.length_prefixed = length_prefixed
        self.shift = LENGTH_PREFIX_SIZE if length_prefixed else 0

    def wrap(self, command: bytes) -> bytes:
        """Return the bytes to write to the transport for ``command``."""
        if not self.length_prefixed:
            return bytes(command)
        return len(command).to_bytes(LENGTH_PREFIX_SIZE, "little") + command

    def opcode_of(self, data: bytes) -> int | None:
        """Opcode byte of a raw reply, or None if the reply is too short."""
        index = 1 + self.shift
        if len(data) <= index:
            return None
        return data[index]

    def unwrap(self, data: bytes) -> Frame | None:
        """Split a raw reply into a :class:`Frame`.

        Returns ``None`` if ``data`` is shorter than the envelope plus the
        three header bytes.
        """
        if len(data) < self.shift + REPLY_HEADER_SIZE:
            return None
        base = self.shift
        return Frame(
            type=data[base],
            opcode=data[base + 1],
            status=data[base + 2],
            payload=bytes(data[base + REPLY_HEADER_SIZE:]),
        )


class FrameAssembler:
    """Reassembles length-prefixed telegrams from an arbitrarily chunked stream.

    Serial links deliver bytes in whatever pieces the driver produces, so a
    read may hold half a telegram or several. ``feed`` buffers input and
    returns every complete ``[length][body]`` telegram, envelope included.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()

    def feed(self, chunk: bytes) -> list[bytes]:
        self._buffer += chunk
        frames: list[bytes] = []
        while len(self._buffer) >= LENGTH_PREFIX_SIZE:
            size = int.from_bytes(self._buffer[:LENGTH_PREFIX_SIZE], "little")
            if size == 0 or size > MAX_TELEGRAM:
                # Lost sync; discard one byte and look for the next plausible header
                logger.debug("Discarding byte 0x%02X, bad telegram length %d", self._buffer[0], size)
                del self._buffer[0]
                continue
            end = LENGTH_PREFIX_SIZE + size
            if len(self._buffer) < end:
                break
            frames.append(bytes(self._buffer[:end]))
            del self._buffer[:end]
        return frames

    def reset(self) -> None:
        self._buffer.clear()

    @property
    def buffered(self) -> int:
        return len(self._buffer)
