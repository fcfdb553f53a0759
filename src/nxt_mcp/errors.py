"""Exception hierarchy for the NXT client."""

from __future__ import annotations

from .protocol.constants import status_message


class NXTError(Exception):
    """Base class for every error raised by this package."""


class TransportError(NXTError, ConnectionError):
    """The underlying byte stream failed to open, write or close."""


class ProtocolError(NXTError):
    """The brick replied with something the client cannot accept."""


class ProtocolStatusError(ProtocolError):
    """A reply carried a nonzero status byte."""

    def __init__(self, status: int, opcode: int | None = None) -> None:
        self.status = status
        self.opcode = opcode
        self.message = status_message(status)
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"ProtocolStatusError(status=0x{self.status:02X}, message={self.message!r})"


class ResponseDecodeError(ProtocolError, ValueError):
    """A reply payload was too short for its opcode's layout."""


class ResponseTimeout(NXTError, TimeoutError):
    """No reply arrived for a registered request within its timeout."""
