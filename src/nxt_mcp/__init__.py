"""LEGO MINDSTORMS NXT direct/system command client with an MCP server."""

from .brick import Brick
from .config import Settings
from .errors import (
    NXTError,
    ProtocolError,
    ProtocolStatusError,
    ResponseDecodeError,
    ResponseTimeout,
    TransportError,
)

__version__ = "0.1.0"
