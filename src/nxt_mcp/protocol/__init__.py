"""Protocol layer: constant tables, command builders, framing, correlation and reply parsing."""

from .constants import CommandType, DirectCommand, SystemCommand, status_message
from .framing import Frame, Framer, FrameAssembler
from .commands import build_command
