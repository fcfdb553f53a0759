"""Reply decoding: one result dataclass and parser per opcode.

Parsers receive a :class:`Frame` whose ``payload`` starts right after the
status byte, so every offset below is independent of the transport
envelope. Integers are little-endian. Counters the firmware keeps as
signed values (power, turn ratio, tacho/rotation counts, scaled sensor
values) are sign-extended from two's complement.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from ..errors import ResponseDecodeError
from .constants import BRICK_NAME_SIZE, FILENAME_SIZE, MAX_LS_DATA, DirectCommand, SystemCommand
from .framing import Frame


def _require(frame: Frame, size: int) -> bytes:
    if len(frame.payload) < size:
        raise ResponseDecodeError(
            f"Reply to opcode 0x{frame.opcode:02X} needs {size} bytes after the "
            f"status, got {len(frame.payload)}"
        )
    return frame.payload


def _int(data: bytes, offset: int, size: int, signed: bool = False) -> int:
    return int.from_bytes(data[offset : offset + size], "little", signed=signed)


def _text(data: bytes, offset: int = 0, size: int | None = None) -> str:
    """ASCII text up to the first NUL or the end of the field."""
    end = len(data) if size is None else offset + size
    return data[offset:end].split(b"\x00")[0].decode("ascii", errors="replace")


@dataclass
class StatusResult:
    """Reply carrying nothing but the status byte."""

    status: int


@dataclass
class OutputState:
    status: int
    port: int
    power: int
    mode: int
    regulation_mode: int
    turn_ratio: int
    run_state: int
    tacho_limit: int
    tacho_count: int
    block_tacho_count: int
    rotation_count: int


@dataclass
class InputValues:
    status: int
    port: int
    valid: bool
    calibrated: bool
    sensor_type: int
    sensor_mode: int
    raw_value: int
    normalized_value: int
    scaled_value: int
    calibrated_value: int


@dataclass
class BatteryLevel:
    status: int
    voltage_mv: int


@dataclass
class KeepAliveResult:
    status: int
    sleep_time_limit_ms: int


@dataclass
class LSStatus:
    status: int
    bytes_ready: int


@dataclass
class LSReadResult:
    status: int
    bytes_read: int
    data: bytes


@dataclass
class ProgramName:
    status: int
    filename: str


@dataclass
class MessageReadResult:
    status: int
    local_inbox: int
    size: int
    message: str


@dataclass
class FileHandle:
    """Reply to the Open*/Close family."""

    status: int
    handle: int
    size: int = 0


@dataclass
class ReadResult:
    status: int
    handle: int
    count: int
    data: bytes


@dataclass
class WriteResult:
    status: int
    handle: int
    count: int


@dataclass
class DeleteResult:
    status: int
    filename: str


@dataclass
class FileEntry:
    """Reply to FindFirst/FindNext."""

    status: int
    handle: int
    filename: str
    size: int


@dataclass
class FirmwareVersion:
    status: int
    protocol_minor: int
    protocol_major: int
    firmware_minor: int
    firmware_major: int

    @property
    def protocol(self) -> str:
        return f"{self.protocol_major}.{self.protocol_minor}"

    @property
    def firmware(self) -> str:
        return f"{self.firmware_major}.{self.firmware_minor:02d}"


@dataclass
class LinearAddress:
    """Reply to OpenReadLinear: the file's address in flash."""

    status: int
    address: int


@dataclass
class BootResult:
    status: int
    reply: str


@dataclass
class DeviceInfo:
    status: int
    name: str
    bluetooth_address: str
    signal_strength: int
    free_flash: int


@dataclass
class PollLengthResult:
    status: int
    buffer: int
    bytes_ready: int


@dataclass
class PollResult:
    status: int
    buffer: int
    count: int
    data: bytes


# ─── DIRECT COMMAND REPLIES ──────────────────────────────────────────

def parse_status(frame: Frame) -> StatusResult:
    return StatusResult(status=frame.status)


def parse_output_state(frame: Frame) -> OutputState:
    """Parse a GetOutputState reply (22 bytes after the status)."""
    p = _require(frame, 22)
    return OutputState(
        status=frame.status,
        port=p[0],
        power=_int(p, 1, 1, signed=True),
        mode=p[2],
        regulation_mode=p[3],
        turn_ratio=_int(p, 4, 1, signed=True),
        run_state=p[5],
        tacho_limit=_int(p, 6, 4),
        tacho_count=_int(p, 10, 4, signed=True),
        block_tacho_count=_int(p, 14, 4, signed=True),
        rotation_count=_int(p, 18, 4, signed=True),
    )


def parse_input_values(frame: Frame) -> InputValues:
    """Parse a GetInputValues reply (13 bytes after the status)."""
    p = _require(frame, 13)
    return InputValues(
        status=frame.status,
        port=p[0],
        valid=p[1] == 0x01,
        calibrated=p[2] == 0x01,
        sensor_type=p[3],
        sensor_mode=p[4],
        raw_value=_int(p, 5, 2),
        normalized_value=_int(p, 7, 2),
        scaled_value=_int(p, 9, 2, signed=True),
        calibrated_value=_int(p, 11, 2, signed=True),
    )


def parse_battery_level(frame: Frame) -> BatteryLevel:
    p = _require(frame, 2)
    return BatteryLevel(status=frame.status, voltage_mv=_int(p, 0, 2))


def parse_keep_alive(frame: Frame) -> KeepAliveResult:
    p = _require(frame, 4)
    return KeepAliveResult(status=frame.status, sleep_time_limit_ms=_int(p, 0, 4))


def parse_ls_status(frame: Frame) -> LSStatus:
    p = _require(frame, 1)
    return LSStatus(status=frame.status, bytes_ready=p[0])


def parse_ls_read(frame: Frame) -> LSReadResult:
    """Parse an LSRead reply: count byte plus a 16-byte, zero-padded data field."""
    p = _require(frame, 1)
    count = min(p[0], MAX_LS_DATA)
    return LSReadResult(status=frame.status, bytes_read=p[0], data=bytes(p[1 : 1 + count]))


def parse_program_name(frame: Frame) -> ProgramName:
    p = _require(frame, 1)
    return ProgramName(status=frame.status, filename=_text(p, 0, FILENAME_SIZE))


def parse_message_read(frame: Frame) -> MessageReadResult:
    """Parse a MessageRead reply: local inbox, size, then a 59-byte message field."""
    p = _require(frame, 2)
    size = p[1]
    return MessageReadResult(
        status=frame.status,
        local_inbox=p[0],
        size=size,
        message=_text(p, 2, size),
    )


# ─── SYSTEM COMMAND REPLIES ──────────────────────────────────────────

def parse_file_handle(frame: Frame) -> FileHandle:
    p = _require(frame, 1)
    return FileHandle(status=frame.status, handle=p[0])


def parse_file_handle_with_size(frame: Frame) -> FileHandle:
    """Parse OpenRead/OpenAppendData replies: handle plus a 32-bit size."""
    p = _require(frame, 5)
    return FileHandle(status=frame.status, handle=p[0], size=_int(p, 1, 4))


def parse_read(frame: Frame) -> ReadResult:
    p = _require(frame, 3)
    count = _int(p, 1, 2)
    return ReadResult(status=frame.status, handle=p[0], count=count, data=bytes(p[3 : 3 + count]))


def parse_write(frame: Frame) -> WriteResult:
    p = _require(frame, 3)
    return WriteResult(status=frame.status, handle=p[0], count=_int(p, 1, 2))


def parse_delete(frame: Frame) -> DeleteResult:
    p = _require(frame, 1)
    return DeleteResult(status=frame.status, filename=_text(p, 0, FILENAME_SIZE))


def parse_file_entry(frame: Frame) -> FileEntry:
    """Parse FindFirst/FindNext replies: handle, 20-byte name, 32-bit size."""
    p = _require(frame, 1 + FILENAME_SIZE + 4)
    return FileEntry(
        status=frame.status,
        handle=p[0],
        filename=_text(p, 1, FILENAME_SIZE),
        size=_int(p, 1 + FILENAME_SIZE, 4),
    )


def parse_firmware_version(frame: Frame) -> FirmwareVersion:
    p = _require(frame, 4)
    return FirmwareVersion(
        status=frame.status,
        protocol_minor=p[0],
        protocol_major=p[1],
        firmware_minor=p[2],
        firmware_major=p[3],
    )


def parse_linear_address(frame: Frame) -> LinearAddress:
    p = _require(frame, 4)
    return LinearAddress(status=frame.status, address=_int(p, 0, 4))


def parse_boot(frame: Frame) -> BootResult:
    p = _require(frame, 1)
    return BootResult(status=frame.status, reply=_text(p, 0, 4))


def parse_device_info(frame: Frame) -> DeviceInfo:
    """Parse a GetDeviceInfo reply.

    Layout after the status: name (15 B), Bluetooth address (6 B + 1 pad),
    signal strength (u32), free user flash (u32).
    """
    p = _require(frame, 30)
    name_size = BRICK_NAME_SIZE - 1
    address = ":".join(f"{b:02X}" for b in p[name_size : name_size + 6])
    return DeviceInfo(
        status=frame.status,
        name=_text(p, 0, name_size),
        bluetooth_address=address,
        signal_strength=_int(p, 22, 4),
        free_flash=_int(p, 26, 4),
    )


def parse_poll_length(frame: Frame) -> PollLengthResult:
    p = _require(frame, 2)
    return PollLengthResult(status=frame.status, buffer=p[0], bytes_ready=p[1])


def parse_poll(frame: Frame) -> PollResult:
    p = _require(frame, 2)
    count = p[1]
    return PollResult(status=frame.status, buffer=p[0], count=count, data=bytes(p[2 : 2 + count]))


PARSERS: dict[int, Callable[[Frame], object]] = {
    DirectCommand.GET_OUTPUT_STATE: parse_output_state,
    DirectCommand.GET_INPUT_VALUES: parse_input_values,
    DirectCommand.GET_BATTERY_LEVEL: parse_battery_level,
    DirectCommand.KEEP_ALIVE: parse_keep_alive,
    DirectCommand.LS_GET_STATUS: parse_ls_status,
    DirectCommand.LS_READ: parse_ls_read,
    DirectCommand.GET_CURRENT_PROGRAM_NAME: parse_program_name,
    DirectCommand.MESSAGE_READ: parse_message_read,
    SystemCommand.OPEN_READ: parse_file_handle_with_size,
    SystemCommand.OPEN_WRITE: parse_file_handle,
    SystemCommand.READ: parse_read,
    SystemCommand.WRITE: parse_write,
    SystemCommand.CLOSE: parse_file_handle,
    SystemCommand.DELETE: parse_delete,
    SystemCommand.FIND_FIRST: parse_file_entry,
    SystemCommand.FIND_NEXT: parse_file_entry,
    SystemCommand.GET_FIRMWARE_VERSION: parse_firmware_version,
    SystemCommand.OPEN_WRITE_LINEAR: parse_file_handle,
    SystemCommand.OPEN_READ_LINEAR: parse_linear_address,
    SystemCommand.OPEN_WRITE_DATA: parse_file_handle,
    SystemCommand.OPEN_APPEND_DATA: parse_file_handle_with_size,
    SystemCommand.BOOT: parse_boot,
    SystemCommand.GET_DEVICE_INFO: parse_device_info,
    SystemCommand.POLL_LENGTH: parse_poll_length,
    SystemCommand.POLL: parse_poll,
}


def parse_response(frame: Frame):
    """Auto-dispatch a reply frame to its opcode's parser.

    Opcodes without a field layout decode to :class:`StatusResult`.
    """
    parser = PARSERS.get(frame.opcode, parse_status)
    return parser(frame)
