"""Protocol constant tables: command types, opcodes, ports, modes and status codes.

Values follow the NXT Bluetooth/USB communication protocol. Every table is
an ``IntEnum`` so encode sites can pass members straight into byte fields
and decode sites can map raw bytes back with ``Enum(value)``.
"""

from __future__ import annotations

from enum import IntEnum, IntFlag


class CommandType(IntFlag):
    """Byte 0 of every request (and reply)."""

    DIRECT = 0x00
    SYSTEM = 0x01
    REPLY = 0x02
    NO_REPLY = 0x80


class DirectCommand(IntEnum):
    """Direct command opcodes (executed immediately by the firmware)."""

    START_PROGRAM = 0x00
    STOP_PROGRAM = 0x01
    PLAY_SOUND_FILE = 0x02
    PLAY_TONE = 0x03
    SET_OUTPUT_STATE = 0x04
    SET_INPUT_MODE = 0x05
    GET_OUTPUT_STATE = 0x06
    GET_INPUT_VALUES = 0x07
    RESET_INPUT_SCALED_VALUE = 0x08
    MESSAGE_WRITE = 0x09
    RESET_MOTOR_POSITION = 0x0A
    GET_BATTERY_LEVEL = 0x0B
    STOP_SOUND_PLAYBACK = 0x0C
    KEEP_ALIVE = 0x0D
    LS_GET_STATUS = 0x0E
    LS_WRITE = 0x0F
    LS_READ = 0x10
    GET_CURRENT_PROGRAM_NAME = 0x11
    MESSAGE_READ = 0x13


class SystemCommand(IntEnum):
    """System command opcodes (file system and device-level operations)."""

    OPEN_READ = 0x80
    OPEN_WRITE = 0x81
    READ = 0x82
    WRITE = 0x83
    CLOSE = 0x84
    DELETE = 0x85
    FIND_FIRST = 0x86
    FIND_NEXT = 0x87
    GET_FIRMWARE_VERSION = 0x88
    OPEN_WRITE_LINEAR = 0x89
    OPEN_READ_LINEAR = 0x8A
    OPEN_WRITE_DATA = 0x8B
    OPEN_APPEND_DATA = 0x8C
    BOOT = 0x97
    SET_BRICK_NAME = 0x98
    GET_DEVICE_INFO = 0x9B
    DELETE_USER_FLASH = 0xA0
    POLL_LENGTH = 0xA1
    POLL = 0xA2
    BLUETOOTH_FACTORY_RESET = 0xA4


class MotorPort(IntEnum):
    A = 0x00
    B = 0x01
    C = 0x02
    ALL = 0xFF


class SensorPort(IntEnum):
    S1 = 0x00
    S2 = 0x01
    S3 = 0x02
    S4 = 0x03


class OutputMode(IntFlag):
    """Output mode bits for SetOutputState."""

    COAST = 0x00
    MOTOR_ON = 0x01
    BRAKE = 0x02
    REGULATED = 0x04


class RegulationMode(IntEnum):
    IDLE = 0x00
    MOTOR_SPEED = 0x01
    MOTOR_SYNC = 0x02


class RunState(IntEnum):
    IDLE = 0x00
    RAMP_UP = 0x10
    RUNNING = 0x20
    RAMP_DOWN = 0x40


class SensorType(IntEnum):
    NO_SENSOR = 0x00
    SWITCH = 0x01
    TEMPERATURE = 0x02
    REFLECTION = 0x03
    ANGLE = 0x04
    LIGHT_ACTIVE = 0x05
    LIGHT_INACTIVE = 0x06
    SOUND_DB = 0x07
    SOUND_DBA = 0x08
    CUSTOM = 0x09
    LOW_SPEED = 0x0A
    LOW_SPEED_9V = 0x0B
    NO_OF_SENSOR_TYPES = 0x0C


class SensorMode(IntEnum):
    RAW = 0x00
    BOOLEAN = 0x20
    TRANSITION_COUNTER = 0x40
    PERIOD_COUNTER = 0x60
    PCT_FULL_SCALE = 0x80
    CELSIUS = 0xA0
    FAHRENHEIT = 0xC0
    ANGLE_STEPS = 0xE0


SLOPE_MASK = 0x1F
MODE_MASK = 0xE0


class Status(IntEnum):
    """Reply status codes."""

    SUCCESS = 0x00
    PENDING_TRANSACTION = 0x20
    MAILBOX_EMPTY = 0x40
    NO_MORE_HANDLES = 0x81
    NO_SPACE = 0x82
    NO_MORE_FILES = 0x83
    END_OF_FILE_EXPECTED = 0x84
    END_OF_FILE = 0x85
    NOT_A_LINEAR_FILE = 0x86
    FILE_NOT_FOUND = 0x87
    HANDLE_ALREADY_CLOSED = 0x88
    NO_LINEAR_SPACE = 0x89
    UNDEFINED_ERROR = 0x8A
    FILE_IS_BUSY = 0x8B
    NO_WRITE_BUFFERS = 0x8C
    APPEND_NOT_POSSIBLE = 0x8D
    FILE_IS_FULL = 0x8E
    FILE_EXISTS = 0x8F
    MODULE_NOT_FOUND = 0x90
    OUT_OF_BOUNDARY = 0x91
    ILLEGAL_FILE_NAME = 0x92
    ILLEGAL_HANDLE = 0x93
    REQUEST_FAILED = 0xBD
    UNKNOWN_OPCODE = 0xBE
    INSANE_PACKET = 0xBF
    OUT_OF_RANGE = 0xC0
    BUS_ERROR = 0xDD
    NO_FREE_MEMORY = 0xDE
    INVALID_CHANNEL = 0xDF
    CHANNEL_BUSY = 0xE0
    NO_ACTIVE_PROGRAM = 0xEC
    ILLEGAL_SIZE = 0xED
    ILLEGAL_MAILBOX = 0xEE
    INVALID_FIELD = 0xEF
    BAD_IO = 0xF0
    INSUFFICIENT_MEMORY = 0xFB
    BAD_ARGUMENTS = 0xFF


STATUS_MESSAGES: dict[int, str] = {
    Status.SUCCESS: "Success",
    Status.PENDING_TRANSACTION: "Pending communication transaction in progress",
    Status.MAILBOX_EMPTY: "Specified mailbox queue is empty",
    Status.NO_MORE_HANDLES: "No more handles",
    Status.NO_SPACE: "No space",
    Status.NO_MORE_FILES: "No more files",
    Status.END_OF_FILE_EXPECTED: "End of file expected",
    Status.END_OF_FILE: "End of file",
    Status.NOT_A_LINEAR_FILE: "Not a linear file",
    Status.FILE_NOT_FOUND: "File not found",
    Status.HANDLE_ALREADY_CLOSED: "Handle already closed",
    Status.NO_LINEAR_SPACE: "No linear space",
    Status.UNDEFINED_ERROR: "Undefined error",
    Status.FILE_IS_BUSY: "File is busy",
    Status.NO_WRITE_BUFFERS: "No write buffers",
    Status.APPEND_NOT_POSSIBLE: "Append not possible",
    Status.FILE_IS_FULL: "File is full",
    Status.FILE_EXISTS: "File exists",
    Status.MODULE_NOT_FOUND: "Module not found",
    Status.OUT_OF_BOUNDARY: "Out of boundary",
    Status.ILLEGAL_FILE_NAME: "Illegal file name",
    Status.ILLEGAL_HANDLE: "Illegal handle",
    Status.REQUEST_FAILED: "Request failed (i.e. specified file not found)",
    Status.UNKNOWN_OPCODE: "Unknown command opcode",
    Status.INSANE_PACKET: "Insane packet",
    Status.OUT_OF_RANGE: "Data contains out-of-range values",
    Status.BUS_ERROR: "Communication bus error",
    Status.NO_FREE_MEMORY: "No free memory in communication buffer",
    Status.INVALID_CHANNEL: "Specified channel/connection is not valid",
    Status.CHANNEL_BUSY: "Specified channel/connection not configured or busy",
    Status.NO_ACTIVE_PROGRAM: "No active program",
    Status.ILLEGAL_SIZE: "Illegal size specified",
    Status.ILLEGAL_MAILBOX: "Illegal mailbox queue ID specified",
    Status.INVALID_FIELD: "Attempted to access invalid field of a structure",
    Status.BAD_IO: "Bad input or output specified",
    Status.INSUFFICIENT_MEMORY: "Insufficient memory available",
    Status.BAD_ARGUMENTS: "Bad arguments",
}


def status_message(status: int) -> str:
    """Return the message for a status byte, with a fallback for unknown codes."""
    try:
        return STATUS_MESSAGES[status]
    except KeyError:
        return f"Unknown error (0x{status:02X})"


# Tone frequency limits accepted by the sound module (Hz)
TONE_MIN_HZ = 200
TONE_MAX_HZ = 14000

FILENAME_SIZE = 20          # name field on the wire
FILENAME_MAX_CHARS = 18     # usable characters; the rest is NUL
BRICK_NAME_SIZE = 16        # 15 characters + NUL
MAX_MESSAGE_LENGTH = 58     # 59-byte mailbox slot incl. NUL
MAX_LS_DATA = 16
MAX_TRANSFER = 58           # largest Read/Write/Poll chunk per telegram
BOOT_PASSPHRASE = b"Let's dance: SAMBA\x00"
