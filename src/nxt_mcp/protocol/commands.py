"""Request encoders, one builder per opcode.

Every builder returns the unframed command bytes::

    +------+--------+------------------------------+
    | Type | Opcode | Payload (opcode-specific)    |
    | 1 B  | 1 B    | fixed or length-prefixed     |
    +------+--------+------------------------------+

The type byte is ``DIRECT`` (0x00) or ``SYSTEM`` (0x01), ORed with
``NO_REPLY`` (0x80) when ``reply`` is False. Numeric fields are
little-endian and are truncated to their width; apart from the tone
frequency clamp the caller is responsible for ranges.
"""

from __future__ import annotations

from .constants import (
    BOOT_PASSPHRASE,
    BRICK_NAME_SIZE,
    FILENAME_MAX_CHARS,
    FILENAME_SIZE,
    MAX_LS_DATA,
    MAX_MESSAGE_LENGTH,
    MAX_TRANSFER,
    TONE_MAX_HZ,
    TONE_MIN_HZ,
    CommandType,
    DirectCommand,
    SystemCommand,
)


def u8(value: int) -> bytes:
    return bytes([value & 0xFF])


def u16(value: int) -> bytes:
    return (value & 0xFFFF).to_bytes(2, "little")


def u32(value: int) -> bytes:
    return (value & 0xFFFFFFFF).to_bytes(4, "little")


def _text_field(text: str, size: int, max_chars: int | None = None) -> bytes:
    """Encode ASCII text into a NUL-terminated, NUL-padded field of ``size`` bytes.

    Text longer than ``max_chars`` (default ``size - 1``) is truncated.
    """
    try:
        raw = text.encode("ascii")
    except UnicodeEncodeError as e:
        raise ValueError(f"Text must be ASCII, got {text!r}") from e
    if max_chars is None:
        max_chars = size - 1
    raw = raw[:max_chars]
    return raw + b"\x00" * (size - len(raw))


def filename_field(name: str) -> bytes:
    """20-byte file name field (18 usable characters, NUL-padded)."""
    return _text_field(name, FILENAME_SIZE, FILENAME_MAX_CHARS)


def brick_name_field(name: str) -> bytes:
    """16-byte brick name field (15 usable characters + terminator)."""
    return _text_field(name, BRICK_NAME_SIZE)


def build_command(
    command_type: CommandType,
    opcode: int,
    payload: bytes = b"",
    reply: bool = True,
) -> bytes:
    """Assemble ``[type][opcode][payload]``, setting NO_REPLY when no reply is wanted."""
    type_byte = int(command_type)
    if not reply:
        type_byte |= CommandType.NO_REPLY
    return bytes([type_byte, int(opcode) & 0xFF]) + payload


def _direct(opcode: DirectCommand, payload: bytes = b"", reply: bool = True) -> bytes:
    return build_command(CommandType.DIRECT, opcode, payload, reply)


def _system(opcode: SystemCommand, payload: bytes = b"", reply: bool = True) -> bytes:
    return build_command(CommandType.SYSTEM, opcode, payload, reply)


def clamp_frequency(frequency: int) -> int:
    return max(TONE_MIN_HZ, min(TONE_MAX_HZ, frequency))


# ─── DIRECT COMMANDS ─────────────────────────────────────────────────

def build_start_program(filename: str, reply: bool = True) -> bytes:
    return _direct(DirectCommand.START_PROGRAM, filename_field(filename), reply)


def build_stop_program(reply: bool = True) -> bytes:
    return _direct(DirectCommand.STOP_PROGRAM, reply=reply)


def build_play_sound_file(filename: str, loop: bool = False, reply: bool = True) -> bytes:
    payload = u8(1 if loop else 0) + filename_field(filename)
    return _direct(DirectCommand.PLAY_SOUND_FILE, payload, reply)


def build_play_tone(frequency: int, duration: int, reply: bool = True) -> bytes:
    """Build a PlayTone command.

    Args:
        frequency: Tone in Hz, clamped to 200-14000.
        duration: Duration in milliseconds.
    """
    payload = u16(clamp_frequency(frequency)) + u16(duration)
    return _direct(DirectCommand.PLAY_TONE, payload, reply)


def build_set_output_state(
    port: int,
    power: int,
    mode: int,
    regulation_mode: int,
    turn_ratio: int,
    run_state: int,
    tacho_limit: int,
    reply: bool = True,
) -> bytes:
    """Build a SetOutputState command.

    Args:
        port: Motor port (0-2, or 0xFF for all).
        power: Power set point, -100..100 (sent as a signed byte).
        mode: ``OutputMode`` bit field.
        regulation_mode: ``RegulationMode`` value.
        turn_ratio: -100..100 (sent as a signed byte).
        run_state: ``RunState`` value.
        tacho_limit: Rotation limit in degrees, 0 means run forever.
    """
    payload = (
        u8(port)
        + u8(power)
        + u8(mode)
        + u8(regulation_mode)
        + u8(turn_ratio)
        + u8(run_state)
        + u32(tacho_limit)
    )
    return _direct(DirectCommand.SET_OUTPUT_STATE, payload, reply)


def build_set_input_mode(
    port: int, sensor_type: int, sensor_mode: int, reply: bool = True
) -> bytes:
    payload = u8(port) + u8(sensor_type) + u8(sensor_mode)
    return _direct(DirectCommand.SET_INPUT_MODE, payload, reply)


def build_get_output_state(port: int, reply: bool = True) -> bytes:
    return _direct(DirectCommand.GET_OUTPUT_STATE, u8(port), reply)


def build_get_input_values(port: int, reply: bool = True) -> bytes:
    return _direct(DirectCommand.GET_INPUT_VALUES, u8(port), reply)


def build_reset_input_scaled_value(port: int, reply: bool = True) -> bytes:
    return _direct(DirectCommand.RESET_INPUT_SCALED_VALUE, u8(port), reply)


def build_message_write(inbox: int, message: str, reply: bool = True) -> bytes:
    """Build a MessageWrite command.

    The size byte counts the NUL terminator, so a message of ``n``
    characters occupies ``n + 1`` bytes on the wire.
    """
    if len(message) > MAX_MESSAGE_LENGTH:
        raise ValueError(
            f"Message must be at most {MAX_MESSAGE_LENGTH} characters, got {len(message)}"
        )
    body = _text_field(message, len(message) + 1)
    payload = u8(inbox) + u8(len(body)) + body
    return _direct(DirectCommand.MESSAGE_WRITE, payload, reply)


def build_reset_motor_position(port: int, relative: bool = False, reply: bool = True) -> bytes:
    payload = u8(port) + u8(1 if relative else 0)
    return _direct(DirectCommand.RESET_MOTOR_POSITION, payload, reply)


def build_get_battery_level(reply: bool = True) -> bytes:
    return _direct(DirectCommand.GET_BATTERY_LEVEL, reply=reply)


def build_stop_sound_playback(reply: bool = True) -> bytes:
    return _direct(DirectCommand.STOP_SOUND_PLAYBACK, reply=reply)


def build_keep_alive(reply: bool = True) -> bytes:
    return _direct(DirectCommand.KEEP_ALIVE, reply=reply)


def build_ls_get_status(port: int, reply: bool = True) -> bytes:
    return _direct(DirectCommand.LS_GET_STATUS, u8(port), reply)


def build_ls_write(port: int, tx_data: bytes, rx_length: int, reply: bool = True) -> bytes:
    """Build an LSWrite (I2C) command.

    Args:
        port: Sensor port 0-3.
        tx_data: Bytes to send on the bus, at most 16.
        rx_length: Number of bytes the sensor is expected to answer with.
    """
    if len(tx_data) > MAX_LS_DATA:
        raise ValueError(f"LS data must be at most {MAX_LS_DATA} bytes, got {len(tx_data)}")
    payload = u8(port) + u8(len(tx_data)) + u8(rx_length) + bytes(tx_data)
    return _direct(DirectCommand.LS_WRITE, payload, reply)


def build_ls_read(port: int, reply: bool = True) -> bytes:
    return _direct(DirectCommand.LS_READ, u8(port), reply)


def build_get_current_program_name(reply: bool = True) -> bytes:
    return _direct(DirectCommand.GET_CURRENT_PROGRAM_NAME, reply=reply)


def build_message_read(
    remote_inbox: int, local_inbox: int, remove: bool = True, reply: bool = True
) -> bytes:
    payload = u8(remote_inbox) + u8(local_inbox) + u8(1 if remove else 0)
    return _direct(DirectCommand.MESSAGE_READ, payload, reply)


# ─── SYSTEM COMMANDS ─────────────────────────────────────────────────

def build_open_read(filename: str, reply: bool = True) -> bytes:
    return _system(SystemCommand.OPEN_READ, filename_field(filename), reply)


def build_open_write(filename: str, size: int, reply: bool = True) -> bytes:
    return _system(SystemCommand.OPEN_WRITE, filename_field(filename) + u32(size), reply)


def build_read(handle: int, count: int, reply: bool = True) -> bytes:
    if count > MAX_TRANSFER:
        raise ValueError(f"Read count must be at most {MAX_TRANSFER}, got {count}")
    return _system(SystemCommand.READ, u8(handle) + u16(count), reply)


def build_write(handle: int, data: bytes, reply: bool = True) -> bytes:
    if len(data) > MAX_TRANSFER:
        raise ValueError(f"Write chunk must be at most {MAX_TRANSFER} bytes, got {len(data)}")
    return _system(SystemCommand.WRITE, u8(handle) + bytes(data), reply)


def build_close(handle: int, reply: bool = True) -> bytes:
    return _system(SystemCommand.CLOSE, u8(handle), reply)


def build_delete(filename: str, reply: bool = True) -> bytes:
    return _system(SystemCommand.DELETE, filename_field(filename), reply)


def build_find_first(pattern: str = "*.*", reply: bool = True) -> bytes:
    return _system(SystemCommand.FIND_FIRST, filename_field(pattern), reply)


def build_find_next(handle: int, reply: bool = True) -> bytes:
    return _system(SystemCommand.FIND_NEXT, u8(handle), reply)


def build_get_firmware_version(reply: bool = True) -> bytes:
    return _system(SystemCommand.GET_FIRMWARE_VERSION, reply=reply)


def build_open_write_linear(filename: str, size: int, reply: bool = True) -> bytes:
    return _system(
        SystemCommand.OPEN_WRITE_LINEAR, filename_field(filename) + u32(size), reply
    )


def build_open_read_linear(filename: str, reply: bool = True) -> bytes:
    return _system(SystemCommand.OPEN_READ_LINEAR, filename_field(filename), reply)


def build_open_write_data(filename: str, size: int, reply: bool = True) -> bytes:
    return _system(
        SystemCommand.OPEN_WRITE_DATA, filename_field(filename) + u32(size), reply
    )


def build_open_append_data(filename: str, reply: bool = True) -> bytes:
    return _system(SystemCommand.OPEN_APPEND_DATA, filename_field(filename), reply)


def build_boot(reply: bool = True) -> bytes:
    """Build a Boot command (USB only): puts the brick into firmware-update mode."""
    return _system(SystemCommand.BOOT, BOOT_PASSPHRASE, reply)


def build_set_brick_name(name: str, reply: bool = True) -> bytes:
    return _system(SystemCommand.SET_BRICK_NAME, brick_name_field(name), reply)


def build_get_device_info(reply: bool = True) -> bytes:
    return _system(SystemCommand.GET_DEVICE_INFO, reply=reply)


def build_delete_user_flash(reply: bool = True) -> bytes:
    return _system(SystemCommand.DELETE_USER_FLASH, reply=reply)


def build_poll_length(buffer: int, reply: bool = True) -> bytes:
    return _system(SystemCommand.POLL_LENGTH, u8(buffer), reply)


def build_poll(buffer: int, count: int, reply: bool = True) -> bytes:
    return _system(SystemCommand.POLL, u8(buffer) + u8(count), reply)


def build_bluetooth_factory_reset(reply: bool = True) -> bytes:
    return _system(SystemCommand.BLUETOOTH_FACTORY_RESET, reply=reply)
