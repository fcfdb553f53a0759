"""Tests for protocol constant tables and status messages."""

from nxt_mcp.protocol.constants import (
    STATUS_MESSAGES,
    CommandType,
    DirectCommand,
    MotorPort,
    SensorPort,
    Status,
    SystemCommand,
    status_message,
)


def test_command_type_values():
    assert CommandType.DIRECT == 0x00
    assert CommandType.SYSTEM == 0x01
    assert CommandType.REPLY == 0x02
    assert CommandType.NO_REPLY == 0x80


def test_opcode_ranges():
    """Direct opcodes live in 0x00-0x13, system opcodes in 0x80-0xA4."""
    assert all(0x00 <= op <= 0x13 for op in DirectCommand)
    assert all(0x80 <= op <= 0xA4 for op in SystemCommand)
    assert DirectCommand.PLAY_TONE == 0x03
    assert DirectCommand.MESSAGE_READ == 0x13
    assert SystemCommand.GET_FIRMWARE_VERSION == 0x88
    assert SystemCommand.BLUETOOTH_FACTORY_RESET == 0xA4


def test_ports():
    assert [int(p) for p in (MotorPort.A, MotorPort.B, MotorPort.C)] == [0, 1, 2]
    assert [int(p) for p in SensorPort] == [0, 1, 2, 3]


def test_every_status_has_a_message():
    assert set(STATUS_MESSAGES) == set(Status)


def test_known_status_messages():
    assert status_message(0x00) == "Success"
    assert status_message(0x87) == "File not found"
    assert status_message(0xEC) == "No active program"


def test_unknown_status_falls_back():
    """Unrecognized codes never fail; they map to a generic message."""
    assert status_message(0x55) == "Unknown error (0x55)"
