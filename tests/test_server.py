"""Tests for the MCP tool layer with FastMCP and the brick mocked."""

from __future__ import annotations

import sys
from concurrent.futures import Future
from unittest.mock import MagicMock, patch

import pytest

from nxt_mcp.errors import ProtocolStatusError
from nxt_mcp.protocol.constants import (
    MotorPort,
    OutputMode,
    RegulationMode,
    RunState,
    SensorMode,
    SensorPort,
    SensorType,
)
from nxt_mcp.protocol.parser import BatteryLevel, FileEntry, FirmwareVersion, StatusResult


def _get_server_module():
    """Import server module with FastMCP mocked to avoid init issues."""
    mock_fastmcp_cls = MagicMock()
    mock_fastmcp_instance = MagicMock()
    # Make the @mcp.tool() decorator a no-op that returns the function unchanged
    mock_fastmcp_instance.tool.return_value = lambda fn: fn
    mock_fastmcp_cls.return_value = mock_fastmcp_instance

    with patch("mcp.server.fastmcp.FastMCP", mock_fastmcp_cls):
        # Remove cached server module so it re-imports with our mock
        sys.modules.pop("nxt_mcp.server", None)
        import nxt_mcp.server as server_mod

    return server_mod


def _done(result=None, error=None) -> Future:
    future: Future = Future()
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(result)
    return future


@pytest.fixture
def server():
    server_mod = _get_server_module()
    brick = MagicMock()
    brick.connected = True
    server_mod._brick = brick
    yield server_mod
    server_mod._brick = None


def test_requires_connection():
    server_mod = _get_server_module()
    server_mod._brick = None
    with pytest.raises(RuntimeError):
        server_mod.get_battery_level()


def test_get_battery_level(server):
    server._brick.get_battery_level.return_value = _done(BatteryLevel(status=0, voltage_mv=7900))
    assert server.get_battery_level() == {"status": 0, "voltage_mv": 7900}


def test_get_firmware_version(server):
    server._brick.get_firmware_version.return_value = _done(
        FirmwareVersion(status=0, protocol_minor=124, protocol_major=1, firmware_minor=29, firmware_major=1)
    )
    assert server.get_firmware_version() == {"protocol": "1.124", "firmware": "1.29"}


def test_play_tone_waits_for_reply(server):
    server._brick.play_tone.return_value = _done(StatusResult(status=0))
    assert server.play_tone(440, 200) == {"status": 0}
    server._brick.play_tone.assert_called_once_with(440, 200, reply=True)


def test_protocol_error_is_returned(server):
    server._brick.start_program.return_value = _done(error=ProtocolStatusError(0x87))
    assert server.start_program("nope.rxe") == {"error": "File not found"}


def test_set_motor_running(server):
    server._brick.set_output_state.return_value = _done(StatusResult(status=0))
    server.set_motor("b", 75, tacho_limit=360)
    server._brick.set_output_state.assert_called_once_with(
        MotorPort.B,
        75,
        OutputMode.MOTOR_ON | OutputMode.BRAKE | OutputMode.REGULATED,
        RegulationMode.MOTOR_SPEED,
        0,
        RunState.RUNNING,
        360,
        reply=True,
    )


def test_set_motor_stop_coasts(server):
    server._brick.set_output_state.return_value = _done(StatusResult(status=0))
    server.set_motor("A", 0, brake=False)
    args = server._brick.set_output_state.call_args[0]
    assert args[2] == OutputMode.COAST
    assert args[5] == RunState.IDLE


def test_unknown_motor_port(server):
    with pytest.raises(ValueError):
        server.get_motor_state("D")


def test_set_sensor_mode(server):
    server._brick.set_input_mode.return_value = _done(StatusResult(status=0))
    server.set_sensor_mode(1, "switch", "boolean")
    server._brick.set_input_mode.assert_called_once_with(
        SensorPort.S1, SensorType.SWITCH, SensorMode.BOOLEAN, reply=True
    )


def test_set_sensor_mode_unknown_type(server):
    assert "error" in server.set_sensor_mode(1, "laser")


def test_sensor_port_bounds(server):
    with pytest.raises(ValueError):
        server.get_sensor_values(5)


def test_list_files(server):
    server._brick.iter_files.return_value = iter(
        [FileEntry(status=0, handle=1, filename="demo.rxe", size=512)]
    )
    assert server.list_files("*.rxe") == {"files": [{"name": "demo.rxe", "size": 512}]}


def test_disconnect(server):
    brick = server._brick
    assert server.disconnect() == {"disconnected": True}
    brick.close.assert_called_once()
    assert server._brick is None
