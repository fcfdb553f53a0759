"""MCP server entry point for the LEGO MINDSTORMS NXT brick.

Exposes brick control as tools via the Model Context Protocol using the
official Python MCP SDK with stdio transport.
"""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any

from mcp.server.fastmcp import FastMCP

from .brick import Brick
from .config import Settings
from .errors import NXTError, ProtocolError
from .protocol.constants import (
    MotorPort,
    OutputMode,
    RegulationMode,
    RunState,
    SensorMode,
    SensorPort,
    SensorType,
)

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "nxt-brick",
    instructions="MCP server for the LEGO MINDSTORMS NXT programmable brick",
)

# Global connection state
_brick: Brick | None = None
_settings: Settings = Settings()


def _get_brick() -> Brick:
    """Get the active brick, raising if not connected."""
    if _brick is None or not _brick.connected:
        raise RuntimeError(
            "Not connected to brick. Use the 'connect' tool first."
        )
    return _brick


def _wait(future) -> dict[str, Any]:
    """Block on a reply future and turn the result into a tool response."""
    try:
        result = future.result(timeout=_settings.timeout + 1.0)
    except ProtocolError as e:
        return {"error": str(e)}
    return asdict(result)


def _motor_port(port: str) -> MotorPort:
    try:
        return MotorPort[port.upper()]
    except KeyError:
        raise ValueError(f"Unknown motor port '{port}'. Valid: {[p.name for p in MotorPort]}") from None


def _sensor_port(port: int) -> SensorPort:
    if not 1 <= port <= 4:
        raise ValueError(f"Sensor port must be 1-4, got {port}")
    return SensorPort(port - 1)


# ─── CONNECTION TOOLS ─────────────────────────────────────────────────

@mcp.tool()
def connect(transport: str | None = None, port: str | None = None) -> dict[str, Any]:
    """Open a connection to the NXT brick.

    Args:
        transport: "bluetooth" (serial port, default) or "usb".
        port: Serial port of the paired brick, e.g. /dev/rfcomm0 or COM5.
    """
    global _brick, _settings
    if _brick is not None and _brick.connected:
        return {"connected": True, "message": "Already connected"}

    _settings = Settings(
        port=port or _settings.port,
        baudrate=_settings.baudrate,
        transport=transport or _settings.transport,
        timeout=_settings.timeout,
        log_level=_settings.log_level,
    )
    _brick = Brick.from_settings(_settings).open()

    result: dict[str, Any] = {"connected": True, "transport": _settings.transport}
    try:
        info = _brick.get_device_info().result(timeout=_settings.timeout + 1.0)
        result["name"] = info.name
        result["bluetooth_address"] = info.bluetooth_address
    except NXTError as e:
        logger.warning("Connected, but device info query failed: %s", e)
    return result


@mcp.tool()
def disconnect() -> dict[str, bool]:
    """Close the connection to the brick."""
    global _brick
    if _brick is None:
        return {"disconnected": True}
    _brick.close()
    _brick = None
    return {"disconnected": True}


# ─── DEVICE TOOLS ─────────────────────────────────────────────────────

@mcp.tool()
def get_device_info() -> dict[str, Any]:
    """Read the brick name, Bluetooth address, signal strength and free flash."""
    return _wait(_get_brick().get_device_info())


@mcp.tool()
def get_firmware_version() -> dict[str, Any]:
    """Read the protocol and firmware versions."""
    brick = _get_brick()
    try:
        version = brick.get_firmware_version().result(timeout=_settings.timeout + 1.0)
    except ProtocolError as e:
        return {"error": str(e)}
    return {"protocol": version.protocol, "firmware": version.firmware}


@mcp.tool()
def get_battery_level() -> dict[str, Any]:
    """Read the battery voltage in millivolts."""
    return _wait(_get_brick().get_battery_level())


@mcp.tool()
def play_tone(frequency: int = 440, duration: int = 500) -> dict[str, Any]:
    """Play a tone on the brick speaker.

    Args:
        frequency: Hz, clamped to 200-14000.
        duration: Milliseconds.
    """
    return _wait(_get_brick().play_tone(frequency, duration, reply=True))


@mcp.tool()
def start_program(filename: str) -> dict[str, Any]:
    """Start an on-brick program, e.g. "demo.rxe"."""
    return _wait(_get_brick().start_program(filename, reply=True))


@mcp.tool()
def stop_program() -> dict[str, Any]:
    """Stop the running on-brick program."""
    return _wait(_get_brick().stop_program(reply=True))


# ─── MOTOR TOOLS ──────────────────────────────────────────────────────

@mcp.tool()
def set_motor(port: str, power: int, tacho_limit: int = 0, brake: bool = True) -> dict[str, Any]:
    """Run a motor with speed regulation.

    Args:
        port: A, B, C or ALL.
        power: -100 to 100; 0 stops the motor.
        tacho_limit: Degrees to turn before stopping, 0 runs forever.
        brake: Actively brake instead of coasting when power is 0.
    """
    motor = _motor_port(port)
    if power == 0:
        mode = OutputMode.MOTOR_ON | OutputMode.BRAKE if brake else OutputMode.COAST
        regulation, run_state = RegulationMode.IDLE, RunState.IDLE
    else:
        mode = OutputMode.MOTOR_ON | OutputMode.BRAKE | OutputMode.REGULATED
        regulation, run_state = RegulationMode.MOTOR_SPEED, RunState.RUNNING
    return _wait(
        _get_brick().set_output_state(
            motor, power, mode, regulation, 0, run_state, tacho_limit, reply=True
        )
    )


@mcp.tool()
def get_motor_state(port: str) -> dict[str, Any]:
    """Read power, mode, run state and tacho counters of a motor (A, B or C)."""
    return _wait(_get_brick().get_output_state(_motor_port(port)))


@mcp.tool()
def reset_motor_position(port: str, relative: bool = False) -> dict[str, Any]:
    """Reset a motor's rotation counter."""
    return _wait(_get_brick().reset_motor_position(_motor_port(port), relative, reply=True))


# ─── SENSOR TOOLS ─────────────────────────────────────────────────────

@mcp.tool()
def set_sensor_mode(port: int, sensor_type: str, sensor_mode: str = "RAW") -> dict[str, Any]:
    """Configure a sensor port.

    Args:
        port: Sensor port 1-4.
        sensor_type: e.g. SWITCH, LIGHT_ACTIVE, SOUND_DB, LOW_SPEED_9V.
        sensor_mode: e.g. RAW, BOOLEAN, PCT_FULL_SCALE, CELSIUS.
    """
    try:
        kind = SensorType[sensor_type.upper()]
        mode = SensorMode[sensor_mode.upper()]
    except KeyError as e:
        return {"error": f"Unknown sensor type or mode: {e}"}
    return _wait(_get_brick().set_input_mode(_sensor_port(port), kind, mode, reply=True))


@mcp.tool()
def get_sensor_values(port: int) -> dict[str, Any]:
    """Read raw, normalized, scaled and calibrated values of a sensor port (1-4)."""
    return _wait(_get_brick().get_input_values(_sensor_port(port)))


# ─── MAILBOX TOOLS ────────────────────────────────────────────────────

@mcp.tool()
def message_write(inbox: int, message: str) -> dict[str, Any]:
    """Write a message to one of the brick's mailboxes (0-9)."""
    return _wait(_get_brick().message_write(inbox, message, reply=True))


@mcp.tool()
def message_read(inbox: int, remove: bool = True) -> dict[str, Any]:
    """Read a message the running program left in a mailbox (0-19)."""
    return _wait(_get_brick().message_read(inbox, inbox % 10, remove))


# ─── FILE TOOLS ───────────────────────────────────────────────────────

@mcp.tool()
def list_files(pattern: str = "*.*") -> dict[str, Any]:
    """List files on the brick matching a wildcard pattern such as *.rxe."""
    try:
        files = [
            {"name": entry.filename, "size": entry.size}
            for entry in _get_brick().iter_files(pattern)
        ]
    except ProtocolError as e:
        return {"error": str(e)}
    return {"files": files}


# ─── ENTRY POINT ─────────────────────────────────────────────────────

def main():
    """Run the MCP server with stdio transport."""
    global _settings
    _settings = Settings.from_env()
    logging.basicConfig(level=_settings.log_level)
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
