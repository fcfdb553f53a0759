"""Controller facade: one method per NXT command.

Action commands take ``reply`` (default False) and ``callback``; queries
always want their reply and only take ``callback``:

- ``reply=False`` and no callback: the NO_REPLY bit is set, the command is
  written and the method returns ``None``. A failed write raises
  :class:`~nxt_mcp.errors.TransportError`.
- otherwise the reply is registered *before* the write and the method
  returns a :class:`concurrent.futures.Future` resolving to the decoded
  result. It fails with ``ProtocolStatusError`` (nonzero status),
  ``TransportError`` (the write failed) or ``ResponseTimeout``. Cancelling
  the future removes the registration. ``callback(error, result)`` is called
  exactly once when the future completes, unless it was cancelled.

Only one request per opcode can be in flight. A second request for the same
opcode cancels the first one's future; see :mod:`nxt_mcp.protocol.correlator`.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, InvalidStateError
from typing import Any, Callable, Iterator, Optional

from .config import DEFAULT_TIMEOUT, Settings
from .errors import NXTError, ProtocolStatusError, ResponseDecodeError, TransportError
from .protocol import commands
from .protocol.constants import MAX_TRANSFER, CommandType, Status
from .protocol.correlator import ResponseCorrelator
from .protocol.framing import Frame, FrameAssembler, Framer
from .protocol.parser import FileEntry, parse_response
from .transport.base import Transport

logger = logging.getLogger(__name__)

# callback(error, result)
ResultCallback = Callable[[Optional[BaseException], Any], None]

_END_OF_LISTING = (Status.FILE_NOT_FOUND, Status.NO_MORE_FILES)


class Brick:
    """A connection to one NXT brick over a :class:`Transport`.

    Usage::

        with Brick(SerialTransport("/dev/rfcomm0")) as brick:
            brick.play_tone(440, 500)
            level = brick.get_battery_level().result()
    """

    def __init__(
        self,
        transport: Transport,
        length_prefixed: bool = True,
        timeout: float | None = DEFAULT_TIMEOUT,
    ) -> None:
        self.transport = transport
        self.timeout = timeout
        self.framer = Framer(length_prefixed)
        self.correlator = ResponseCorrelator(self.framer)
        self._assembler = FrameAssembler() if length_prefixed else None
        transport.on_data(self._on_data)

    @classmethod
    def from_settings(cls, settings: Settings) -> Brick:
        """Build a brick with the transport ``settings`` selects (not yet opened)."""
        if settings.transport == "usb":
            from .transport.usb_connection import USBTransport

            transport: Transport = USBTransport()
        else:
            from .transport.serial_connection import SerialTransport

            transport = SerialTransport(settings.port, settings.baudrate)
        return cls(transport, length_prefixed=settings.length_prefixed, timeout=settings.timeout)

    # ─── LIFECYCLE ───────────────────────────────────────────────────

    @property
    def connected(self) -> bool:
        return self.transport.connected

    def open(self) -> Brick:
        self.transport.open()
        return self

    def close(self) -> None:
        """Fail every pending request and close the transport."""
        failed = self.correlator.fail_all(TransportError("Connection closed"))
        if failed:
            logger.warning("Closed with %d request(s) still pending", failed)
        if self._assembler is not None:
            self._assembler.reset()
        self.transport.close()

    def __enter__(self) -> Brick:
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ─── PLUMBING ────────────────────────────────────────────────────

    def _on_data(self, data: bytes) -> None:
        if self._assembler is None:
            self.correlator.dispatch(data)
            return
        for telegram in self._assembler.feed(data):
            self.correlator.dispatch(telegram)

    def _write(self, command: bytes) -> None:
        try:
            self.transport.write(self.framer.wrap(command))
        except TransportError:
            raise
        except Exception as e:
            raise TransportError(f"Write failed: {e}") from e

    def send(
        self,
        command: bytes,
        reply: bool = True,
        callback: ResultCallback | None = None,
    ) -> Future | None:
        """Send an encoded command, registering for its reply when one is wanted."""
        if not reply and callback is None:
            self._write(bytes([command[0] | CommandType.NO_REPLY]) + command[1:])
            return None

        future: Future = Future()

        def on_response(
            error: Optional[Exception], status: Optional[int], frame: Optional[Frame]
        ) -> None:
            result = None
            if error is None:
                try:
                    result = parse_response(frame)
                except ResponseDecodeError as e:
                    error = e
            try:
                if error is not None:
                    future.set_exception(error)
                else:
                    future.set_result(result)
            except InvalidStateError:
                # Cancelled by the caller while the reply was in flight
                pass

        entry = self.correlator.register(
            command[1], on_response, self.timeout, on_replaced=future.cancel
        )
        future.add_done_callback(
            lambda f: self.correlator.cancel(entry) if f.cancelled() else None
        )
        if callback is not None:
            future.add_done_callback(lambda f: _notify(f, callback))

        try:
            self._write(command)
        except TransportError as e:
            self.correlator.fail(entry, e)
        return future

    # ─── DIRECT COMMANDS ─────────────────────────────────────────────

    def start_program(self, filename: str, reply=False, callback=None):
        return self.send(commands.build_start_program(filename), reply, callback)

    def stop_program(self, reply=False, callback=None):
        return self.send(commands.build_stop_program(), reply, callback)

    def play_sound_file(self, filename: str, loop: bool = False, reply=False, callback=None):
        return self.send(commands.build_play_sound_file(filename, loop), reply, callback)

    def play_tone(self, frequency: int, duration: int, reply=False, callback=None):
        return self.send(commands.build_play_tone(frequency, duration), reply, callback)

    def set_output_state(
        self,
        port: int,
        power: int,
        mode: int,
        regulation_mode: int,
        turn_ratio: int,
        run_state: int,
        tacho_limit: int = 0,
        reply=False,
        callback=None,
    ):
        command = commands.build_set_output_state(
            port, power, mode, regulation_mode, turn_ratio, run_state, tacho_limit
        )
        return self.send(command, reply, callback)

    def set_input_mode(self, port: int, sensor_type: int, sensor_mode: int, reply=False, callback=None):
        return self.send(
            commands.build_set_input_mode(port, sensor_type, sensor_mode), reply, callback
        )

    def get_output_state(self, port: int, callback=None):
        return self.send(commands.build_get_output_state(port), True, callback)

    def get_input_values(self, port: int, callback=None):
        return self.send(commands.build_get_input_values(port), True, callback)

    def reset_input_scaled_value(self, port: int, reply=False, callback=None):
        return self.send(commands.build_reset_input_scaled_value(port), reply, callback)

    def message_write(self, inbox: int, message: str, reply=False, callback=None):
        return self.send(commands.build_message_write(inbox, message), reply, callback)

    def reset_motor_position(self, port: int, relative: bool = False, reply=False, callback=None):
        return self.send(commands.build_reset_motor_position(port, relative), reply, callback)

    def get_battery_level(self, callback=None):
        return self.send(commands.build_get_battery_level(), True, callback)

    def stop_sound_playback(self, reply=False, callback=None):
        return self.send(commands.build_stop_sound_playback(), reply, callback)

    def keep_alive(self, reply=False, callback=None):
        return self.send(commands.build_keep_alive(), reply, callback)

    def ls_get_status(self, port: int, callback=None):
        return self.send(commands.build_ls_get_status(port), True, callback)

    def ls_write(self, port: int, tx_data: bytes, rx_length: int, reply=False, callback=None):
        return self.send(commands.build_ls_write(port, tx_data, rx_length), reply, callback)

    def ls_read(self, port: int, callback=None):
        return self.send(commands.build_ls_read(port), True, callback)

    def get_current_program_name(self, callback=None):
        return self.send(commands.build_get_current_program_name(), True, callback)

    def message_read(self, remote_inbox: int, local_inbox: int, remove: bool = True, callback=None):
        return self.send(
            commands.build_message_read(remote_inbox, local_inbox, remove), True, callback
        )

    # ─── SYSTEM COMMANDS ─────────────────────────────────────────────

    def open_read(self, filename: str, callback=None):
        return self.send(commands.build_open_read(filename), True, callback)

    def open_write(self, filename: str, size: int, callback=None):
        return self.send(commands.build_open_write(filename, size), True, callback)

    def read(self, handle: int, count: int, callback=None):
        return self.send(commands.build_read(handle, count), True, callback)

    def write(self, handle: int, data: bytes, reply=False, callback=None):
        return self.send(commands.build_write(handle, data), reply, callback)

    def close_handle(self, handle: int, reply=False, callback=None):
        return self.send(commands.build_close(handle), reply, callback)

    def delete(self, filename: str, reply=False, callback=None):
        return self.send(commands.build_delete(filename), reply, callback)

    def find_first(self, pattern: str = "*.*", callback=None):
        return self.send(commands.build_find_first(pattern), True, callback)

    def find_next(self, handle: int, callback=None):
        return self.send(commands.build_find_next(handle), True, callback)

    def get_firmware_version(self, callback=None):
        return self.send(commands.build_get_firmware_version(), True, callback)

    def open_write_linear(self, filename: str, size: int, callback=None):
        return self.send(commands.build_open_write_linear(filename, size), True, callback)

    def open_read_linear(self, filename: str, callback=None):
        return self.send(commands.build_open_read_linear(filename), True, callback)

    def open_write_data(self, filename: str, size: int, callback=None):
        return self.send(commands.build_open_write_data(filename, size), True, callback)

    def open_append_data(self, filename: str, callback=None):
        return self.send(commands.build_open_append_data(filename), True, callback)

    def boot(self, callback=None):
        return self.send(commands.build_boot(), True, callback)

    def set_brick_name(self, name: str, reply=False, callback=None):
        return self.send(commands.build_set_brick_name(name), reply, callback)

    def get_device_info(self, callback=None):
        return self.send(commands.build_get_device_info(), True, callback)

    def delete_user_flash(self, reply=False, callback=None):
        return self.send(commands.build_delete_user_flash(), reply, callback)

    def poll_length(self, buffer: int, callback=None):
        return self.send(commands.build_poll_length(buffer), True, callback)

    def poll(self, buffer: int, count: int, callback=None):
        return self.send(commands.build_poll(buffer, count), True, callback)

    def bluetooth_factory_reset(self, reply=False, callback=None):
        return self.send(commands.build_bluetooth_factory_reset(), reply, callback)

    # ─── BLOCKING HELPERS ────────────────────────────────────────────

    def iter_files(self, pattern: str = "*.*") -> Iterator[FileEntry]:
        """Yield every file matching ``pattern``, blocking on each reply."""
        try:
            entry = self.find_first(pattern).result()
        except ProtocolStatusError as e:
            if e.status in _END_OF_LISTING:
                return
            raise

        try:
            while True:
                yield entry
                try:
                    entry = self.find_next(entry.handle).result()
                except ProtocolStatusError as e:
                    if e.status in _END_OF_LISTING:
                        return
                    raise
        finally:
            self._close_quietly(entry.handle)

    def read_file(self, filename: str) -> bytes:
        """Read a whole file from the brick."""
        opened = self.open_read(filename).result()
        data = bytearray()
        try:
            while len(data) < opened.size:
                count = min(MAX_TRANSFER, opened.size - len(data))
                chunk = self.read(opened.handle, count).result()
                if not chunk.data:
                    break
                data += chunk.data
        finally:
            self._close_quietly(opened.handle)
        return bytes(data)

    def _close_quietly(self, handle: int) -> None:
        try:
            self.close_handle(handle, reply=True).result()
        except NXTError as e:
            logger.debug("Closing handle %d: %s", handle, e)


def _notify(future: Future, callback: ResultCallback) -> None:
    if future.cancelled():
        return
    error = future.exception()
    callback(error, None if error is not None else future.result())
