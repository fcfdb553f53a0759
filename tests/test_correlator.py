"""Tests for the pending-response registry."""

import threading

from nxt_mcp.errors import ProtocolStatusError, ResponseTimeout, TransportError
from nxt_mcp.protocol.correlator import ResponseCorrelator
from nxt_mcp.protocol.framing import Framer


def _reply(opcode: int, payload: bytes = b"", status: int = 0) -> bytes:
    body = bytes([0x02, opcode, status]) + payload
    return len(body).to_bytes(2, "little") + body


class Recorder:
    """Callback that records every invocation."""

    def __init__(self):
        self.calls = []

    def __call__(self, error, status, frame):
        self.calls.append((error, status, frame))


def _correlator() -> ResponseCorrelator:
    return ResponseCorrelator(Framer(length_prefixed=True))


def test_dispatch_delivers_once_and_deregisters():
    correlator = _correlator()
    callback = Recorder()
    correlator.register(0x0B, callback)

    assert correlator.dispatch(_reply(0x0B, b"\x40\x1f"))
    assert 0x0B not in correlator
    assert correlator.dispatch(_reply(0x0B, b"\x40\x1f")) is False

    assert len(callback.calls) == 1
    error, status, frame = callback.calls[0]
    assert error is None
    assert status == 0
    assert frame.payload == b"\x40\x1f"


def test_second_registration_replaces_first():
    """Only the newest callback for an opcode fires."""
    correlator = _correlator()
    first, second = Recorder(), Recorder()
    correlator.register(0x06, first)
    correlator.register(0x06, second)

    correlator.dispatch(_reply(0x06, bytes(22)))

    assert first.calls == []
    assert len(second.calls) == 1
    assert len(correlator) == 0


def test_replaced_entry_runs_hook_and_stops_timer():
    correlator = _correlator()
    first = Recorder()
    replaced = []
    entry = correlator.register(0x06, first, timeout=0.05, on_replaced=lambda: replaced.append(True))

    correlator.register(0x06, Recorder())

    assert replaced == [True]
    assert entry.timer.finished.is_set()
    assert first.calls == []


def test_unmatched_reply_is_dropped():
    correlator = _correlator()
    other = Recorder()
    correlator.register(0x0B, other)

    assert correlator.dispatch(_reply(0x03)) is False
    assert other.calls == []
    assert 0x0B in correlator


def test_short_telegram_is_dropped():
    assert _correlator().dispatch(b"\x01\x00\x02") is False


def test_nonzero_status_maps_to_error():
    correlator = _correlator()
    callback = Recorder()
    correlator.register(0x80, callback)

    correlator.dispatch(_reply(0x80, status=0x87))

    error, status, _ = callback.calls[0]
    assert isinstance(error, ProtocolStatusError)
    assert status == 0x87
    assert error.status == 0x87
    assert str(error) == "File not found"


def test_unknown_status_uses_fallback_message():
    correlator = _correlator()
    callback = Recorder()
    correlator.register(0x03, callback)

    correlator.dispatch(_reply(0x03, status=0x55))

    error, _, _ = callback.calls[0]
    assert str(error) == "Unknown error (0x55)"


def test_fail_invokes_once_and_removes():
    correlator = _correlator()
    callback = Recorder()
    entry = correlator.register(0x03, callback)
    error = TransportError("write failed")

    assert correlator.fail(entry, error)
    assert correlator.fail(entry, error) is False
    assert callback.calls == [(error, None, None)]
    assert 0x03 not in correlator


def test_fail_ignores_replaced_entry():
    """Failing a superseded entry must not remove its replacement."""
    correlator = _correlator()
    old = correlator.register(0x03, Recorder())
    new_callback = Recorder()
    correlator.register(0x03, new_callback)

    assert correlator.fail(old, TransportError("late")) is False
    assert 0x03 in correlator
    correlator.dispatch(_reply(0x03))
    assert len(new_callback.calls) == 1


def test_cancel_removes_without_calling():
    correlator = _correlator()
    callback = Recorder()
    entry = correlator.register(0x0B, callback)

    assert correlator.cancel(entry)
    correlator.dispatch(_reply(0x0B, b"\x40\x1f"))
    assert callback.calls == []


def test_timeout_fails_entry():
    correlator = _correlator()
    done = threading.Event()
    calls = []

    def callback(error, status, frame):
        calls.append(error)
        done.set()

    correlator.register(0x88, callback, timeout=0.01)

    assert done.wait(2.0)
    assert isinstance(calls[0], ResponseTimeout)
    assert 0x88 not in correlator


def test_reply_before_timeout_stops_timer():
    correlator = _correlator()
    callback = Recorder()
    entry = correlator.register(0x88, callback, timeout=5.0)

    correlator.dispatch(_reply(0x88, bytes(4)))

    assert len(callback.calls) == 1
    assert entry.timer.finished.is_set()


def test_callback_can_register_again():
    """Callbacks run without the lock held, so handlers may issue new requests."""
    correlator = _correlator()
    second = Recorder()

    def first(error, status, frame):
        correlator.register(0x0B, second)

    correlator.register(0x0B, first)
    correlator.dispatch(_reply(0x0B, b"\x00\x00"))

    assert 0x0B in correlator
    correlator.dispatch(_reply(0x0B, b"\x00\x00"))
    assert len(second.calls) == 1


def test_fail_all():
    correlator = _correlator()
    a, b = Recorder(), Recorder()
    correlator.register(0x03, a)
    correlator.register(0x0B, b)

    assert correlator.fail_all(TransportError("closed")) == 2
    assert len(correlator) == 0
    assert isinstance(a.calls[0][0], TransportError)
    assert isinstance(b.calls[0][0], TransportError)


def test_direct_mode_reads_opcode_without_shift():
    correlator = ResponseCorrelator(Framer(length_prefixed=False))
    callback = Recorder()
    correlator.register(0x0B, callback)

    assert correlator.dispatch(bytes([0x02, 0x0B, 0x00, 0x40, 0x1F]))
    assert callback.calls[0][2].payload == b"\x40\x1f"
