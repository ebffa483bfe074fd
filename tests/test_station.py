"""Tests for the station engine: sending, dispatch and the receive loop."""

import asyncio

import pytest

from icsc.app import ping_station
from icsc.handlers import LoggingHandler, PingResponder
from icsc.protocol.constants import BROADCAST, PING, PONG, SOH, STX, ETX, EOT
from icsc.protocol.errors import FlowError, PayloadTooLongError, TransportError
from icsc.protocol.message import Message, encode
from icsc.serial.transport import ReadResult
from icsc.station import Station


class Recorder:
    """Handler that keeps every message it is given."""

    def __init__(self):
        self.messages = []

    def handle(self, message):
        self.messages.append(message)


class BrokenTransport:
    """Transport that delivers one frame and fails on every write."""

    def __init__(self, frame: bytes):
        self._frame = list(frame)

    async def write(self, data: bytes) -> None:
        raise TransportError("device unplugged")

    async def read_byte(self, timeout):
        if self._frame:
            return ReadResult.byte(self._frame.pop(0))
        return ReadResult.end_of_stream()


def run(station):
    asyncio.run(station.run())


class TestStationSetup:
    """Tests for construction and registration."""

    def test_address_from_char_or_byte(self, scripted):
        assert Station(scripted(), "B").address == 66
        assert Station(scripted(), 66).address == 66

    def test_broadcast_address_rejected(self, scripted):
        with pytest.raises(ValueError):
            Station(scripted(), BROADCAST)

    def test_ping_preregistered(self, scripted):
        station = Station(scripted(), "B")
        assert isinstance(station.handler_for(PING), PingResponder)

    def test_last_registration_wins(self, scripted):
        station = Station(scripted(), "B")
        first, second = Recorder(), Recorder()

        station.register("T", first)
        station.register(ord("T"), second)

        assert station.handler_for("T") is second

    def test_register_requires_handle_method(self, scripted):
        station = Station(scripted(), "B")
        with pytest.raises(TypeError):
            station.register("T", object())


class TestSending:
    """Tests for send and broadcast."""

    def test_send(self, scripted):
        transport = scripted()
        station = Station(transport, "A")

        asyncio.run(station.send("B", "D", "data"))

        assert transport.written == [encode("B", "A", "D", b"data")]
        assert station.stats["frames_sent"] == 1

    def test_broadcast(self, scripted):
        transport = scripted()
        station = Station(transport, "C")

        asyncio.run(station.broadcast("D"))

        assert transport.written == [bytes([SOH, 0, 67, 68, 0, STX, ETX, 135, EOT])]

    def test_payload_too_long(self, scripted):
        transport = scripted()
        station = Station(transport, "A")

        with pytest.raises(PayloadTooLongError):
            asyncio.run(station.send("B", "D", bytes(256)))
        assert transport.written == []


class TestReceiveLoop:
    """Tests for run() and dispatch."""

    def test_ping_pong(self, scripted):
        """Station B answers a ping from A with an empty pong."""
        transport = scripted(encode("B", "A", PING))
        station = Station(transport, "B")

        run(station)

        # Checksum: 65 + 66 + 6 + 0 = 137
        assert transport.written == [bytes([SOH, 65, 66, PONG, 0, STX, ETX, 137, EOT])]
        assert station.stats["frames_dispatched"] == 1

    def test_ping_between_two_stations(self, scripted):
        """A pings B, B's pong is fed back to A."""
        station_b_transport = scripted()
        station_b = Station(station_b_transport, "B")

        station_a_transport = scripted()
        station_a = Station(station_a_transport, "A")
        station_a.set_error_callback(lambda error, raw: pytest.fail(error.name))

        async def exchange():
            await station_a.send("B", PING)
            station_b_transport.feed(station_a_transport.written[0])
            await station_b.run()
            station_a_transport.feed(station_b_transport.written[0])
            return await ping_station(station_a, "B", timeout=1.0)

        elapsed = asyncio.run(exchange())

        assert elapsed is not None
        assert station_a_transport.written[-1] == encode("B", "A", PING)

    def test_dispatch_to_registered_handler(self, scripted):
        transport = scripted(encode("B", "A", "T", b"22.5"))
        station = Station(transport, "B")
        recorder = Recorder()
        station.register("T", recorder)

        run(station)

        assert recorder.messages == [Message("B", "A", "T", b"22.5")]

    def test_async_function_handler(self, scripted):
        transport = scripted(encode("B", "A", "T", b"x"), encode(BROADCAST, "A", "T", b"y"))
        station = Station(transport, "B")
        seen = []

        @station.command("T")
        async def on_t(message):
            await asyncio.sleep(0)
            seen.append((message.dest, message.payload))

        run(station)

        assert seen == [(66, b"x"), (0, b"y")]

    def test_unregistered_command_dropped(self, scripted):
        transport = scripted(encode("B", "A", "Q", b"?"))
        station = Station(transport, "B")
        errors = []
        station.set_error_callback(lambda error, raw: errors.append(error))

        run(station)

        assert errors == []
        assert station.stats["frames_received"] == 1
        assert station.stats["frames_dropped"] == 1
        assert transport.written == []

    def test_wrong_destination_reported_not_dispatched(self, scripted):
        frame = encode("C", "A", "T", b"hello")
        transport = scripted(frame)
        station = Station(transport, "B")
        recorder = Recorder()
        station.register("T", recorder)
        errors = []
        station.set_error_callback(lambda error, raw: errors.append((error, raw)))

        run(station)

        assert recorder.messages == []
        assert errors == [(FlowError.WRONG_DEST_STATION, frame)]
        assert station.stats["flow_errors"] == {"WRONG_DEST_STATION": 1}

    def test_idle_reads_ignored(self, scripted):
        transport = scripted(
            scripted.TIMEOUT,
            scripted.TIMEOUT,
            encode("B", "A", "T", b"hello"),
        )
        station = Station(transport, "B")
        recorder = Recorder()
        station.register("T", recorder)
        errors = []
        station.set_error_callback(lambda error, raw: errors.append(error))

        run(station)

        assert errors == []
        assert len(recorder.messages) == 1
        assert station.stats["idle_reads"] == 2

    def test_malformed_frame_does_not_stop_loop(self, scripted):
        bad = bytearray(encode("B", "A", "T", b"hello"))
        bad[-2] = (bad[-2] + 1) % 256
        transport = scripted(bytes(bad), encode("B", "A", "T", b"world"))
        station = Station(transport, "B")
        recorder = Recorder()
        station.register("T", recorder)
        errors = []
        station.set_error_callback(lambda error, raw: errors.append(error))

        run(station)

        assert errors == [FlowError.BAD_CHECKSUM]
        assert [m.payload for m in recorder.messages] == [b"world"]

    def test_error_callback_exception_does_not_stop_loop(self, scripted, caplog):
        bad = bytearray(encode("B", "A", "T", b"hello"))
        bad[-2] = (bad[-2] + 1) % 256
        transport = scripted(bytes(bad), encode("B", "A", "T", b"world"))
        station = Station(transport, "B")
        recorder = Recorder()
        station.register("T", recorder)

        def on_error(error, raw):
            raise RuntimeError("callback broke")

        station.set_error_callback(on_error)

        with caplog.at_level("ERROR"):
            run(station)

        assert [m.payload for m in recorder.messages] == [b"world"]
        assert station.stats["flow_errors"] == {"BAD_CHECKSUM": 1}
        assert "callback broke" in caplog.text

    def test_transport_error_from_error_callback_ends_loop(self, scripted):
        transport = scripted(b"\x00\x00\x04", encode("B", "A", "T", b"world"))
        station = Station(transport, "B")

        async def on_error(error, raw):
            raise TransportError("device unplugged")

        station.set_error_callback(on_error)

        with pytest.raises(TransportError):
            run(station)
        assert not station.running

    def test_false_eot_frame_dispatched(self, scripted):
        payload = b"abcdefgh\x04xyz"
        transport = scripted(encode("B", "A", "T", payload))
        station = Station(transport, "B")
        recorder = Recorder()
        station.register("T", recorder)

        run(station)

        assert recorder.messages[0].payload == payload
        assert station.stats["continuations"] == 1

    def test_default_error_channel_logs(self, scripted, caplog):
        transport = scripted(b"\x00\x00\x04")
        station = Station(transport, "B")

        with caplog.at_level("WARNING"):
            run(station)

        assert "TOO_SHORT_MSG" in caplog.text

    def test_handler_exception_does_not_stop_loop(self, scripted):
        transport = scripted(encode("B", "A", "T", b"one"), encode("B", "A", "T", b"two"))
        station = Station(transport, "B")
        seen = []

        @station.command("T")
        def on_t(message):
            seen.append(message.payload)
            if message.payload == b"one":
                raise RuntimeError("boom")

        run(station)

        assert seen == [b"one", b"two"]

    def test_transport_error_ends_loop(self):
        station = Station(BrokenTransport(encode("B", "A", PING)), "B")

        with pytest.raises(TransportError):
            run(station)
        assert not station.running

    def test_stop_from_handler(self, scripted):
        transport = scripted(encode("B", "A", "T", b"one"), encode("B", "A", "T", b"two"))
        station = Station(transport, "B")
        seen = []

        @station.command("T")
        def on_t(message):
            seen.append(message.payload)
            station.stop()

        run(station)

        assert seen == [b"one"]
        assert transport.remaining == len(encode("B", "A", "T", b"two"))

    def test_stop_before_run_returns_at_once(self, scripted):
        frames = [encode("B", "A", "T", payload) for payload in (b"one", b"two", b"three")]
        transport = scripted(*frames)
        station = Station(transport, "B")
        recorder = Recorder()
        station.register("T", recorder)

        station.stop()
        run(station)

        assert recorder.messages == []
        assert transport.remaining == sum(len(frame) for frame in frames)
        assert not station.running

        # The stop request is consumed; the station can run again
        run(station)

        assert [m.payload for m in recorder.messages] == [b"one", b"two", b"three"]

    def test_task_cancellation(self, scripted):
        """Cancelling the task running run() ends the loop."""

        class IdleTransport:
            async def write(self, data):
                pass

            async def read_byte(self, timeout):
                await asyncio.sleep(timeout)
                return ReadResult.timeout()

        station = Station(IdleTransport(), "B", read_timeout=0.01)

        async def cancel_soon():
            task = asyncio.create_task(station.run())
            await asyncio.sleep(0.05)
            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        asyncio.run(cancel_soon())

        assert not station.running
        assert station.stats["idle_reads"] > 0


def test_logging_handler(caplog):
    with caplog.at_level("INFO"):
        LoggingHandler().handle(Message("B", "A", "T", b"22.5"))

    assert "'22.5'" in caplog.text
