"""ICSC station engine: addressing, sending and the receive loop."""

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Dict, Optional, Union

from .handlers import FunctionHandler, HandlerFunction, MessageHandler, PingResponder, invoke
from .protocol.codes import ByteCode, CodeLike, station_address
from .protocol.constants import BROADCAST, PING, DEFAULT_READ_TIMEOUT
from .protocol.errors import FlowError, TransportError
from .protocol.inbound import FrameDecoder
from .protocol.message import Message, PayloadLike, to_payload
from .serial.assembler import AssemblyResult, FrameAssembler
from .serial.transport import Transport

logger = logging.getLogger(__name__)

# Receives every flow error reported by the receive loop
ErrorCallback = Callable[[FlowError, bytes], Union[Awaitable[None], None]]


class Station:
    """A single addressable endpoint on an ICSC bus.

    The station owns its transport exclusively. Handlers run one at a time
    inside :meth:`run`, in frame arrival order, so a handler may reply with
    :meth:`send` without interleaving with another inbound frame.

    Example::

        station = Station(transport, "B")

        @station.command("T")
        async def on_temperature(message):
            ...

        await station.run()
    """

    def __init__(
        self,
        transport: Transport,
        address: CodeLike,
        read_timeout: float = DEFAULT_READ_TIMEOUT,
    ):
        """Initialize the station.

        Args:
            transport: Connected byte transport
            address: This station's address, a character or 1-255
            read_timeout: Seconds to wait for each byte before treating
                the bus as idle

        Raises:
            ValueError: If the address is the broadcast address or not a byte
        """
        self._address = station_address(address)
        self._transport = transport
        self._handlers: Dict[int, MessageHandler] = {}
        self._error_callback: Optional[ErrorCallback] = None
        self._shutdown_event = asyncio.Event()
        self._assembler = FrameAssembler(
            transport,
            FrameDecoder(self._address),
            read_timeout,
        )
        self.running = False

        self._stats = {
            "frames_sent": 0,
            "frames_received": 0,
            "frames_dispatched": 0,
            "frames_dropped": 0,
            "idle_reads": 0,
            "flow_errors": {},
        }

        self.register(PING, PingResponder(self))

    @property
    def address(self) -> ByteCode:
        return self._address

    @property
    def read_timeout(self) -> float:
        return self._assembler.read_timeout

    # Registration

    def register(self, cmd: CodeLike, handler: MessageHandler) -> None:
        """Install the handler for a command, replacing any previous one.

        Args:
            cmd: Command code
            handler: Object with a ``handle(message)`` method
        """
        code = ByteCode.coerce(cmd)
        if not callable(getattr(handler, "handle", None)):
            raise TypeError(f"Handler for {code!r} has no handle() method")
        if code in self._handlers:
            logger.debug(f"Replacing handler for {code!r}")
        self._handlers[code] = handler

    def command(self, cmd: CodeLike) -> Callable[[HandlerFunction], HandlerFunction]:
        """Decorator registering a function (sync or async) for a command."""

        def decorator(func: HandlerFunction) -> HandlerFunction:
            self.register(cmd, FunctionHandler(func))
            return func

        return decorator

    def handler_for(self, cmd: CodeLike) -> Optional[MessageHandler]:
        """Return the handler registered for a command, if any."""
        return self._handlers.get(ByteCode.coerce(cmd))

    def set_error_callback(self, callback: Optional[ErrorCallback]) -> None:
        """Set where flow errors are reported.

        Args:
            callback: Called with the error and the raw bytes that caused
                it; None restores the default of logging a warning
        """
        self._error_callback = callback

    # Sending

    async def send(self, dest: CodeLike, cmd: CodeLike, payload: PayloadLike = b"") -> None:
        """Send a message; no acknowledgement is awaited.

        Args:
            dest: Destination station, or 0 for broadcast
            cmd: Command code
            payload: Bytes, a latin-1 string, a single byte value or None

        Raises:
            PayloadTooLongError: If the payload is longer than 255 bytes
            TransportError: If the write fails
        """
        await self.send_message(Message(dest, self._address, cmd, to_payload(payload)))

    async def broadcast(self, cmd: CodeLike, payload: PayloadLike = b"") -> None:
        """Send a message to every station on the bus."""
        await self.send(BROADCAST, cmd, payload)

    async def send_message(self, message: Message) -> None:
        """Write an already built message to the transport."""
        frame = message.to_bytes()
        logger.debug(f"Sending {message!r}")
        await self._transport.write(frame)
        self._stats["frames_sent"] += 1

    # Receiving

    async def run(self) -> None:
        """Receive and dispatch frames until stopped.

        Returns when :meth:`stop` is called or the transport reports end of
        stream. Malformed frames are reported through the error callback
        and never end the loop.

        Raises:
            TransportError: If the transport fails
        """
        logger.info(f"Station {self._address!r} listening (read timeout {self.read_timeout}s)")
        self.running = True

        try:
            while not self._shutdown_event.is_set():
                result = await self.poll()
                if result.idle and result.end_of_stream:
                    logger.info("Transport reached end of stream")
                    break
        finally:
            self.running = False
            self._shutdown_event.clear()
            logger.info(f"Station {self._address!r} stopped")

    async def poll(self) -> AssemblyResult:
        """Run one read-and-reassemble cycle and dispatch its outcome."""
        result = await self._assembler.receive()

        if result.idle:
            if not result.end_of_stream:
                self._stats["idle_reads"] += 1
            return result

        if result.ok:
            self._stats["frames_received"] += 1
            await self.dispatch(result.message)
        else:
            await self._report_error(result.error, result.raw)

        return result

    async def dispatch(self, message: Message) -> bool:
        """Invoke the handler registered for ``message.cmd``.

        Returns:
            True if a handler ran, False if the command is not registered
        """
        handler = self._handlers.get(message.cmd)
        if handler is None:
            logger.debug(f"No handler for {message.cmd!r}, dropping {message!r}")
            self._stats["frames_dropped"] += 1
            return False

        logger.debug(f"Dispatching {message!r} to {handler!r}")
        try:
            await invoke(handler, message)
        except TransportError:
            raise
        except Exception as e:
            logger.error(f"Handler for {message.cmd!r} failed: {e}", exc_info=True)

        self._stats["frames_dispatched"] += 1
        return True

    async def _report_error(self, error: FlowError, raw: bytes) -> None:
        errors = self._stats["flow_errors"]
        errors[error.name] = errors.get(error.name, 0) + 1

        if self._error_callback is None:
            logger.warning(f"Flow error {error.name} on {len(raw)} bytes: {raw.hex()}")
            return

        try:
            result = self._error_callback(error, raw)
            if inspect.isawaitable(result):
                await result
        except TransportError:
            raise
        except Exception as e:
            logger.error(f"Error callback failed on {error.name}: {e}", exc_info=True)

    def stop(self) -> None:
        """Ask :meth:`run` to return after the current read cycle.

        A stop requested before :meth:`run` starts makes it return at once.
        """
        self._shutdown_event.set()

    @property
    def stats(self) -> dict:
        """Get station statistics."""
        return {
            "address": self._address.char,
            **self._stats,
            "flow_errors": dict(self._stats["flow_errors"]),
            **self._assembler.stats,
        }

    def __repr__(self) -> str:
        return f"Station(address={self._address!r})"
