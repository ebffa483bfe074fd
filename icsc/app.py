"""Application runner wiring configuration, serial transport and station."""

import asyncio
import logging
import signal
from datetime import datetime
from typing import Iterable, Optional, Union

from .config import AppConfig, get_config
from .handlers import LoggingHandler
from .protocol.codes import ByteCode, CodeLike
from .protocol.constants import PONG, RESERVED_COMMANDS
from .protocol.message import Message, PayloadLike
from .protocol.outbound import PingMessage
from .serial.connection import SerialTransport
from .station import Station
from .utils.logging import setup_logging

logger = logging.getLogger(__name__)


class ICSCApp:
    """Run a station on a serial port.

    Owns the serial transport for the lifetime of the application and
    closes it on exit, whichever action was run.
    """

    def __init__(self, config: Union[AppConfig, str, None] = None):
        """Initialize the application.

        Args:
            config: AppConfig instance, path to YAML config file, or None for env/defaults
        """
        if isinstance(config, AppConfig):
            self.config = config
        elif isinstance(config, str):
            self.config = get_config(config)
        else:
            self.config = get_config()

        self.transport: Optional[SerialTransport] = None
        self.station: Optional[Station] = None
        self._start_time: Optional[datetime] = None

    async def start(self) -> Station:
        """Configure logging, open the port and create the station."""
        setup_logging(
            level=self.config.logging.level,
            log_file=self.config.logging.file,
            format_string=self.config.logging.format,
        )

        logger.info(
            f"Starting ICSC station {self.config.station.address!r} "
            f"(0x{self.config.station.address_code:02X})"
        )
        self._start_time = datetime.now()

        self.transport = SerialTransport(self.config.serial)
        await self.transport.connect()

        self.station = Station(
            self.transport,
            self.config.station.address_code,
            read_timeout=self.config.station.read_timeout,
        )
        return self.station

    async def stop(self) -> None:
        """Stop the station and close the port."""
        if self.station:
            self.station.stop()
            logger.info(f"Statistics: {self.station.stats}")

        if self._start_time:
            logger.info(f"Uptime: {datetime.now() - self._start_time}")

        if self.transport:
            await self.transport.disconnect()
            self.transport = None

        logger.info("ICSC stopped")

    async def listen(self, commands: Optional[Iterable[CodeLike]] = None) -> None:
        """Log incoming messages until interrupted.

        Args:
            commands: Command codes to log; every non-reserved code if None
        """
        station = await self.start()
        try:
            codes = listen_codes(commands)
            handler = LoggingHandler()
            for code in codes:
                station.register(code, handler)

            self._setup_signal_handlers()
            await station.run()
        finally:
            await self.stop()

    async def send(self, dest: CodeLike, cmd: CodeLike, payload: PayloadLike = b"") -> None:
        """Send a single frame and exit."""
        station = await self.start()
        try:
            await station.send(dest, cmd, payload)
            logger.info(f"Sent {cmd!r} to {dest!r}")
        finally:
            await self.stop()

    async def broadcast(self, cmd: CodeLike, payload: PayloadLike = b"") -> None:
        """Broadcast a single frame and exit."""
        station = await self.start()
        try:
            await station.broadcast(cmd, payload)
            logger.info(f"Broadcast {cmd!r}")
        finally:
            await self.stop()

    async def ping(self, dest: CodeLike, timeout: float = 5.0) -> Optional[float]:
        """Ping a station and wait for its pong.

        Returns:
            Round trip time in seconds, or None if no pong arrived in time
        """
        station = await self.start()
        try:
            return await ping_station(station, dest, timeout)
        finally:
            await self.stop()

    def _setup_signal_handlers(self) -> None:
        """Set up signal handlers for graceful shutdown."""
        loop = asyncio.get_running_loop()

        def signal_handler(sig):
            logger.info(f"Received signal {sig.name}, initiating shutdown")
            if self.station:
                self.station.stop()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))


def listen_codes(commands: Optional[Iterable[CodeLike]] = None) -> list:
    """Command codes a listener registers.

    PING and PONG stay with the station's own handlers and are skipped
    even when asked for.
    """
    if commands is None:
        return [ByteCode.from_byte(code) for code in range(256) if code not in RESERVED_COMMANDS]

    codes = []
    for cmd in commands:
        code = ByteCode.coerce(cmd)
        if code in RESERVED_COMMANDS:
            logger.warning(f"Not logging reserved command {code!r}")
            continue
        codes.append(code)
    return codes


async def ping_station(station: Station, dest: CodeLike, timeout: float = 5.0) -> Optional[float]:
    """Send PING to ``dest`` and run the station until the PONG arrives.

    Registers its own PONG handler, replacing any existing one.

    Returns:
        Round trip time in seconds, or None on timeout
    """
    target = ByteCode.coerce(dest)
    loop = asyncio.get_running_loop()
    answered = loop.create_future()

    def on_pong(message: Message) -> None:
        if message.orig == target and not answered.done():
            answered.set_result(loop.time())
            station.stop()

    station.command(PONG)(on_pong)

    sent_at = loop.time()
    await station.send_message(PingMessage(dest=target, orig=station.address))

    try:
        await asyncio.wait_for(station.run(), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"No pong from {target!r} within {timeout}s")
        return None

    if not answered.done():
        return None
    return answered.result() - sent_at
