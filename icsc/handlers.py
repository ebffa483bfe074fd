"""Command handlers dispatched by a station."""

import inspect
import logging
from typing import TYPE_CHECKING, Awaitable, Callable, Optional, Protocol, Union, runtime_checkable

from .protocol.message import Message
from .protocol.outbound import PongMessage

if TYPE_CHECKING:
    from .station import Station

logger = logging.getLogger(__name__)

HandlerFunction = Callable[[Message], Union[Awaitable[None], None]]


@runtime_checkable
class MessageHandler(Protocol):
    """Anything with a ``handle(message)`` method, sync or async."""

    def handle(self, message: Message) -> Union[Awaitable[None], None]:
        ...


class FunctionHandler:
    """Adapt a plain function or coroutine function to a handler."""

    def __init__(self, func: HandlerFunction):
        self.func = func

    def handle(self, message: Message) -> Union[Awaitable[None], None]:
        return self.func(message)

    def __repr__(self) -> str:
        return f"FunctionHandler({getattr(self.func, '__name__', self.func)!r})"


async def invoke(handler: MessageHandler, message: Message) -> None:
    """Call a handler and wait for it if it returned an awaitable."""
    result = handler.handle(message)
    if inspect.isawaitable(result):
        await result


class PingResponder:
    """Answer PING with an empty PONG sent back to the origin."""

    def __init__(self, station: "Station"):
        self.station = station

    async def handle(self, message: Message) -> None:
        pong = PongMessage(dest=message.orig, orig=self.station.address)
        logger.debug(f"Answering ping from {message.orig!r}")
        await self.station.send_message(pong)


class LoggingHandler:
    """Log every message it receives, used by the ``listen`` command."""

    def __init__(self, level: int = logging.INFO, log: Optional[logging.Logger] = None):
        self.level = level
        self.log = log or logger

    def handle(self, message: Message) -> None:
        text = message.payload.decode("latin-1")
        self.log.log(
            self.level,
            f"[{message.cmd!r}] from {message.orig!r} to {message.dest!r}: "
            f"{text!r} ({message.length} bytes)",
        )
