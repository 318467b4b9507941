from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import StrEnum
from typing import Dict, List, Optional, Set, Union

from shared.protocol.constants import READ_CHUNK_SIZE
from shared.protocol.errors import ErrorCode, ProtocolError

logger = logging.getLogger(__name__)

EventHandler = Callable[..., Awaitable[None]]
WriteCallback = Callable[[Optional[BaseException]], None]


class TransportError(ProtocolError):
    """Transport level error surfaced to higher layers."""

    pass


class SessionState(StrEnum):
    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    CLOSED = "closed"


class TransportEvent(StrEnum):
    CONNECT = "connect"
    DATA = "data"
    END = "end"
    CLOSE = "close"
    ERROR = "error"


class TransportSession:
    """Single outbound TCP connection exposing lifecycle events and callback-style writes."""

    def __init__(self, host: str, port: int, read_chunk_size: int = READ_CHUNK_SIZE) -> None:
        self.host = host
        self.port = int(port)
        self.read_chunk_size = read_chunk_size

        self.state: SessionState = SessionState.IDLE
        self.reader: Optional[asyncio.StreamReader] = None
        self.writer: Optional[asyncio.StreamWriter] = None
        self._connect_task: Optional[asyncio.Task] = None
        self._receive_task: Optional[asyncio.Task] = None
        self._drain_tasks: Set[asyncio.Task] = set()
        self._drain_lock = asyncio.Lock()
        self._handlers: Dict[str, List[EventHandler]] = {}
        self._shutdown_started = False
        self._closed = asyncio.Event()

    @property
    def connected(self) -> bool:
        return self.state is SessionState.CONNECTED

    def on(self, event: Union[str, TransportEvent], handler: EventHandler) -> None:
        self._handlers.setdefault(TransportEvent(event).value, []).append(handler)

    async def connect(self) -> bool:
        """Open the connection. Failures are reported through the error event, never retried."""
        if self.state is not SessionState.IDLE:
            return self.connected

        self.state = SessionState.CONNECTING
        self._connect_task = asyncio.create_task(
            asyncio.open_connection(self.host, self.port), name="uploader-connect"
        )
        try:
            reader, writer = await self._connect_task
        except asyncio.CancelledError:
            if not self._shutdown_started:
                raise
            logger.info("Connect to %s:%s abandoned by shutdown", self.host, self.port)
            return False
        except OSError as exc:
            logger.error("Connection to %s:%s failed: %s", self.host, self.port, exc)
            error = TransportError(ErrorCode.CONNECTION_FAILED, f"Connect failed: {exc}")
            error.__cause__ = exc
            await self._emit(TransportEvent.ERROR, error)
            await self._shutdown()
            return False

        if self._shutdown_started:
            # Connected after close was requested; drop the late connection.
            writer.close()
            try:
                await writer.wait_closed()
            except (ConnectionError, OSError) as exc:
                logger.debug("Error during writer cleanup: %s", exc)
            return False

        self.reader, self.writer = reader, writer
        self.state = SessionState.CONNECTED
        logger.info("Connected to %s:%s", self.host, self.port)
        await self._emit(TransportEvent.CONNECT)
        self._receive_task = asyncio.create_task(self._receive_loop(), name="uploader-recv-loop")
        return True

    def write(self, data: bytes, callback: Optional[WriteCallback] = None) -> asyncio.Future:
        """
        Queue `data` on the stream and return a future for its completion.

        The bytes are handed to the transport synchronously, so consecutive
        writes reach the peer in the order they were issued. `callback`
        receives None on success or the exception that failed the write.
        """
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        if callback is not None:
            future.add_done_callback(_completion_reporter(callback))

        writer = self.writer
        if writer is None or not self.connected or writer.is_closing():
            future.set_exception(TransportError(ErrorCode.NOT_CONNECTED, "Session is not connected"))
            return future
        try:
            writer.write(data)
        except (ConnectionError, OSError) as exc:
            error = TransportError(ErrorCode.WRITE_FAILED, f"Write failed: {exc}")
            error.__cause__ = exc
            future.set_exception(error)
            return future

        task = asyncio.create_task(self._drain(writer, future, len(data)))
        self._drain_tasks.add(task)
        task.add_done_callback(self._drain_tasks.discard)
        return future

    async def close(self) -> None:
        """Half-close the write side, then close the connection. Safe to call repeatedly."""
        if not self._shutdown_started:
            logger.info("Closing connection to %s:%s", self.host, self.port)
        await self._shutdown()

    async def wait_closed(self) -> None:
        await self._closed.wait()

    async def _drain(self, writer: asyncio.StreamWriter, future: asyncio.Future, size: int) -> None:
        try:
            async with self._drain_lock:
                await writer.drain()
        except asyncio.CancelledError:
            if not future.done():
                future.cancel()
            raise
        except (ConnectionError, OSError) as exc:
            if not future.done():
                error = TransportError(ErrorCode.WRITE_FAILED, f"Write failed: {exc}")
                error.__cause__ = exc
                future.set_exception(error)
            return
        logger.debug("Flushed %s bytes to %s:%s", size, self.host, self.port)
        if not future.done():
            future.set_result(size)

    async def _receive_loop(self) -> None:
        assert self.reader is not None
        while True:
            try:
                chunk = await self.reader.read(self.read_chunk_size)
                if self._shutdown_started:
                    break
                if not chunk:
                    logger.info("Peer %s:%s ended the stream", self.host, self.port)
                    await self._emit(TransportEvent.END)
                    await self._shutdown()
                    break
                logger.debug("Received %s bytes", len(chunk))
                await self._emit(TransportEvent.DATA, chunk)
            except asyncio.CancelledError:
                break
            except (ConnectionError, OSError) as exc:
                logger.error("Receive loop terminated: %s", exc)
                error = TransportError(ErrorCode.CONNECTION_FAILED, f"Connection lost: {exc}")
                error.__cause__ = exc
                await self._emit(TransportEvent.ERROR, error)
                await self._shutdown()
                break

    async def _shutdown(self) -> None:
        if self._shutdown_started:
            await self._closed.wait()
            return
        self._shutdown_started = True
        self.state = SessionState.CLOSED

        connecting = self._connect_task
        if connecting is not None and not connecting.done():
            connecting.cancel()
        task = self._receive_task
        if task is not None and task is not asyncio.current_task():
            task.cancel()

        writer = self.writer
        if writer is not None:
            try:
                if not writer.is_closing() and writer.can_write_eof():
                    writer.write_eof()
                writer.close()
                await writer.wait_closed()
            except (ConnectionError, OSError) as exc:
                logger.debug("Error during writer cleanup: %s", exc)

        self._closed.set()
        logger.info("Connection to %s:%s closed", self.host, self.port)
        await self._emit(TransportEvent.CLOSE)

    async def _emit(self, event: TransportEvent, *args) -> None:
        for handler in list(self._handlers.get(event.value, [])):
            try:
                await handler(*args)
            except Exception as exc:
                logger.exception("Handler error for %s event: %s", event.value, exc)


def _completion_reporter(callback: WriteCallback) -> Callable[[asyncio.Future], None]:
    def _report(future: asyncio.Future) -> None:
        if future.cancelled():
            callback(TransportError(ErrorCode.WRITE_FAILED, "Write cancelled"))
        else:
            callback(future.exception())

    return _report


__all__ = ["EventHandler", "SessionState", "TransportError", "TransportEvent", "TransportSession", "WriteCallback"]
