from __future__ import annotations

import asyncio
import logging
from enum import IntEnum
from typing import Optional

from shared.protocol.constants import DEFAULT_GRACE_PERIOD

from .transport import TransportError, TransportEvent, TransportSession

logger = logging.getLogger(__name__)


class ExitCode(IntEnum):
    OK = 0
    FAILURE = 1


class ShutdownController:
    """
    Maps transport lifecycle events onto a process exit code.

    The first exit request fixes the code and starts closing the transport. A
    deadline timer armed at the same time ends the wait after `grace_period`
    seconds even if the close never completes.
    """

    def __init__(self, session: TransportSession, grace_period: float = DEFAULT_GRACE_PERIOD) -> None:
        self.session = session
        self.grace_period = float(grace_period)
        self.exit_code: Optional[ExitCode] = None
        self.forced: bool = False
        self._terminated = asyncio.Event()
        self._close_task: Optional[asyncio.Task] = None
        self._deadline: Optional[asyncio.TimerHandle] = None

        session.on(TransportEvent.CLOSE, self._on_close)
        session.on(TransportEvent.END, self._on_end)
        session.on(TransportEvent.ERROR, self._on_error)

    @property
    def terminated(self) -> bool:
        return self._terminated.is_set()

    def request_exit(self, code: int = ExitCode.OK) -> None:
        if self.exit_code is not None:
            logger.debug("Exit already requested with %s, ignoring %s", int(self.exit_code), code)
            return
        self.exit_code = ExitCode(code)
        loop = asyncio.get_running_loop()
        self._deadline = loop.call_later(self.grace_period, self._expire)
        self._close_task = asyncio.create_task(self._close(), name="uploader-shutdown")

    def interrupt(self) -> None:
        """Signal handler entry point (SIGINT)."""
        logger.warning("Interrupted, shutting down")
        self.request_exit(ExitCode.OK)

    async def wait(self) -> int:
        await self._terminated.wait()
        assert self.exit_code is not None
        return int(self.exit_code)

    async def _close(self) -> None:
        try:
            await self.session.close()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("Error while closing transport: %s", exc)
        self._finish(forced=False)

    def _expire(self) -> None:
        logger.warning("Transport did not close within %.1fs, forcing exit", self.grace_period)
        if self._close_task is not None and not self._close_task.done():
            self._close_task.cancel()
        self._finish(forced=True)

    def _finish(self, forced: bool) -> None:
        if self._terminated.is_set():
            return
        if self._deadline is not None:
            self._deadline.cancel()
        self.forced = forced
        self._terminated.set()

    async def _on_close(self) -> None:
        self.request_exit(ExitCode.OK)

    async def _on_end(self) -> None:
        logger.warning("Connection end requested by device")
        self.request_exit(ExitCode.FAILURE)

    async def _on_error(self, error: TransportError) -> None:
        logger.error("Connection error: %s", error)
        self.request_exit(ExitCode.FAILURE)


__all__ = ["ExitCode", "ShutdownController"]
