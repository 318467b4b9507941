from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import List, Optional

from shared.protocol.constants import HEADER_SIZE
from shared.protocol.framing import decode_length_header
from shared.protocol.opcodes import Opcode

logger = logging.getLogger(__name__)


@dataclass
class ReceivedImage:
    peername: str
    length: int
    data: bytes
    received_at: float = field(default_factory=time.time)


ImageCallback = Callable[[ReceivedImage], Awaitable[None]]


class BootAgentServer:
    """Stand-in for a device boot agent: asks each client for an image and reads it back."""

    def __init__(
        self,
        host: str,
        port: int,
        on_image: Optional[ImageCallback] = None,
        close_after_upload: bool = True,
        uploads_per_connection: int = 1,
    ) -> None:
        self.host = host
        self.port = port
        self.on_image = on_image
        self.close_after_upload = close_after_upload
        self.uploads_per_connection = uploads_per_connection
        self.images: List[ReceivedImage] = []
        self._server: Optional[asyncio.AbstractServer] = None

    async def start(self) -> None:
        self._server = await asyncio.start_server(self._handle_client, self.host, self.port)
        # Port 0 asks the OS for a free port; report the bound one.
        self.port = self._server.sockets[0].getsockname()[1]
        logger.info("Boot agent listening on %s:%s", self.host, self.port)

    async def stop(self) -> None:
        if self._server:
            self._server.close()
            await self._server.wait_closed()
            self._server = None

    async def _handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        peername = str(writer.get_extra_info("peername"))
        logger.info("Uploader connected from %s", peername)
        try:
            for _ in range(self.uploads_per_connection):
                image = await self._request_image(reader, writer, peername)
                self.images.append(image)
                if self.on_image:
                    await self.on_image(image)
            if not self.close_after_upload:
                # Hold the connection until the uploader hangs up.
                while await reader.read(1024):
                    pass
        except asyncio.IncompleteReadError as exc:
            logger.warning("Uploader %s disconnected after %s bytes", peername, len(exc.partial))
        except (ConnectionResetError, ConnectionAbortedError, BrokenPipeError, OSError) as exc:
            logger.info("Uploader %s connection reset: %s", peername, exc)
        finally:
            try:
                writer.close()
                await writer.wait_closed()
            except Exception as e:
                logger.debug("Error during writer cleanup: %s", e)

    async def _request_image(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter, peername: str
    ) -> ReceivedImage:
        writer.write(bytes([Opcode.READY]))
        await writer.drain()
        header = await reader.readexactly(HEADER_SIZE)
        length = decode_length_header(header)
        data = await reader.readexactly(length)
        logger.info("Received %s byte image from %s", length, peername)
        return ReceivedImage(peername=peername, length=length, data=data)


__all__ = ["BootAgentServer", "ImageCallback", "ReceivedImage"]
