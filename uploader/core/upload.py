from __future__ import annotations

import asyncio
import logging
from enum import StrEnum
from typing import Optional, Tuple

from shared.protocol.framing import read_opcode
from shared.protocol.image import BootImage
from shared.protocol.opcodes import Opcode, format_opcode, is_opcode

from .transport import TransportEvent, TransportSession

logger = logging.getLogger(__name__)


class HandlerState(StrEnum):
    IDLE = "idle"
    TRANSFERRING = "transferring"


class UploadHandler:
    """Reacts to boot agent opcodes by sending the length header followed by the image."""

    def __init__(self, session: TransportSession, image: BootImage) -> None:
        self.session = session
        self.image = image
        self.state: HandlerState = HandlerState.IDLE
        # Number of READY opcodes served; informational only.
        self.transfers: int = 0
        session.on(TransportEvent.DATA, self.handle_chunk)

    async def handle_chunk(self, chunk: bytes) -> Optional[Tuple[asyncio.Future, asyncio.Future]]:
        opcode = read_opcode(chunk)
        if opcode is None:
            return None
        if not is_opcode(opcode):
            logger.info("%s Unknown opcode", format_opcode(opcode))
            return None
        if Opcode(opcode) is Opcode.READY:
            logger.info("%s Device ready, sending image", format_opcode(opcode))
            return self.send_image()
        return None

    def send_image(self) -> Tuple[asyncio.Future, asyncio.Future]:
        """Issue the header write and the payload write; each completes independently."""
        self.state = HandlerState.TRANSFERRING
        self.transfers += 1
        header = self.image.header
        try:
            header_done = self.session.write(header, self._on_header_sent)
            payload_done = self.session.write(self.image.data, self._on_payload_sent)
        finally:
            self.state = HandlerState.IDLE
        return header_done, payload_done

    def _on_header_sent(self, error: Optional[BaseException]) -> None:
        if error is not None:
            logger.error("Image size header failed: %s", error)
            return
        low, high = self.image.header
        logger.info("Program size sent to device: %02x %02x (%s bytes)", low, high, self.image.size)

    def _on_payload_sent(self, error: Optional[BaseException]) -> None:
        if error is not None:
            logger.error("Image payload failed: %s", error)
            return
        logger.info("Program sent to device (%s bytes)", self.image.size)


__all__ = ["HandlerState", "UploadHandler"]
