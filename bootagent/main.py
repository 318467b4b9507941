from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from bootagent.config import AGENT_CONFIG, load_agent_config
from bootagent.core import BootAgentServer, ReceivedImage

logger = logging.getLogger(__name__)


async def save_image(image: ReceivedImage) -> None:
    output_dir = AGENT_CONFIG["output_dir"]
    if not output_dir:
        return
    directory = Path(output_dir)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"image-{int(image.received_at * 1000)}.bin"
    path.write_bytes(image.data)
    logger.info("Saved image to %s", path)


async def run_agent() -> None:
    load_agent_config()
    logging.basicConfig(level=AGENT_CONFIG["log_level"])

    server = BootAgentServer(
        AGENT_CONFIG["host"],
        AGENT_CONFIG["port"],
        on_image=save_image,
        close_after_upload=AGENT_CONFIG["close_after_upload"],
    )
    await server.start()
    try:
        await asyncio.Event().wait()  # keep running
    finally:
        await server.stop()


if __name__ == "__main__":
    asyncio.run(run_agent())
