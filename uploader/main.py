from __future__ import annotations

import argparse
import asyncio
import logging
import signal
import sys
from typing import Optional, Sequence

from shared.protocol.errors import ProtocolError
from shared.protocol.image import BootImage
from uploader.config import UPLOADER_CONFIG, ConfigError, load_config, update_config
from uploader.core import ExitCode, ShutdownController, TransportSession, UploadHandler

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Upload a binary image to a device boot agent over TCP.")
    parser.add_argument("--host", help="boot agent host")
    parser.add_argument("--port", type=int, help="boot agent TCP port")
    parser.add_argument("--image", dest="image_path", help="path of the image to upload")
    parser.add_argument("--grace-period", type=float, help="seconds to wait for a clean close on shutdown")
    parser.add_argument("--env-file", default=".env", help="dotenv file with UPLOADER_* settings")
    return parser


def _install_signal_handler(controller: ShutdownController) -> None:
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, controller.interrupt)
    except (NotImplementedError, RuntimeError):
        # No loop signal support (Windows); KeyboardInterrupt still ends asyncio.run.
        logger.debug("SIGINT handler not installed")


async def run_client(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        load_config(args.env_file)
        update_config(
            device_host=args.host,
            device_port=args.port,
            image_path=args.image_path,
            grace_period=args.grace_period,
        )
    except ConfigError as exc:
        logging.basicConfig(level=logging.INFO)
        logger.error("Invalid configuration: %s", exc)
        return int(ExitCode.FAILURE)
    logging.basicConfig(level=UPLOADER_CONFIG["log_level"])

    try:
        image = BootImage.from_file(UPLOADER_CONFIG["image_path"])
    except ProtocolError as exc:
        logger.error("Cannot load image: %s", exc)
        return int(ExitCode.FAILURE)
    logger.info("Loaded %s (%s bytes)", image.source, image.size)

    session = TransportSession(
        UPLOADER_CONFIG["device_host"],
        UPLOADER_CONFIG["device_port"],
        read_chunk_size=UPLOADER_CONFIG["read_chunk_size"],
    )
    UploadHandler(session, image)
    controller = ShutdownController(session, grace_period=UPLOADER_CONFIG["grace_period"])
    _install_signal_handler(controller)

    # The controller, not the connect, decides when the process ends.
    connecting = asyncio.create_task(session.connect(), name="uploader-connect-session")
    code = await controller.wait()
    if not connecting.done():
        connecting.cancel()
    return code


def main(argv: Optional[Sequence[str]] = None) -> None:
    sys.exit(asyncio.run(run_client(argv)))


if __name__ == "__main__":
    main()
