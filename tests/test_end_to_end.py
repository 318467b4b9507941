from __future__ import annotations

import asyncio

import uploader.main
from bootagent.core import BootAgentServer
from shared.protocol import BootImage
from uploader.config import DEFAULT_CONFIG, UPLOADER_CONFIG
from uploader.core import ShutdownController, TransportSession, UploadHandler
from uploader.main import run_client

IMAGE_BYTES = b"\x01\x02\x03\x04\x05"


async def _upload(port, image, grace_period=2):
    session = TransportSession("127.0.0.1", port)
    handler = UploadHandler(session, image)
    controller = ShutdownController(session, grace_period=grace_period)
    await session.connect()
    code = await asyncio.wait_for(controller.wait(), 5)
    return code, handler


def test_wire_bytes_for_five_byte_image():
    async def scenario():
        wire = asyncio.get_running_loop().create_future()

        async def device(reader, writer):
            writer.write(b"\xaa")
            await writer.drain()
            wire.set_result(await reader.readexactly(7))
            writer.close()

        server = await asyncio.start_server(device, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        code, _ = await _upload(port, BootImage.from_bytes(IMAGE_BYTES))
        server.close()
        await server.wait_closed()
        return code, wire.result()

    code, wire = asyncio.run(scenario())
    assert wire == b"\x05\x00\x01\x02\x03\x04\x05"
    # The device hung up first.
    assert code == 1


def test_boot_agent_receives_image():
    async def scenario():
        received = []

        async def on_image(image):
            received.append(image)

        agent = BootAgentServer("127.0.0.1", 0, on_image=on_image)
        await agent.start()
        code, handler = await _upload(agent.port, BootImage.from_bytes(IMAGE_BYTES))
        await agent.stop()
        return code, handler, received

    code, handler, received = asyncio.run(scenario())
    assert code == 1
    assert handler.transfers == 1
    assert [image.data for image in received] == [IMAGE_BYTES]
    assert received[0].length == 5


def test_boot_agent_retrigger_gets_two_full_transfers():
    async def scenario():
        agent = BootAgentServer("127.0.0.1", 0, uploads_per_connection=2)
        await agent.start()
        code, handler = await _upload(agent.port, BootImage.from_bytes(IMAGE_BYTES))
        await agent.stop()
        return code, handler, agent.images

    code, handler, images = asyncio.run(scenario())
    assert handler.transfers == 2
    assert [image.data for image in images] == [IMAGE_BYTES, IMAGE_BYTES]


def test_uploader_self_close_exits_zero():
    async def scenario():
        agent = BootAgentServer("127.0.0.1", 0, close_after_upload=False)
        await agent.start()
        session = TransportSession("127.0.0.1", agent.port)
        UploadHandler(session, BootImage.from_bytes(IMAGE_BYTES))
        controller = ShutdownController(session, grace_period=2)
        await session.connect()
        while not agent.images:
            await asyncio.sleep(0.01)
        controller.interrupt()
        code = await asyncio.wait_for(controller.wait(), 5)
        await agent.stop()
        return code, controller

    code, controller = asyncio.run(scenario())
    assert code == 0
    assert controller.forced is False


def test_run_client_uploads_configured_image(tmp_path):
    image_path = tmp_path / "0_instructions_actual.bin"
    image_path.write_bytes(IMAGE_BYTES)

    async def scenario():
        agent = BootAgentServer("127.0.0.1", 0)
        await agent.start()
        argv = [
            "--host", "127.0.0.1",
            "--port", str(agent.port),
            "--image", str(image_path),
            "--grace-period", "1",
            "--env-file", str(tmp_path / "missing.env"),
        ]
        try:
            code = await asyncio.wait_for(run_client(argv), 5)
        finally:
            await agent.stop()
            UPLOADER_CONFIG.update(DEFAULT_CONFIG)
        return code, agent.images

    code, images = asyncio.run(scenario())
    assert code == 1
    assert [image.data for image in images] == [IMAGE_BYTES]


def test_run_client_missing_image(tmp_path):
    argv = ["--image", str(tmp_path / "nope.bin"), "--env-file", str(tmp_path / "missing.env")]
    try:
        assert asyncio.run(run_client(argv)) == 1
    finally:
        UPLOADER_CONFIG.update(DEFAULT_CONFIG)


def test_interrupt_during_stuck_connect_exits_within_grace_period(tmp_path, monkeypatch):
    image_path = tmp_path / "image.bin"
    image_path.write_bytes(IMAGE_BYTES)
    controllers = []

    class RecordingController(uploader.main.ShutdownController):
        def __init__(self, *args, **kwargs):
            super().__init__(*args, **kwargs)
            controllers.append(self)

    async def never_connects(host, port):
        await asyncio.Event().wait()

    monkeypatch.setattr(uploader.main, "ShutdownController", RecordingController)
    monkeypatch.setattr(asyncio, "open_connection", never_connects)

    async def scenario():
        argv = [
            "--host", "127.0.0.1",
            "--port", "2323",
            "--image", str(image_path),
            "--grace-period", "0.2",
            "--env-file", str(tmp_path / "missing.env"),
        ]
        task = asyncio.create_task(run_client(argv))
        try:
            while not controllers:
                await asyncio.sleep(0.01)
            await asyncio.sleep(0.1)
            controllers[0].interrupt()
            return await asyncio.wait_for(task, 2)
        finally:
            UPLOADER_CONFIG.update(DEFAULT_CONFIG)

    code = asyncio.run(scenario())
    assert code == 0
    assert controllers[0].terminated
