"""
Тесты консоли.
"""
from unittest.mock import AsyncMock, MagicMock

import pytest

from core.errors import GatewayError
from inference.orchestrator import InferenceOrchestrator
from inference.state import Snapshot, Succeeded
from tools.terminal import handle_line, parse_args, parse_command, render, run
from vision.input_acquirer import InputAcquirer, InputMode


@pytest.fixture
def gateway():
    gateway = MagicMock()
    gateway.perform_inference = AsyncMock(return_value={"label": "can", "confidence": 0.61})
    gateway.get_model_info = AsyncMock(return_value={"name": "yolo_model"})
    return gateway


@pytest.fixture
def orchestrator(settings, gateway, camera_factory):
    acquirer = InputAcquirer(settings, camera_factory)
    yield InferenceOrchestrator(settings, gateway, acquirer)
    acquirer.close()


class TestParsing:

    def test_parse_command_with_argument(self):
        assert parse_command("upload  /tmp/a b.jpg ") == ("upload", "/tmp/a b.jpg")

    def test_parse_command_simple(self):
        assert parse_command("CAPTURE") == ("capture", "")

    def test_parse_command_empty(self):
        assert parse_command("   ") == (None, "")

    def test_parse_args(self):
        args = parse_args(["--api-url", "http://gpu:5000/api", "--model", "yolo_model"])

        assert args.api_url == "http://gpu:5000/api"
        assert args.model == "yolo_model"
        assert args.model_info is None

    def test_log_level_flag(self):
        assert parse_args(["--log-level", "debug"]).log_level == "DEBUG"


class TestRun:

    @pytest.fixture(autouse=True)
    def use_settings(self, settings, monkeypatch):
        monkeypatch.setattr("tools.terminal.get_settings", lambda: settings)

    def test_unknown_model_flag_rejected(self, settings, monkeypatch):
        console = MagicMock()
        monkeypatch.setattr("tools.terminal.run_console", console)

        assert run(["--model", "alexnet"]) == 2

        console.assert_not_called()
        assert settings.default_model == ""

    def test_known_model_flag(self, settings, monkeypatch):
        info = AsyncMock(return_value=0)
        monkeypatch.setattr("tools.terminal.print_model_info", info)

        assert run(["--model", "yolo_model", "--model-info", "yolo_model"]) == 0

        assert settings.default_model == "yolo_model"
        info.assert_awaited_once_with(settings, "yolo_model")


class TestRender:

    def test_render_idle(self):
        text = render(Snapshot(model="yolo_model"))

        assert "yolo_model" in text
        assert "image" in text

    def test_render_result_as_json(self):
        snapshot = Snapshot(model="m", request=Succeeded(1, {"label": "bottle"}))

        assert '"label": "bottle"' in render(snapshot)


class TestHandleLine:

    @pytest.mark.asyncio
    async def test_quit(self, orchestrator, gateway):
        assert await handle_line(orchestrator, gateway, "q") is None

    @pytest.mark.asyncio
    async def test_select_model(self, orchestrator, gateway):
        output = await handle_line(orchestrator, gateway, "model yolo_model")

        assert orchestrator.snapshot.model == "yolo_model"
        assert "yolo_model" in output

    @pytest.mark.asyncio
    async def test_upload(self, orchestrator, gateway, tmp_path, jpeg_bytes):
        path = tmp_path / "can.jpg"
        path.write_bytes(jpeg_bytes)
        await handle_line(orchestrator, gateway, "model yolo_model")

        output = await handle_line(orchestrator, gateway, f"upload {path}")

        assert '"label": "can"' in output
        gateway.perform_inference.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_mode(self, orchestrator, gateway):
        await handle_line(orchestrator, gateway, "mode video")

        assert orchestrator.snapshot.input_mode is InputMode.VIDEO

    @pytest.mark.asyncio
    async def test_bad_mode(self, orchestrator, gateway):
        output = await handle_line(orchestrator, gateway, "mode hologram")

        assert "image, video или webcam" in output

    @pytest.mark.asyncio
    async def test_camera_commands(self, orchestrator, gateway):
        await handle_line(orchestrator, gateway, "model yolo_model")
        await handle_line(orchestrator, gateway, "start")
        assert orchestrator.snapshot.camera_active

        output = await handle_line(orchestrator, gateway, "capture")

        assert not orchestrator.snapshot.camera_active
        assert '"label": "can"' in output

    @pytest.mark.asyncio
    async def test_info(self, orchestrator, gateway):
        output = await handle_line(orchestrator, gateway, "info yolo_model")

        gateway.get_model_info.assert_awaited_once_with("yolo_model")
        assert '"name": "yolo_model"' in output

    @pytest.mark.asyncio
    async def test_info_error(self, orchestrator, gateway):
        gateway.get_model_info.side_effect = GatewayError("HTTP error! status: 404", 404)

        output = await handle_line(orchestrator, gateway, "info nope")

        assert "404" in output

    @pytest.mark.asyncio
    async def test_unknown_command(self, orchestrator, gateway):
        output = await handle_line(orchestrator, gateway, "reboot")

        assert "Неизвестная команда" in output
