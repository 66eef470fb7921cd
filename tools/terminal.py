#!/usr/bin/env python3
"""
Terminal - консоль для ручной работы с сервером инференса.

Команды вводятся построчно, после каждой печатается состояние:
    models                  список моделей
    model <id>              выбрать модель
    mode <image|video|webcam>
    upload <path>           загрузить файл и отправить на инференс
    start | capture | stop  камера
    info <id>               метаданные модели с сервера
    state                   текущее состояние
    q                       выход

Использование:
    python -m tools.terminal
    python -m tools.terminal --api-url http://host:5000/api --model yolo_model
    python -m tools.terminal --model-info yolo_model
"""
import argparse
import asyncio
import json
from typing import Optional

from core.config import Settings, get_settings
from core.errors import InferenceToolError
from core.logging_config import get_logger, setup_logging
from inference.commands import (
    CaptureFrame,
    SelectInputMode,
    SelectModel,
    StartCamera,
    StopCamera,
    UploadFile,
)
from inference.gateway import InferenceGateway
from inference.orchestrator import InferenceOrchestrator
from inference.state import Snapshot
from vision.input_acquirer import InputMode, UploadedFile

logger = get_logger(__name__)

HELP = "Команды: models, model <id>, mode <image|video|webcam>, upload <path>, start, capture, stop, info <id>, state, q"


def render(snapshot: Snapshot) -> str:
    """Текстовое представление состояния."""
    lines = [
        f"Модель: {snapshot.model or '-'}",
        f"Режим: {snapshot.input_mode.value}" + (" (камера включена)" if snapshot.camera_active else ""),
    ]
    if snapshot.busy:
        lines.append("Обработка...")
    if snapshot.error:
        lines.append(f"Ошибка: {snapshot.error.message}")
    if snapshot.preview:
        preview = snapshot.preview
        lines.append(f"Превью: {preview.mime_type} {preview.width}x{preview.height}")
    if snapshot.result is not None:
        result = snapshot.result
        text = json.dumps(result, indent=2, ensure_ascii=False) if isinstance(result, (dict, list)) else str(result)
        lines.append("Результат:")
        lines.append(text)
    return "\n".join(lines)


def parse_command(line: str):
    """
    Разобрать строку консоли.

    Returns:
        Кортеж (команда, аргумент). Команда None для пустой строки.
    """
    parts = line.strip().split(maxsplit=1)
    if not parts:
        return None, ""
    return parts[0].lower(), parts[1].strip() if len(parts) > 1 else ""


async def handle_line(orchestrator: InferenceOrchestrator, gateway: InferenceGateway, line: str) -> Optional[str]:
    """
    Выполнить одну строку консоли.

    Returns:
        Текст для вывода или None, если нужно завершить работу.
    """
    cmd, arg = parse_command(line)

    if cmd is None:
        return ""
    if cmd == "q":
        return None
    if cmd == "models":
        return "\n".join(orchestrator.snapshot.models)
    if cmd == "state":
        return render(orchestrator.snapshot)
    if cmd == "info":
        if not arg:
            return "Укажите модель: info <id>"
        try:
            info = await gateway.get_model_info(arg)
        except InferenceToolError as e:
            return f"Ошибка: {e.message}"
        return json.dumps(info, indent=2, ensure_ascii=False)

    if cmd == "model":
        command = SelectModel(arg)
    elif cmd == "mode":
        try:
            command = SelectInputMode(InputMode(arg.lower()))
        except ValueError:
            return "Режим должен быть image, video или webcam"
    elif cmd == "upload":
        if not arg:
            return "Укажите путь: upload <path>"
        command = UploadFile(UploadedFile.from_path(arg))
    elif cmd == "start":
        command = StartCamera()
    elif cmd == "capture":
        command = CaptureFrame()
    elif cmd == "stop":
        command = StopCamera()
    else:
        return f"Неизвестная команда. {HELP}"

    snapshot = await orchestrator.dispatch(command)
    return render(snapshot)


async def run_console(settings: Settings) -> None:
    """Интерактивный цикл консоли."""
    loop = asyncio.get_running_loop()

    async with InferenceGateway.from_settings(settings) as gateway:
        async with InferenceOrchestrator(settings, gateway) as orchestrator:
            print(f"Сервер инференса: {settings.api_url}")
            print(HELP)
            print("-" * 40)
            while True:
                try:
                    line = await loop.run_in_executor(None, input, "\n> ")
                except EOFError:
                    break
                output = await handle_line(orchestrator, gateway, line)
                if output is None:
                    break
                if output:
                    print(output)


async def print_model_info(settings: Settings, model_id: str) -> int:
    async with InferenceGateway.from_settings(settings) as gateway:
        try:
            info = await gateway.get_model_info(model_id)
        except InferenceToolError as e:
            logger.error(e.message)
            return 1
    print(json.dumps(info, indent=2, ensure_ascii=False))
    return 0


def parse_args(argv=None):
    """Парсинг аргументов командной строки."""
    parser = argparse.ArgumentParser(
        description="Консоль клиента сервера инференса"
    )
    parser.add_argument(
        "--api-url",
        type=str,
        help="Базовый URL API (переопределяет .env)"
    )
    parser.add_argument(
        "--model",
        type=str,
        help="Модель, выбранная при запуске"
    )
    parser.add_argument(
        "--camera-index",
        type=int,
        help="Индекс камеры (переопределяет .env)"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Уровень логирования (переопределяет LOG_LEVEL)"
    )
    parser.add_argument(
        "--model-info",
        type=str,
        metavar="MODEL",
        help="Вывести метаданные модели и выйти"
    )
    return parser.parse_args(argv)


def run(argv=None) -> int:
    """Точка входа."""
    args = parse_args(argv)
    setup_logging(args.log_level)
    settings = get_settings()

    if args.api_url:
        settings.api_url = args.api_url.rstrip("/")
    if args.model:
        if args.model not in settings.models:
            logger.error(f"Unknown model: {args.model}. Доступные: {', '.join(settings.models)}")
            return 2
        settings.default_model = args.model
    if args.camera_index is not None:
        settings.camera_index = args.camera_index

    if args.model_info:
        return asyncio.run(print_model_info(settings, args.model_info))

    try:
        asyncio.run(run_console(settings))
    except KeyboardInterrupt:
        logger.info("Прервано пользователем")
    return 0


if __name__ == "__main__":
    raise SystemExit(run())
