"""
Логирование клиента инференса.

Логи пишутся в stderr: stdout занят выводом консоли (снимки состояния,
JSON ответа сервера), и их не нужно разделять при перенаправлении.

Переменные окружения:
    LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (по умолчанию INFO)
    LOG_FORMAT: simple или detailed

Уровень можно переопределить флагом --log-level консоли.
"""

import logging
import os
import sys
from typing import Optional, TextIO, Union

LOG_FORMATS = {
    "simple": "[%(levelname)s] %(name)s: %(message)s",
    "detailed": "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s",
}

# Библиотеки, которые на INFO пишут каждое соединение
QUIET_LOGGERS = ("httpx", "httpcore", "asyncio")


def parse_level(value: Union[str, int, None], default: int = logging.INFO) -> int:
    """Уровень по имени ("debug", "WARNING") или числу; неизвестное имя -> default."""
    if value is None or value == "":
        return default
    if isinstance(value, int):
        return value
    level = logging.getLevelName(value.strip().upper())
    return level if isinstance(level, int) else default


def setup_logging(level: Union[str, int, None] = None, stream: Optional[TextIO] = None) -> None:
    """
    Настроить корневой логгер.

    Повторный вызов заменяет обработчик, поэтому флаг --log-level
    действует, даже если логгер уже был настроен при импорте.

    Args:
        level: Уровень (если None, берётся из LOG_LEVEL).
        stream: Куда писать (по умолчанию stderr).
    """
    resolved = parse_level(level if level is not None else os.getenv("LOG_LEVEL"))
    format_name = os.getenv("LOG_FORMAT", "simple").lower()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(
        LOG_FORMATS.get(format_name, LOG_FORMATS["simple"]),
        datefmt="%Y-%m-%d %H:%M:%S",
    ))

    root = logging.getLogger()
    for old in list(root.handlers):
        root.removeHandler(old)
    root.addHandler(handler)
    root.setLevel(resolved)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(resolved, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """Логгер модуля; при первом обращении настраивает логирование из окружения."""
    if not logging.root.handlers:
        setup_logging()
    return logging.getLogger(name)
