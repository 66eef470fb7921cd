"""Core модули: конфигурация, логирование, ошибки."""

from core.config import Settings, get_settings
from core.errors import ErrorInfo, ErrorKind, InferenceToolError
from core.logging_config import get_logger, setup_logging

__all__ = [
    "Settings",
    "get_settings",
    "get_logger",
    "setup_logging",
    "ErrorInfo",
    "ErrorKind",
    "InferenceToolError",
]
