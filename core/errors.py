"""
Иерархия ошибок клиента инференса.

Каждая ошибка умеет превращаться в ErrorInfo - то, что показывается
пользователю. Наружу из оркестратора исключения не выходят.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Источник ошибки."""
    VALIDATION = "validation"
    DECODE = "decode"
    CAMERA_ACCESS = "camera_access"
    NO_ACTIVE_CAMERA = "no_active_camera"
    GATEWAY = "gateway"
    NETWORK = "network"


@dataclass(frozen=True)
class ErrorInfo:
    """Сообщение об ошибке для отображения."""
    message: str
    kind: ErrorKind
    status_code: Optional[int] = None

    def __str__(self) -> str:
        return self.message


class InferenceToolError(Exception):
    """Базовая ошибка клиента инференса."""

    kind = ErrorKind.NETWORK

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_info(self) -> ErrorInfo:
        return ErrorInfo(message=self.message, kind=self.kind)


class ValidationError(InferenceToolError):
    """Не выполнены предусловия запроса (например, не выбрана модель)."""
    kind = ErrorKind.VALIDATION


class DecodeError(InferenceToolError):
    """Файл или кадр не удалось прочитать/декодировать."""
    kind = ErrorKind.DECODE


class CameraAccessError(InferenceToolError):
    """Камера недоступна или доступ запрещён."""
    kind = ErrorKind.CAMERA_ACCESS


class NoActiveCameraError(InferenceToolError):
    """Захват кадра без открытой камеры."""
    kind = ErrorKind.NO_ACTIVE_CAMERA

    def __init__(self, message: str = "Camera is not started"):
        super().__init__(message)


class GatewayError(InferenceToolError):
    """Сервер ответил не-2xx статусом или некорректным телом."""
    kind = ErrorKind.GATEWAY

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

    def to_info(self) -> ErrorInfo:
        return ErrorInfo(message=self.message, kind=self.kind, status_code=self.status_code)


class NetworkError(InferenceToolError):
    """Сервер недоступен на транспортном уровне."""
    kind = ErrorKind.NETWORK
