"""
Конфигурация клиента инференса.
Загружает параметры из .env файла с fallback на значения по умолчанию.
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


# Каталог моделей, зарегистрированных на сервере инференса
DEFAULT_MODELS = (
    "mobilenet_v3_small_data_aug_imagenet_pretrained",
    "mobilenet_v2_data_aug_imagenet_pretrained",
    "mobilenetv2_data_aug_imagenet_trashbox",
    "mobilenet_v3_large_data_aug_imagenet_pretrained",
    "resnet152_data_aug_imagenet_pretrained",
    "yolo_model",
)


def _get_env_int(key: str, default: int) -> int:
    """Получить целое число из переменной окружения."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _get_env_float(key: str, default: float) -> float:
    """Получить число с плавающей точкой из переменной окружения."""
    value = os.getenv(key)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _get_env_list(key: str, default: tuple[str, ...]) -> tuple[str, ...]:
    """Получить список строк (через запятую) из переменной окружения."""
    value = os.getenv(key)
    if not value:
        return default
    items = tuple(item.strip() for item in value.split(",") if item.strip())
    return items or default


@dataclass
class Settings:
    """Настройки клиента инференса."""

    # Сервер инференса
    api_url: str = "http://localhost:5000/api"
    gateway_timeout: float = 30.0

    # Модели
    models: tuple[str, ...] = field(default_factory=lambda: DEFAULT_MODELS)
    default_model: str = ""

    # Камера
    camera_index: int = 0
    camera_width: int = 1280
    camera_height: int = 720
    camera_fps: int = 30
    camera_fourcc: str = "MJPG"

    # Буфер кадров
    frame_buffer_size: int = 3

    # Retry настройки для камеры
    retry_count: int = 3
    retry_delay: float = 0.5

    # Кодирование снимков
    jpeg_quality: int = 92

    @classmethod
    def from_env(cls, env_path: Optional[Path] = None) -> "Settings":
        """
        Загрузить настройки из .env файла.

        Args:
            env_path: Путь к .env файлу. Если None, ищет в текущей директории.

        Returns:
            Settings с загруженными значениями.
        """
        if env_path:
            load_dotenv(env_path)
        else:
            load_dotenv()

        return cls(
            # Сервер
            api_url=os.getenv("API_URL", "http://localhost:5000/api").rstrip("/"),
            gateway_timeout=_get_env_float("GATEWAY_TIMEOUT", 30.0),

            # Модели
            models=_get_env_list("MODELS", DEFAULT_MODELS),
            default_model=os.getenv("DEFAULT_MODEL", ""),

            # Камера
            camera_index=_get_env_int("CAMERA_INDEX", 0),
            camera_width=_get_env_int("CAMERA_WIDTH", 1280),
            camera_height=_get_env_int("CAMERA_HEIGHT", 720),
            camera_fps=_get_env_int("CAMERA_FPS", 30),
            camera_fourcc=os.getenv("CAMERA_FOURCC", "MJPG"),

            # Буфер
            frame_buffer_size=_get_env_int("FRAME_BUFFER_SIZE", 3),

            # Retry
            retry_count=_get_env_int("RETRY_COUNT", 3),
            retry_delay=_get_env_float("RETRY_DELAY", 0.5),

            # Снимки
            jpeg_quality=_get_env_int("JPEG_QUALITY", 92),
        )


# Глобальный экземпляр настроек (lazy loading)
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Получить глобальный экземпляр настроек.
    При первом вызове загружает из .env.
    """
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reload_settings(env_path: Optional[Path] = None) -> Settings:
    """
    Перезагрузить настройки из .env файла.

    Args:
        env_path: Путь к .env файлу.

    Returns:
        Новый экземпляр Settings.
    """
    global _settings
    _settings = Settings.from_env(env_path)
    return _settings
