"""
Тесты для загрузки настроек из окружения.
"""
import os

import pytest

from core.config import DEFAULT_MODELS, Settings


ENV_KEYS = [
    "API_URL", "GATEWAY_TIMEOUT", "MODELS", "DEFAULT_MODEL", "CAMERA_INDEX",
    "CAMERA_WIDTH", "CAMERA_HEIGHT", "CAMERA_FPS", "CAMERA_FOURCC",
    "FRAME_BUFFER_SIZE", "RETRY_COUNT", "RETRY_DELAY", "JPEG_QUALITY",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """Пустое окружение и рабочая директория без .env."""
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)
    yield tmp_path
    # load_dotenv пишет прямо в os.environ
    for key in ENV_KEYS:
        os.environ.pop(key, None)


class TestSettings:

    def test_defaults(self, clean_env):
        """Без .env используются значения по умолчанию."""
        settings = Settings.from_env(clean_env / "missing.env")

        assert settings.api_url == "http://localhost:5000/api"
        assert settings.models == DEFAULT_MODELS
        assert settings.default_model == ""
        assert settings.jpeg_quality == 92

    def test_env_file(self, clean_env):
        """Значения читаются из .env файла."""
        env_file = clean_env / ".env"
        env_file.write_text(
            "API_URL=http://gpu-box:8000/api/\n"
            "MODELS=yolo_model, resnet152_data_aug_imagenet_pretrained\n"
            "CAMERA_INDEX=2\n"
            "GATEWAY_TIMEOUT=2.5\n"
        )

        settings = Settings.from_env(env_file)

        assert settings.api_url == "http://gpu-box:8000/api"
        assert settings.models == ("yolo_model", "resnet152_data_aug_imagenet_pretrained")
        assert settings.camera_index == 2
        assert settings.gateway_timeout == 2.5

    def test_invalid_numbers_fall_back(self, clean_env, monkeypatch):
        """Некорректные числа заменяются значениями по умолчанию."""
        monkeypatch.setenv("CAMERA_INDEX", "front")
        monkeypatch.setenv("RETRY_DELAY", "soon")

        settings = Settings.from_env(clean_env / "missing.env")

        assert settings.camera_index == 0
        assert settings.retry_delay == 0.5

    def test_empty_models_fall_back(self, clean_env, monkeypatch):
        monkeypatch.setenv("MODELS", " , ")

        settings = Settings.from_env(clean_env / "missing.env")

        assert settings.models == DEFAULT_MODELS
