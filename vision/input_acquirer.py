"""
InputAcquirer - получение входных данных для инференса.

Три источника:
- загруженный файл изображения
- загруженный видеофайл (превью - первый кадр)
- снимок с камеры

Результат любого источника - Acquisition: неизменяемый артефакт для
отправки на сервер, превью для отображения и токен события. Токен
монотонно растёт, результат с устаревшим токеном отбрасывается.
"""
import asyncio
import mimetypes
from contextlib import asynccontextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import AsyncIterator, Optional, Union

import numpy as np

from core.config import Settings
from core.errors import CameraAccessError, DecodeError, NoActiveCameraError
from core.logging_config import get_logger
from vision.camera_manager import CameraManager, CaptureFactory
from vision.frame_codec import JPEG_MIME, Preview, encode_jpeg, frame_preview, image_preview, video_preview

logger = get_logger(__name__)

CAPTURE_FILENAME = "capture.jpg"


class InputMode(Enum):
    """Режим ввода."""
    IMAGE = "image"
    VIDEO = "video"
    WEBCAM = "webcam"

    @property
    def accept(self) -> Optional[str]:
        """Префикс MIME типа, который принимает выбор файла в этом режиме."""
        if self is InputMode.IMAGE:
            return "image/"
        if self is InputMode.VIDEO:
            return "video/"
        return None


@dataclass(frozen=True)
class InputArtifact:
    """Бинарные данные для отправки на сервер инференса."""
    data: bytes
    mime_type: str
    filename: str

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class UploadedFile:
    """Файл, выбранный пользователем: байты в памяти или путь на диске."""
    filename: str
    mime_type: str = ""
    data: Optional[bytes] = None
    path: Optional[Path] = None

    @classmethod
    def from_path(cls, path: Union[str, Path], mime_type: Optional[str] = None) -> "UploadedFile":
        path = Path(path)
        if mime_type is None:
            mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return cls(filename=path.name, mime_type=mime_type, path=path)

    def read(self) -> bytes:
        """
        Прочитать содержимое файла.

        Raises:
            DecodeError: если файл не читается.
        """
        if self.data is not None:
            return self.data
        if self.path is None:
            raise DecodeError(f"No content for file {self.filename}")
        try:
            return self.path.read_bytes()
        except OSError as e:
            raise DecodeError(f"Unable to read file {self.filename}: {e.strerror or e}") from e


@dataclass(frozen=True)
class Acquisition:
    """Результат одного события ввода."""
    token: int
    artifact: InputArtifact
    preview: Preview


class CameraSession:
    """Открытая камера с живым потоком кадров. Закрывается ровно один раз."""

    def __init__(self, manager: CameraManager):
        self._manager = manager
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    @property
    def frame_size(self) -> Optional[tuple[int, int]]:
        return self._manager.frame_size

    def latest_frame(self) -> Optional[np.ndarray]:
        """Последний кадр из буфера, либо прямое чтение с устройства."""
        frame = self._manager.get_frame()
        if frame is None:
            frame = self._manager.capture_single_frame()
        return frame

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._manager.close()

    def __enter__(self) -> "CameraSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class InputAcquirer:
    """
    Источник входных данных и владелец камеры.

    Инвариант: одновременно открыта не более одной CameraSession.

    Использование:
        async with InputAcquirer(settings) as acquirer:
            await acquirer.start_camera()
            acquisition = await acquirer.capture_frame()
    """

    def __init__(self, settings: Settings, capture_factory: Optional[CaptureFactory] = None):
        """
        Args:
            settings: Настройки приложения.
            capture_factory: Фабрика устройства захвата (для тестов).
        """
        self._settings = settings
        self._capture_factory = capture_factory
        self._session: Optional[CameraSession] = None
        self._starting = False
        # Увеличивается при каждом stop_camera, чтобы отменить открытие в процессе
        self._camera_generation = 0
        self._token = 0

    # --- Токены событий ---

    def next_token(self) -> int:
        """Начать новое событие ввода. Все предыдущие становятся устаревшими."""
        self._token += 1
        return self._token

    @property
    def current_token(self) -> int:
        return self._token

    def is_current(self, token: int) -> bool:
        return token == self._token

    # --- Файлы ---

    async def acquire_from_file(self, upload: UploadedFile, token: Optional[int] = None) -> Acquisition:
        """
        Превратить выбранный файл в артефакт и превью.

        Байты не интерпретируются и уходят на сервер как есть.
        Превью декодируется из тех же байтов.

        Raises:
            DecodeError: файл не читается или не декодируется.
        """
        if token is None:
            token = self.next_token()

        data = await asyncio.to_thread(upload.read)
        mime_type = upload.mime_type or "application/octet-stream"
        artifact = InputArtifact(data=data, mime_type=mime_type, filename=upload.filename)

        preview = await asyncio.to_thread(self._decode_preview, artifact)
        logger.debug(f"Файл {upload.filename} ({mime_type}, {artifact.size} байт) -> токен {token}")
        return Acquisition(token=token, artifact=artifact, preview=preview)

    def _decode_preview(self, artifact: InputArtifact) -> Preview:
        if artifact.mime_type.startswith("video/"):
            suffix = Path(artifact.filename).suffix
            return video_preview(artifact.data, suffix=suffix, quality=self._settings.jpeg_quality)
        return image_preview(artifact.data, artifact.mime_type)

    # --- Камера ---

    @property
    def camera_active(self) -> bool:
        return self._session is not None

    def live_frame(self) -> Optional[np.ndarray]:
        """Текущий кадр живого потока (для отображения) или None."""
        if self._session is None:
            return None
        return self._session.latest_frame()

    async def start_camera(self, camera_index: Optional[int] = None) -> CameraSession:
        """
        Открыть камеру и запустить живой поток кадров.

        Raises:
            CameraAccessError: камера уже открыта, недоступна или открытие отменено.
        """
        if self._session is not None or self._starting:
            raise CameraAccessError("Camera session already active; stop it first")

        self._starting = True
        generation = self._camera_generation
        manager = CameraManager(self._settings, self._capture_factory)
        opening = asyncio.ensure_future(asyncio.to_thread(manager.open, camera_index))
        try:
            try:
                opened = await asyncio.shield(opening)
            except asyncio.CancelledError:
                # Поток всё равно откроет устройство - закрываем, когда он закончит
                opening.add_done_callback(lambda _: manager.close())
                logger.info("Запуск камеры отменён")
                raise
            if not opened:
                manager.close()
                reason = manager.last_error or "device unavailable"
                raise CameraAccessError(f"Error accessing webcam: {reason}")

            if generation != self._camera_generation:
                manager.close()
                raise CameraAccessError("Camera start was cancelled")

            if not manager.start_capture():
                manager.close()
                raise CameraAccessError("Error accessing webcam: capture could not be started")
        except CameraAccessError:
            raise
        except Exception as e:
            manager.close()
            raise CameraAccessError(f"Error accessing webcam: {e}") from e
        finally:
            self._starting = False

        self._session = CameraSession(manager)
        logger.info("Камера запущена")
        return self._session

    async def capture_frame(self, token: Optional[int] = None) -> Acquisition:
        """
        Сделать снимок текущего кадра камеры.

        После успешного снимка камера закрывается.

        Raises:
            NoActiveCameraError: камера не запущена.
            DecodeError: кадр не получен или не закодирован.
        """
        session = self._session
        if session is None:
            raise NoActiveCameraError()

        if token is None:
            token = self.next_token()

        frame = session.latest_frame()
        if frame is None:
            raise DecodeError("No frame available from camera")

        quality = self._settings.jpeg_quality
        preview, data = await asyncio.gather(
            asyncio.to_thread(frame_preview, frame, quality),
            asyncio.to_thread(encode_jpeg, frame, quality),
        )
        artifact = InputArtifact(data=data, mime_type=JPEG_MIME, filename=CAPTURE_FILENAME)

        # Снимок сделан - камера больше не нужна
        if self._session is session:
            self.stop_camera()
        else:
            session.release()

        logger.debug(f"Снимок {preview.width}x{preview.height} ({artifact.size} байт) -> токен {token}")
        return Acquisition(token=token, artifact=artifact, preview=preview)

    def stop_camera(self) -> None:
        """Закрыть камеру. Без открытой камеры ничего не делает."""
        self._camera_generation += 1
        session, self._session = self._session, None
        if session is not None:
            session.release()
            logger.info("Камера остановлена")

    @asynccontextmanager
    async def session(self, camera_index: Optional[int] = None) -> AsyncIterator[CameraSession]:
        """Камера на время блока with, закрывается при любом выходе."""
        session = await self.start_camera(camera_index)
        try:
            yield session
        finally:
            self.stop_camera()

    def close(self) -> None:
        self.stop_camera()

    async def __aenter__(self) -> "InputAcquirer":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()
