"""
Кодирование кадров и построение превью.

Все функции блокирующие (OpenCV), вызывать через asyncio.to_thread.
"""
import base64
import os
import tempfile
from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np

from core.errors import DecodeError

JPEG_MIME = "image/jpeg"


@dataclass(frozen=True)
class Preview:
    """Превью для отображения: data URI и размер изображения."""
    data_uri: str
    width: int
    height: int

    @property
    def mime_type(self) -> str:
        return self.data_uri[len("data:"):].split(";", 1)[0]


def to_data_uri(data: bytes, mime_type: str) -> str:
    """Закодировать байты в data URI."""
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def encode_jpeg(frame: np.ndarray, quality: int = 92) -> bytes:
    """
    Закодировать кадр в JPEG.

    Args:
        frame: Кадр (BGR).
        quality: Качество JPEG (0-100).

    Returns:
        Байты JPEG.

    Raises:
        DecodeError: если кадр пустой или кодирование не удалось.
    """
    if frame is None or frame.size == 0:
        raise DecodeError("Captured frame is empty")

    ok, buffer = cv2.imencode(".jpg", frame, [cv2.IMWRITE_JPEG_QUALITY, int(quality)])
    if not ok:
        raise DecodeError("Failed to encode captured frame")
    return buffer.tobytes()


def frame_preview(frame: np.ndarray, quality: int = 92) -> Preview:
    """Построить JPEG превью из кадра камеры."""
    height, width = frame.shape[:2]
    return Preview(to_data_uri(encode_jpeg(frame, quality), JPEG_MIME), width, height)


def image_preview(data: bytes, mime_type: str) -> Preview:
    """
    Превью загруженного изображения.

    Исходные байты не перекодируются, декодирование нужно только
    для проверки читаемости и размеров.
    """
    image = _imdecode(data)
    if image is None:
        raise DecodeError(f"Unable to decode image ({len(data)} bytes)")
    height, width = image.shape[:2]
    return Preview(to_data_uri(data, mime_type or JPEG_MIME), width, height)


def video_preview(data: bytes, suffix: str = ".mp4", quality: int = 92) -> Preview:
    """
    Превью видеофайла: первый кадр в JPEG.

    OpenCV читает видео только из файла, поэтому байты пишутся
    во временный файл.
    """
    fd, path = tempfile.mkstemp(suffix=suffix or ".mp4")
    try:
        with os.fdopen(fd, "wb") as tmp:
            tmp.write(data)

        cap = cv2.VideoCapture(path)
        try:
            ok, frame = cap.read() if cap.isOpened() else (False, None)
        finally:
            cap.release()
    finally:
        os.unlink(path)

    if not ok or frame is None:
        raise DecodeError(f"Unable to read a frame from video ({len(data)} bytes)")
    return frame_preview(frame, quality)


def _imdecode(data: bytes) -> Optional[np.ndarray]:
    if not data:
        return None
    array = np.frombuffer(data, dtype=np.uint8)
    return cv2.imdecode(array, cv2.IMREAD_COLOR)
