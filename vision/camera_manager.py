"""
CameraManager - управление камерой с буферизацией кадров.

Обеспечивает:
- Открытие/закрытие камеры с retry
- Фоновый захват кадров в кольцевой буфер (живой видеопоток для превью)
- Thread-safe доступ к последнему кадру
"""
import threading
import time
from collections import deque
from typing import Callable, Optional

import cv2
import numpy as np

from core.config import Settings
from core.logging_config import get_logger

logger = get_logger(__name__)

# Фабрика устройства захвата: индекс камеры -> объект с API cv2.VideoCapture
CaptureFactory = Callable[[int], "cv2.VideoCapture"]


class CameraManager:
    """
    Менеджер камеры с поддержкой фонового захвата кадров.

    Использование:
        manager = CameraManager(settings)
        if manager.open():
            manager.start_capture()
            ...
            frame = manager.get_frame()
            ...
            manager.close()
    """

    def __init__(self, settings: Settings, capture_factory: Optional[CaptureFactory] = None):
        """
        Инициализация менеджера камеры.

        Args:
            settings: Настройки приложения.
            capture_factory: Фабрика устройства захвата (по умолчанию cv2.VideoCapture).
        """
        self._settings = settings
        self._capture_factory = capture_factory or cv2.VideoCapture
        self._cap = None
        self._is_open = False
        self.last_error: Optional[str] = None

        # Буфер кадров
        self._buffer: deque = deque(maxlen=max(1, settings.frame_buffer_size))
        self._buffer_lock = threading.Lock()

        # Поток захвата
        self._capture_thread: Optional[threading.Thread] = None
        self._capture_running = False
        self._capture_stop_event = threading.Event()

        # Статистика
        self._frames_captured = 0

    def open(self, camera_index: Optional[int] = None) -> bool:
        """
        Открыть камеру с retry при ошибке.

        Args:
            camera_index: Индекс камеры. Если None, используется из настроек.

        Returns:
            True если камера успешно открыта, False иначе (причина в last_error).
        """
        if self._is_open:
            return True

        idx = camera_index if camera_index is not None else self._settings.camera_index
        attempts = max(1, self._settings.retry_count)
        self.last_error = None

        for attempt in range(1, attempts + 1):
            try:
                self._cap = self._capture_factory(idx)

                if not self._cap.isOpened():
                    self.last_error = f"camera {idx} could not be opened"
                    logger.warning(f"Попытка {attempt}/{attempts}: не удалось открыть камеру {idx}")
                    self._release_cap()
                    time.sleep(self._settings.retry_delay)
                    continue

                # Настройка камеры
                fourcc = cv2.VideoWriter_fourcc(*self._settings.camera_fourcc)
                self._cap.set(cv2.CAP_PROP_FOURCC, fourcc)
                self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, self._settings.camera_width)
                self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self._settings.camera_height)
                self._cap.set(cv2.CAP_PROP_FPS, self._settings.camera_fps)

                # Проверка захвата тестового кадра (несколько попыток)
                test_frame = None
                for _ in range(5):
                    ret, test_frame = self._cap.read()
                    if ret and test_frame is not None and test_frame.size > 0:
                        break
                    test_frame = None
                    time.sleep(0.1)

                if test_frame is None:
                    self.last_error = f"camera {idx} returned no frames"
                    logger.warning(f"Попытка {attempt}/{attempts}: не удалось захватить тестовый кадр (индекс {idx})")
                    self._release_cap()
                    time.sleep(self._settings.retry_delay)
                    continue

                with self._buffer_lock:
                    self._buffer.append(test_frame)

                height, width = test_frame.shape[:2]
                logger.info(f"Камера {idx} открыта: {width}x{height}")
                self._is_open = True
                return True

            except Exception as e:
                self.last_error = str(e)
                logger.warning(f"Попытка {attempt}/{attempts}: ошибка - {e}")
                self._release_cap()
                time.sleep(self._settings.retry_delay)

        logger.error(f"Не удалось открыть камеру после {attempts} попыток: {self.last_error}")
        return False

    def close(self) -> None:
        """Закрыть камеру и освободить ресурсы. Повторный вызов безопасен."""
        was_open = self._is_open or self._cap is not None
        self.stop_capture()
        self._release_cap()
        self._is_open = False
        self._clear_buffer()
        if was_open:
            logger.info("Камера закрыта")

    def is_open(self) -> bool:
        """Проверить, открыта ли камера."""
        return self._is_open and self._cap is not None and self._cap.isOpened()

    def start_capture(self) -> bool:
        """
        Запустить фоновый поток захвата кадров.

        Returns:
            True если поток запущен, False если камера не открыта.
        """
        if not self.is_open():
            logger.warning("Невозможно запустить захват: камера не открыта")
            return False

        if self._capture_running:
            return True

        self._capture_stop_event.clear()
        self._capture_running = True
        self._capture_thread = threading.Thread(
            target=self._capture_loop,
            name="CameraCapture",
            daemon=True
        )
        self._capture_thread.start()
        logger.debug("Фоновый захват запущен")
        return True

    def stop_capture(self) -> None:
        """Остановить фоновый поток захвата кадров."""
        if not self._capture_running and self._capture_thread is None:
            return

        self._capture_running = False
        self._capture_stop_event.set()

        if self._capture_thread and self._capture_thread.is_alive():
            self._capture_thread.join(timeout=2.0)

        self._capture_thread = None
        logger.debug(f"Фоновый захват остановлен (захвачено кадров: {self._frames_captured})")

    def get_frame(self) -> Optional[np.ndarray]:
        """
        Получить последний захваченный кадр из буфера.

        Returns:
            Кадр как numpy array или None если буфер пуст.
        """
        with self._buffer_lock:
            if not self._buffer:
                return None
            return self._buffer[-1].copy()

    def capture_single_frame(self) -> Optional[np.ndarray]:
        """
        Захватить один кадр напрямую (без буфера).
        Полезно когда фоновый захват не запущен.

        Returns:
            Кадр или None при ошибке.
        """
        if not self.is_open():
            return None

        try:
            ret, frame = self._cap.read()
            if ret and frame is not None:
                return frame.copy()
        except Exception as e:
            logger.warning(f"Ошибка при захвате кадра: {e}")

        return None

    @property
    def frame_size(self) -> Optional[tuple[int, int]]:
        """Размер кадра (ширина, высота) или None, пока кадров нет."""
        with self._buffer_lock:
            if not self._buffer:
                return None
            height, width = self._buffer[-1].shape[:2]
            return width, height

    @property
    def frames_captured(self) -> int:
        """Количество захваченных кадров с момента запуска."""
        return self._frames_captured

    def _capture_loop(self) -> None:
        """Основной цикл захвата кадров (выполняется в отдельном потоке)."""
        consecutive_failures = 0
        max_failures = 10

        while self._capture_running and not self._capture_stop_event.is_set():
            try:
                cap = self._cap
                if cap is None or not cap.isOpened():
                    logger.warning("Камера отключена, останавливаем захват")
                    break

                ret, frame = cap.read()

                if not ret or frame is None:
                    consecutive_failures += 1
                    if consecutive_failures >= max_failures:
                        logger.error(f"Слишком много ошибок захвата ({max_failures}), останавливаем")
                        break
                    time.sleep(0.01)
                    continue

                consecutive_failures = 0
                with self._buffer_lock:
                    self._buffer.append(frame)

                self._frames_captured += 1

            except Exception as e:
                logger.error(f"Ошибка в цикле захвата: {e}")
                consecutive_failures += 1
                if consecutive_failures >= max_failures:
                    break
                time.sleep(0.01)

        self._capture_running = False

    def _release_cap(self) -> None:
        """Освободить устройство захвата."""
        if self._cap is not None:
            try:
                self._cap.release()
            finally:
                self._cap = None

    def _clear_buffer(self) -> None:
        """Очистить буфер кадров."""
        with self._buffer_lock:
            self._buffer.clear()
