"""
Pytest конфигурация и общие фикстуры.
"""
import time

import cv2
import numpy as np
import pytest

from core.config import Settings


class FakeCapture:
    """Замена cv2.VideoCapture: всегда отдаёт один и тот же кадр."""

    def __init__(self, frame=None, opened=True):
        self.frame = frame if frame is not None else _gradient(48, 64)
        self.opened = opened
        self.released = False
        self.props = {}
        self.reads = 0

    def isOpened(self):
        return self.opened and not self.released

    def set(self, prop, value):
        self.props[prop] = value
        return True

    def get(self, prop):
        return self.props.get(prop, 0)

    def read(self):
        if not self.isOpened():
            return False, None
        self.reads += 1
        time.sleep(0.002)
        return True, self.frame.copy()

    def release(self):
        self.released = True


class FakeCameraFactory:
    """Фабрика FakeCapture с записью созданных устройств."""

    def __init__(self, opened=True, frame=None):
        self.opened = opened
        self.frame = frame
        self.created = []

    def __call__(self, index):
        capture = FakeCapture(frame=self.frame, opened=self.opened)
        self.created.append((index, capture))
        return capture

    @property
    def last(self) -> FakeCapture:
        return self.created[-1][1]


def _gradient(height, width):
    row = np.linspace(0, 255, width, dtype=np.uint8)
    image = np.tile(row, (height, 1))
    return np.dstack([image, image[::-1], np.full_like(image, 90)])


@pytest.fixture
def settings() -> Settings:
    """Настройки без задержек retry."""
    return Settings(
        api_url="http://inference.test/api",
        retry_count=1,
        retry_delay=0.0,
        frame_buffer_size=2,
    )


@pytest.fixture
def camera_factory() -> FakeCameraFactory:
    return FakeCameraFactory()


@pytest.fixture
def denied_camera_factory() -> FakeCameraFactory:
    return FakeCameraFactory(opened=False)


@pytest.fixture
def jpeg_bytes() -> bytes:
    """JPEG около 10KB."""
    rng = np.random.default_rng(7)
    image = rng.integers(0, 255, size=(72, 96, 3), dtype=np.uint8)
    ok, buffer = cv2.imencode(".jpg", image, [cv2.IMWRITE_JPEG_QUALITY, 90])
    assert ok
    return buffer.tobytes()
