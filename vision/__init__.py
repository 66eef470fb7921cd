"""Vision модуль: камера, превью, получение входных данных."""

from vision.camera_manager import CameraManager
from vision.frame_codec import Preview
from vision.input_acquirer import (
    Acquisition,
    CameraSession,
    InputAcquirer,
    InputArtifact,
    InputMode,
    UploadedFile,
)

__all__ = [
    "Acquisition",
    "CameraManager",
    "CameraSession",
    "InputAcquirer",
    "InputArtifact",
    "InputMode",
    "Preview",
    "UploadedFile",
]
