"""Команды интерфейса. Других команд оркестратор не принимает."""
from dataclasses import dataclass
from typing import Optional, Union

from vision.input_acquirer import InputMode, UploadedFile


@dataclass(frozen=True)
class SelectModel:
    model: str


@dataclass(frozen=True)
class SelectInputMode:
    mode: InputMode


@dataclass(frozen=True)
class UploadFile:
    upload: UploadedFile


@dataclass(frozen=True)
class StartCamera:
    camera_index: Optional[int] = None


@dataclass(frozen=True)
class CaptureFrame:
    pass


@dataclass(frozen=True)
class StopCamera:
    pass


Command = Union[SelectModel, SelectInputMode, UploadFile, StartCamera, CaptureFrame, StopCamera]
