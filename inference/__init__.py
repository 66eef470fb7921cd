"""Inference модуль: клиент сервера, состояние, оркестратор."""

from inference.commands import (
    CaptureFrame,
    SelectInputMode,
    SelectModel,
    StartCamera,
    StopCamera,
    UploadFile,
)
from inference.gateway import InferenceGateway
from inference.orchestrator import InferenceOrchestrator
from inference.state import Busy, Failed, Idle, Snapshot, Succeeded, transition

__all__ = [
    "Busy",
    "CaptureFrame",
    "Failed",
    "Idle",
    "InferenceGateway",
    "InferenceOrchestrator",
    "SelectInputMode",
    "SelectModel",
    "Snapshot",
    "StartCamera",
    "StopCamera",
    "Succeeded",
    "UploadFile",
    "transition",
]
