"""
Состояние клиента инференса и функция переходов.

Снимок состояния неизменяемый. Каждое событие порождает новый снимок
через transition(snapshot, event); если событие ничего не меняет,
возвращается тот же объект.

Состояния запроса:
    Idle -> Busy -> Succeeded | Failed
    Succeeded | Failed --выбор модели--> Idle (ошибка сбрасывается, результат остаётся)
    Succeeded | Failed --новый ввод--> Busy
    Busy --отклонённая команда--> Busy с ошибкой (запрос продолжается)
"""
from dataclasses import dataclass, field, replace
from typing import Any, Optional, Union

from core.errors import ErrorInfo
from vision.frame_codec import Preview
from vision.input_acquirer import InputMode


# --- Состояние запроса ---

@dataclass(frozen=True)
class Idle:
    """Нет запроса в работе. Может показывать прошлый результат или ошибку."""
    result: Any = None
    error: Optional[ErrorInfo] = None


@dataclass(frozen=True)
class Busy:
    """Запрос с токеном token отправлен и ещё не завершён."""
    token: int
    model: str
    # Отклонённая команда, пока запрос продолжается
    error: Optional[ErrorInfo] = None


@dataclass(frozen=True)
class Succeeded:
    token: int
    result: Any


@dataclass(frozen=True)
class Failed:
    token: int
    error: ErrorInfo


RequestState = Union[Idle, Busy, Succeeded, Failed]


@dataclass(frozen=True)
class InputState:
    """Состояние источника ввода."""
    mode: InputMode = InputMode.IMAGE
    camera_active: bool = False
    preview: Optional[Preview] = None
    token: int = 0


@dataclass(frozen=True)
class Snapshot:
    """Всё, что нужно для отрисовки интерфейса."""
    models: tuple[str, ...] = ()
    model: str = ""
    request: RequestState = field(default_factory=Idle)
    input: InputState = field(default_factory=InputState)

    @property
    def busy(self) -> bool:
        return isinstance(self.request, Busy)

    @property
    def result(self) -> Any:
        if isinstance(self.request, (Idle, Succeeded)):
            return self.request.result
        return None

    @property
    def error(self) -> Optional[ErrorInfo]:
        if isinstance(self.request, (Idle, Busy, Failed)):
            return self.request.error
        return None

    @property
    def preview(self) -> Optional[Preview]:
        return self.input.preview

    @property
    def input_mode(self) -> InputMode:
        return self.input.mode

    @property
    def camera_active(self) -> bool:
        return self.input.camera_active


# --- События ---

@dataclass(frozen=True)
class ModelSelected:
    model: str


@dataclass(frozen=True)
class InputModeSelected:
    mode: InputMode


@dataclass(frozen=True)
class CameraStarted:
    pass


@dataclass(frozen=True)
class CameraStopped:
    pass


@dataclass(frozen=True)
class InputAcquired:
    token: int
    preview: Preview


@dataclass(frozen=True)
class ErrorRaised:
    """
    Ошибка вне запроса (валидация, файл, камера). Заменяет результат и ошибку.

    supersede=False - отклонённая команда: запрос в работе не трогается.
    """
    error: ErrorInfo
    # Если ошибка относится к новому событию ввода, старое превью убирается
    token: Optional[int] = None
    supersede: bool = True


@dataclass(frozen=True)
class RequestStarted:
    token: int
    model: str


@dataclass(frozen=True)
class RequestSucceeded:
    token: int
    result: Any


@dataclass(frozen=True)
class RequestFailed:
    token: int
    error: ErrorInfo


Event = Union[
    ModelSelected,
    InputModeSelected,
    CameraStarted,
    CameraStopped,
    InputAcquired,
    ErrorRaised,
    RequestStarted,
    RequestSucceeded,
    RequestFailed,
]


def _clear_error(request: RequestState) -> RequestState:
    if isinstance(request, Failed):
        return Idle()
    if isinstance(request, Succeeded):
        return Idle(result=request.result)
    if isinstance(request, Idle) and request.error is not None:
        return Idle(result=request.result)
    if isinstance(request, Busy) and request.error is not None:
        return replace(request, error=None)
    return request


def _settles(request: RequestState, token: int) -> bool:
    return isinstance(request, Busy) and request.token == token


def transition(snapshot: Snapshot, event: Event) -> Snapshot:
    """
    Применить событие к снимку состояния.

    Args:
        snapshot: Текущее состояние.
        event: Событие.

    Returns:
        Новое состояние (или тот же объект, если ничего не изменилось).
    """
    request = snapshot.request

    if isinstance(event, ModelSelected):
        # Запрос в работе не отменяется, его результат всё ещё будет показан
        new_request = _clear_error(request)
        if event.model == snapshot.model and new_request is request:
            return snapshot
        return replace(snapshot, model=event.model, request=new_request)

    if isinstance(event, InputModeSelected):
        if event.mode == snapshot.input.mode:
            return snapshot
        return replace(snapshot, input=replace(snapshot.input, mode=event.mode))

    if isinstance(event, CameraStarted):
        return replace(
            snapshot,
            request=_clear_error(request),
            input=replace(snapshot.input, camera_active=True),
        )

    if isinstance(event, CameraStopped):
        if not snapshot.input.camera_active:
            return snapshot
        return replace(snapshot, input=replace(snapshot.input, camera_active=False))

    if isinstance(event, InputAcquired):
        if event.token < snapshot.input.token:
            return snapshot
        return replace(snapshot, input=replace(snapshot.input, preview=event.preview, token=event.token))

    if isinstance(event, ErrorRaised):
        if not event.supersede and isinstance(request, Busy):
            return replace(snapshot, request=replace(request, error=event.error))
        new_input = snapshot.input
        if event.token is not None and event.token >= new_input.token:
            new_input = replace(new_input, preview=None, token=event.token)
        return replace(snapshot, request=Idle(error=event.error), input=new_input)

    if isinstance(event, RequestStarted):
        return replace(snapshot, request=Busy(token=event.token, model=event.model))

    if isinstance(event, RequestSucceeded):
        if not _settles(request, event.token):
            return snapshot
        return replace(snapshot, request=Succeeded(token=event.token, result=event.result))

    if isinstance(event, RequestFailed):
        if not _settles(request, event.token):
            return snapshot
        return replace(snapshot, request=Failed(token=event.token, error=event.error))

    raise TypeError(f"Unknown event: {event!r}")
