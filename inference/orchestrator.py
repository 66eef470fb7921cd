"""
InferenceOrchestrator - один запрос на инференс за раз.

Принимает команды интерфейса, получает артефакты от InputAcquirer,
отправляет их через InferenceGateway и публикует снимки состояния.

Новый ввод во время запроса вытесняет его: задача запроса отменяется,
а её результат (если успеет прийти) отбрасывается по токену.
Выбор модели запрос не отменяет.
"""
import asyncio
from typing import Any, Callable, Optional

from core.config import Settings
from core.errors import (
    DecodeError,
    InferenceToolError,
    NetworkError,
    NoActiveCameraError,
    ValidationError,
)
from core.logging_config import get_logger
from inference.commands import (
    CaptureFrame,
    Command,
    SelectInputMode,
    SelectModel,
    StartCamera,
    StopCamera,
    UploadFile,
)
from inference.gateway import InferenceGateway
from inference.state import (
    CameraStarted,
    CameraStopped,
    ErrorRaised,
    Event,
    InputAcquired,
    InputModeSelected,
    ModelSelected,
    RequestFailed,
    RequestStarted,
    RequestSucceeded,
    Snapshot,
    transition,
)
from vision.input_acquirer import Acquisition, InputAcquirer, InputArtifact, InputMode, UploadedFile

logger = get_logger(__name__)

NO_MODEL_MESSAGE = "Please select a model first"

Listener = Callable[[Snapshot], None]


class InferenceOrchestrator:
    """
    Конечный автомат запроса на инференс.

    Использование:
        async with InferenceOrchestrator(settings, gateway) as orchestrator:
            await orchestrator.dispatch(SelectModel("yolo_model"))
            snapshot = await orchestrator.dispatch(UploadFile(UploadedFile.from_path("cat.jpg")))
            print(snapshot.result or snapshot.error)
    """

    def __init__(
        self,
        settings: Settings,
        gateway: InferenceGateway,
        acquirer: Optional[InputAcquirer] = None,
    ):
        """
        Args:
            settings: Настройки приложения.
            gateway: Клиент сервера инференса.
            acquirer: Источник ввода (по умолчанию создаётся из настроек).
        """
        self._settings = settings
        self._gateway = gateway
        self._acquirer = acquirer or InputAcquirer(settings)
        self._snapshot = Snapshot(models=tuple(settings.models), model=settings.default_model)
        self._listeners: list[Listener] = []

        self._inflight: Optional[asyncio.Task] = None
        self._last_submitted_token = 0

        # Command Registry: тип команды -> обработчик
        self._command_handlers = {
            SelectModel: lambda cmd: self.select_model(cmd.model),
            SelectInputMode: lambda cmd: self.select_input_mode(cmd.mode),
            UploadFile: lambda cmd: self.upload_file(cmd.upload),
            StartCamera: lambda cmd: self.start_camera(cmd.camera_index),
            CaptureFrame: lambda cmd: self.capture_frame(),
            StopCamera: lambda cmd: self.stop_camera(),
        }

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def acquirer(self) -> InputAcquirer:
        return self._acquirer

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Подписаться на новые снимки состояния.

        Returns:
            Функция отписки.
        """
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    async def dispatch(self, command: Command) -> Snapshot:
        """
        Выполнить команду интерфейса.

        Returns:
            Состояние после выполнения команды.
        """
        handler = self._command_handlers.get(type(command))
        if handler is None:
            raise TypeError(f"Unsupported command: {command!r}")

        logger.debug(f"Команда: {command!r}")
        result = handler(command)
        if asyncio.iscoroutine(result):
            await result
        return self._snapshot

    # --- Команды ---

    def select_model(self, model_id: str) -> Snapshot:
        """Выбрать модель. Сбрасывает показанную ошибку."""
        if model_id and model_id not in self._snapshot.models:
            return self._reject(ValidationError(f"Unknown model: {model_id}"))

        return self._apply(ModelSelected(model_id))

    async def select_input_mode(self, mode: InputMode) -> Snapshot:
        """Переключить режим ввода. Открытая камера закрывается до переключения."""
        if mode != self._snapshot.input_mode:
            self._release_camera()
        return self._apply(InputModeSelected(mode))

    async def upload_file(self, upload: UploadedFile) -> Snapshot:
        """Загрузить файл и отправить его на инференс."""
        accept = self._snapshot.input_mode.accept
        if accept and not upload.mime_type.startswith(accept):
            logger.warning(f"Файл {upload.filename} ({upload.mime_type}) не соответствует режиму "
                           f"{self._snapshot.input_mode.value}")

        token = self._acquirer.next_token()
        try:
            acquisition = await self._acquirer.acquire_from_file(upload, token)
        except DecodeError as e:
            return self._raise(e, token)

        return await self._hand_off(acquisition)

    async def start_camera(self, camera_index: Optional[int] = None) -> Snapshot:
        """Запустить камеру."""
        if self._snapshot.input_mode is not InputMode.WEBCAM:
            self._apply(InputModeSelected(InputMode.WEBCAM))

        try:
            await self._acquirer.start_camera(camera_index)
        except InferenceToolError as e:
            return self._reject(e)

        return self._apply(CameraStarted())

    async def capture_frame(self) -> Snapshot:
        """Сделать снимок с камеры и отправить его на инференс."""
        if not self._acquirer.camera_active:
            return self._reject(NoActiveCameraError())

        token = self._acquirer.next_token()
        try:
            acquisition = await self._acquirer.capture_frame(token)
        except NoActiveCameraError as e:
            self._sync_camera_state()
            return self._reject(e)
        except InferenceToolError as e:
            self._sync_camera_state()
            return self._raise(e, token)

        self._sync_camera_state()
        return await self._hand_off(acquisition)

    def stop_camera(self) -> Snapshot:
        """Остановить камеру. Повторный вызов ничего не меняет."""
        self._release_camera()
        return self._snapshot

    # --- Запрос ---

    async def submit(self, model: str, artifact: InputArtifact, token: Optional[int] = None) -> Snapshot:
        """
        Отправить артефакт на инференс и дождаться результата.

        Без выбранной модели сервер не вызывается: состояние Idle с ошибкой
        валидации. Для одного токена сервер вызывается не более одного раза.

        Returns:
            Состояние после завершения запроса.
        """
        if not model:
            return self._raise(ValidationError(NO_MODEL_MESSAGE))

        if token is None:
            token = self._acquirer.next_token()
        if token <= self._last_submitted_token:
            logger.warning(f"Повторная отправка токена {token} отклонена")
            return self._snapshot
        self._last_submitted_token = token

        self._cancel_inflight()
        self._apply(RequestStarted(token=token, model=model))

        task = asyncio.create_task(self._perform(token, model, artifact))
        self._inflight = task
        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            raise
        return self._snapshot

    async def _perform(self, token: int, model: str, artifact: InputArtifact) -> None:
        try:
            result = await self._gateway.perform_inference(model, artifact)
        except asyncio.CancelledError:
            logger.info(f"Запрос {token} вытеснен новым вводом")
            raise
        except InferenceToolError as e:
            logger.error(f"Инференс {model} (токен {token}) не удался: {e.message}")
            self._apply(RequestFailed(token=token, error=e.to_info()))
        except Exception as e:
            logger.exception(f"Непредвиденная ошибка инференса (токен {token})")
            self._apply(RequestFailed(token=token, error=NetworkError(str(e) or type(e).__name__).to_info()))
        else:
            logger.info(f"Инференс {model} (токен {token}): {_describe(result)}")
            self._apply(RequestSucceeded(token=token, result=result))
        finally:
            if self._inflight is asyncio.current_task():
                self._inflight = None

    async def _hand_off(self, acquisition: Acquisition) -> Snapshot:
        if not self._acquirer.is_current(acquisition.token):
            logger.debug(f"Устаревший ввод (токен {acquisition.token}) отброшен")
            return self._snapshot

        self._apply(InputAcquired(token=acquisition.token, preview=acquisition.preview))
        return await self.submit(self._snapshot.model, acquisition.artifact, acquisition.token)

    # --- Внутреннее ---

    def _apply(self, event: Event) -> Snapshot:
        previous = self._snapshot
        self._snapshot = transition(previous, event)
        if self._snapshot is not previous:
            for listener in list(self._listeners):
                listener(self._snapshot)
        return self._snapshot

    def _raise(self, error: InferenceToolError, token: Optional[int] = None) -> Snapshot:
        """Показать ошибку. Ошибка нового ввода вытесняет запрос в работе."""
        if token is not None and not self._acquirer.is_current(token):
            logger.debug(f"Ошибка устаревшего ввода (токен {token}) отброшена: {error.message}")
            return self._snapshot

        logger.warning(f"{type(error).__name__}: {error.message}")
        self._cancel_inflight()
        return self._apply(ErrorRaised(error=error.to_info(), token=token))

    def _reject(self, error: InferenceToolError) -> Snapshot:
        """Показать ошибку отклонённой команды. Запрос в работе и превью не трогаются."""
        logger.warning(f"Команда отклонена: {type(error).__name__}: {error.message}")
        return self._apply(ErrorRaised(error=error.to_info(), supersede=False))

    def _cancel_inflight(self) -> None:
        task, self._inflight = self._inflight, None
        if task is not None and not task.done():
            task.cancel()

    def _release_camera(self) -> None:
        self._acquirer.stop_camera()
        self._apply(CameraStopped())

    def _sync_camera_state(self) -> None:
        if not self._acquirer.camera_active:
            self._apply(CameraStopped())

    async def close(self) -> None:
        """Освободить камеру и отменить запрос в работе."""
        self._release_camera()
        task = self._inflight
        self._cancel_inflight()
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)

    async def __aenter__(self) -> "InferenceOrchestrator":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


def _describe(result: Any) -> str:
    if isinstance(result, dict) and "label" in result:
        return f"{result['label']} ({result.get('confidence', '?')})"
    return type(result).__name__
