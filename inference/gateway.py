"""
InferenceGateway - HTTP клиент сервера инференса.

API сервера:
    POST {base_url}/inference      multipart: model=<id>, file=<артефакт>
    GET  {base_url}/models/{id}    метаданные модели

Любой не-2xx статус -> GatewayError со статусом.
Ошибки транспорта -> NetworkError.
"""
from typing import Any, Optional
from urllib.parse import quote

import httpx

from core.config import Settings
from core.errors import GatewayError, NetworkError
from core.logging_config import get_logger
from vision.input_acquirer import InputArtifact

logger = get_logger(__name__)


class InferenceGateway:
    """
    Асинхронный клиент сервера инференса.

    Использование:
        async with InferenceGateway(settings.api_url) as gateway:
            result = await gateway.perform_inference("yolo_model", artifact)
    """

    def __init__(
        self,
        base_url: str,
        timeout: Optional[float] = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            base_url: Базовый URL API (например http://localhost:5000/api).
            timeout: Таймаут запроса в секундах (None - без таймаута).
            client: Готовый httpx клиент. Если передан, gateway его не закрывает.
        """
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    @classmethod
    def from_settings(cls, settings: Settings) -> "InferenceGateway":
        return cls(settings.api_url, timeout=settings.gateway_timeout)

    async def perform_inference(self, model_id: str, artifact: InputArtifact) -> Any:
        """
        Отправить артефакт на инференс.

        Args:
            model_id: Идентификатор модели.
            artifact: Изображение или кадр.

        Returns:
            Ответ сервера (JSON) без изменений, None если тело пустое.
        """
        logger.debug(f"Инференс: модель={model_id}, файл={artifact.filename} ({artifact.size} байт)")
        return await self._request(
            "POST",
            "/inference",
            data={"model": model_id},
            files={"file": (artifact.filename, artifact.data, artifact.mime_type)},
        )

    async def get_model_info(self, model_id: str) -> Any:
        """Получить метаданные модели."""
        return await self._request("GET", f"/models/{quote(model_id, safe='')}")

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"Таймаут запроса {method} {url}")
            raise NetworkError(f"Request to {url} timed out") from e
        except httpx.HTTPError as e:
            logger.error(f"Ошибка соединения {method} {url}: {e}")
            raise NetworkError(f"Network error: {e}") from e

        if not response.is_success:
            logger.error(f"{method} {url} -> HTTP {response.status_code}")
            raise GatewayError(f"HTTP error! status: {response.status_code}", response.status_code)

        logger.debug(f"{method} {url} -> HTTP {response.status_code}")
        return self._parse(response)

    @staticmethod
    def _parse(response: httpx.Response) -> Any:
        if not response.content.strip():
            return None
        try:
            return response.json()
        except ValueError as e:
            raise GatewayError(
                f"Malformed response from inference server (status {response.status_code})",
                response.status_code,
            ) from e

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "InferenceGateway":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
