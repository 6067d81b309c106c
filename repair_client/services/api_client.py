"""
Асинхронный HTTP-клиент REST API сервиса заявок.

Подставляет токен сессии в каждый аутентифицированный запрос и перехватывает
ответы 401: сессия очищается до того, как ошибка дойдёт до вызывающего кода.
Повторных попыток и кэширования нет.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any, Self

import httpx

from repair_client.core.config import settings
from repair_client.core.errors import (
    ApiError,
    NetworkError,
    NotFoundError,
    SessionExpiredError,
)
from repair_client.services.resources import (
    AuthAPI,
    CategoryAPI,
    RepairRequestAPI,
    SettingsAPI,
    UploadAPI,
    UserAPI,
)
from repair_client.services.session_store import SessionStore
from repair_client.services.stats import aggregate

logger = logging.getLogger(__name__)


def _error_message(response: httpx.Response) -> str | None:
    """Достаёт текст ошибки из поля ``error`` тела ответа, если он есть."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        message = body.get("error")
        return str(message) if message else None
    return None


class ApiClient:
    """
    Клиент REST API с группами методов по ресурсам.

    Usage::

        async with ApiClient(session) as api:
            await api.auth.login("alice", "secret")
            requests = await api.repair_requests.list()
    """

    def __init__(
        self,
        session: SessionStore,
        base_url: str | None = None,
        static_base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.session = session
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.static_base_url = (static_base_url or settings.static_base_url).rstrip("/")
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

        self.auth = AuthAPI(self)
        self.repair_requests = RepairRequestAPI(self)
        self.categories = CategoryAPI(self)
        self.users = UserAPI(self)
        self.settings = SettingsAPI(self)
        self.uploads = UploadAPI(self)

    async def __aenter__(self) -> Self:
        self._client = httpx.AsyncClient(
            base_url=self.base_url + "/",
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError(
                f"{type(self).__name__} must be used as async context manager: "
                f"async with {type(self).__name__}(session) as api: ..."
            )
        return self._client

    async def request(
        self,
        method: str,
        path: str,
        authenticated: bool = True,
        **kwargs: Any,
    ) -> Any:
        """
        Выполняет запрос и возвращает разобранное JSON-тело (или None).

        Args:
            method: HTTP-метод.
            path: Путь относительно базового URL API.
            authenticated: Подставлять ли токен и перехватывать ли 401.
                Вход и регистрация выполняются без токена: 401 там означает
                неверные учётные данные, а не истёкшую сессию.

        Raises:
            SessionExpiredError: Токен отклонён, сессия уже очищена.
            NotFoundError: Сущность не найдена.
            ApiError: Любой другой ответ не 2xx.
            NetworkError: Сервер недоступен.
        """
        client = self._ensure_client()
        headers = dict(kwargs.pop("headers", None) or {})
        if authenticated:
            headers.update(self.session.auth_headers())

        try:
            response = await client.request(
                method, path.lstrip("/"), headers=headers, **kwargs
            )
        except httpx.TransportError as e:
            logger.error(f"{method} {path} failed: {e!r}")
            raise NetworkError() from e

        if response.is_success:
            if not response.content:
                return None
            try:
                return response.json()
            except ValueError:
                return None

        status = response.status_code
        message = _error_message(response)
        logger.warning(f"{method} {path} returned {status}: {message}")

        if status == HTTPStatus.UNAUTHORIZED and authenticated:
            self.session.expire()
            raise SessionExpiredError()
        if status == HTTPStatus.NOT_FOUND:
            raise NotFoundError(message, status)
        raise ApiError(message, status)

    async def dashboard_stats(self):
        """
        Собирает статистику из полного списка заявок.

        Отдельного эндпоинта на сервере нет; результат не кэшируется.
        """
        requests = await self.repair_requests.list()
        return aggregate(requests)

    def image_url(self, path: str) -> str:
        """Строит полный URL загруженного изображения."""
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.static_base_url}/{path.lstrip('/')}"
