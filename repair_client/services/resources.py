"""
Группы методов REST API по ресурсам: авторизация, заявки, категории,
пользователи, настройки и загрузка изображений.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Sequence

from repair_client.core.errors import FormValidationError
from repair_client.models.category import Category
from repair_client.models.request import RepairRequest
from repair_client.models.settings import ServerSettings
from repair_client.models.user import AuthResult, User
from repair_client.services.diff import build_category_payload
from repair_client.services.uploads import ImageFile, validate_images

if TYPE_CHECKING:
    from repair_client.services.api_client import ApiClient

logger = logging.getLogger(__name__)


class _Resource:
    def __init__(self, client: ApiClient) -> None:
        self._client = client


class AuthAPI(_Resource):
    """Вход, регистрация и выход. Результат входа устанавливается в сессию."""

    async def login(self, username: str, password: str) -> User:
        data = await self._client.request(
            "POST",
            "/auth/login",
            authenticated=False,
            json={"username": username, "password": password},
        )
        return self._install(data)

    async def register(
        self, username: str, email: str, password: str, full_name: str
    ) -> User:
        data = await self._client.request(
            "POST",
            "/auth/register",
            authenticated=False,
            json={
                "username": username,
                "email": email,
                "password": password,
                "fullName": full_name,
            },
        )
        return self._install(data)

    def logout(self) -> None:
        self._client.session.clear()
        logger.info("User logged out.")

    def _install(self, data: dict) -> User:
        result = AuthResult.model_validate(data)
        self._client.session.install(result.token, result.user)
        logger.info(f"User {result.user.username} ({result.user.role}) signed in.")
        return result.user


class RepairRequestAPI(_Resource):
    async def list(self) -> list[RepairRequest]:
        data = await self._client.request("GET", "/repair-requests")
        return [RepairRequest.model_validate(item) for item in data or []]

    async def get_by_id(self, request_id: int) -> RepairRequest:
        data = await self._client.request("GET", f"/repair-requests/{request_id}")
        return RepairRequest.model_validate(data)

    async def create(self, payload: dict) -> RepairRequest:
        data = await self._client.request("POST", "/repair-requests", json=payload)
        return RepairRequest.model_validate(data)

    async def update(self, request_id: int, changes: dict) -> RepairRequest:
        """Отправляет только переданные поля; остальные сервер не трогает."""
        data = await self._client.request(
            "PUT", f"/repair-requests/{request_id}", json=changes
        )
        return RepairRequest.model_validate(data)

    async def delete(self, request_id: int) -> None:
        await self._client.request("DELETE", f"/repair-requests/{request_id}")


class CategoryAPI(_Resource):
    async def list(self) -> list[Category]:
        data = await self._client.request("GET", "/categories")
        return [Category.model_validate(item) for item in data or []]

    async def get_by_id(self, category_id: int) -> Category:
        data = await self._client.request("GET", f"/categories/{category_id}")
        return Category.model_validate(data)

    async def create(self, name: str, description: str | None = "") -> Category:
        payload = build_category_payload(name, description)
        data = await self._client.request("POST", "/categories", json=payload)
        return Category.model_validate(data)

    async def update(
        self, category_id: int, name: str, description: str | None = ""
    ) -> Category:
        payload = build_category_payload(name, description)
        data = await self._client.request(
            "PUT", f"/categories/{category_id}", json=payload
        )
        return Category.model_validate(data)

    async def delete(self, category_id: int) -> None:
        await self._client.request("DELETE", f"/categories/{category_id}")


class UserAPI(_Resource):
    async def list(self) -> list[User]:
        data = await self._client.request("GET", "/users")
        return [User.model_validate(item) for item in data or []]

    async def get_by_id(self, user_id: int) -> User:
        data = await self._client.request("GET", f"/users/{user_id}")
        return User.model_validate(data)

    async def create(self, payload: dict) -> User:
        if not payload.get("password"):
            raise FormValidationError("Укажите пароль.")
        data = await self._client.request("POST", "/users", json=payload)
        return User.model_validate(data)

    async def update(self, user_id: int, payload: dict) -> User:
        # Пустой пароль означает "не менять"
        payload = {k: v for k, v in payload.items() if not (k == "password" and not v)}
        data = await self._client.request("PUT", f"/users/{user_id}", json=payload)
        return User.model_validate(data)

    async def delete(self, user_id: int) -> None:
        await self._client.request("DELETE", f"/users/{user_id}")


class SettingsAPI(_Resource):
    async def get(self) -> ServerSettings:
        data = await self._client.request("GET", "/settings")
        return ServerSettings.model_validate(data)

    async def update(self, server_settings: ServerSettings) -> None:
        await self._client.request("PUT", "/settings", json=server_settings.to_wire())

    async def test_notification_channel(self, bot_token: str, chat_id: str) -> None:
        """Отправляет пробное сообщение независимо от флага enabled."""
        await self._client.request(
            "POST",
            "/settings/test-telegram",
            json={"botToken": bot_token, "chatId": chat_id},
        )


class UploadAPI(_Resource):
    async def images(
        self, files: Sequence[ImageFile], already_attached: int = 0
    ) -> list[str]:
        """
        Загружает изображения и возвращает пути на сервере в порядке отправки.

        Проверка типа, размера и количества выполняется до сетевого запроса.
        """
        validate_images(files, already_attached)
        multipart = [
            ("images", (file.filename, file.data, file.content_type)) for file in files
        ]
        data = await self._client.request("POST", "/upload/image", files=multipart)
        paths = list((data or {}).get("files") or [])
        logger.info(f"Uploaded {len(paths)} image(s).")
        return paths
