"""
Контроллеры административных экранов: категории, пользователи и настройки.
"""

import logging

from repair_client.controllers.base import ScreenController
from repair_client.core.errors import FormValidationError
from repair_client.core.permissions import Action
from repair_client.models.category import Category
from repair_client.models.settings import ServerSettings
from repair_client.models.user import User
from repair_client.services.diff import build_category_payload, build_user_payload

logger = logging.getLogger(__name__)


class CategoryManagementController(ScreenController):
    load_error_message = "Не удалось загрузить категории."

    async def load(self) -> list[Category] | None:
        return await self._load(self.api.categories.list)

    async def save(
        self, name: str, description: str = "", category_id: int | None = None
    ) -> Category | None:
        """Создаёт категорию или изменяет существующую (если передан category_id)."""
        self.clear_messages()
        try:
            build_category_payload(name, description)
        except FormValidationError as e:
            self.error = e.message
            return None

        if category_id is None:
            saved = await self._submit(
                lambda: self.api.categories.create(name, description),
                success_message="Категория добавлена.",
                fallback_error="Ошибка при сохранении категории.",
            )
        else:
            saved = await self._submit(
                lambda: self.api.categories.update(category_id, name, description),
                success_message="Категория обновлена.",
                fallback_error="Ошибка при сохранении категории.",
            )
        if saved is not None:
            await self._reload()
        return saved

    async def delete(self, category_id: int) -> bool:
        self.clear_messages()
        await self._submit(
            lambda: self.api.categories.delete(category_id),
            success_message="Категория удалена.",
            fallback_error="Ошибка при удалении категории.",
        )
        if self.error is None:
            await self._reload()
            return True
        return False

    async def _reload(self) -> None:
        success = self.success
        await self.load()
        self.success = success


class UserManagementController(ScreenController):
    load_error_message = "Не удалось загрузить пользователей."

    async def load(self) -> list[User] | None:
        return await self._load(self.api.users.list)

    @staticmethod
    def form_from_user(user: User) -> dict:
        """Поля формы редактирования с текущими значениями; пароль пустой."""
        return {
            "username": user.username,
            "email": user.email,
            "fullName": user.full_name,
            "role": user.role,
            "phoneNumber": user.phone_number or "",
            "telegramId": user.telegram_id or "",
            "password": "",
        }

    async def save(self, form: dict, user_id: int | None = None) -> User | None:
        """
        Создаёт пользователя или изменяет существующего.

        При изменении пустой пароль не отправляется.
        """
        self.clear_messages()
        editing = user_id is not None
        try:
            payload = build_user_payload(form, editing=editing)
        except FormValidationError as e:
            self.error = e.message
            return None

        if editing:
            saved = await self._submit(
                lambda: self.api.users.update(user_id, payload),
                success_message="Данные пользователя обновлены.",
                fallback_error="Ошибка при сохранении данных.",
            )
        else:
            saved = await self._submit(
                lambda: self.api.users.create(payload),
                success_message="Пользователь создан.",
                fallback_error="Ошибка при сохранении данных.",
            )
        if saved is not None:
            await self._reload()
        return saved

    async def delete(self, user_id: int) -> bool:
        self.clear_messages()
        current = self.api.session.get_user()
        if current is not None and current.id == user_id:
            self.error = "Нельзя удалить собственную учётную запись."
            return False

        await self._submit(
            lambda: self.api.users.delete(user_id),
            success_message="Пользователь удалён.",
            fallback_error="Ошибка при удалении пользователя.",
        )
        if self.error is None:
            logger.info(f"User {user_id} deleted by {current.id if current else '?'}.")
            await self._reload()
            return True
        return False

    async def _reload(self) -> None:
        success = self.success
        await self.load()
        self.success = success


class SettingsController(ScreenController):
    """Настройки сервера загружаются и сохраняются целиком."""

    load_error_message = "Не удалось загрузить настройки."

    @property
    def can_manage(self) -> bool:
        return self.can(Action.MANAGE_SETTINGS)

    async def load(self) -> ServerSettings | None:
        return await self._load(self.api.settings.get)

    async def save(self, server_settings: ServerSettings) -> bool:
        self.clear_messages()
        try:
            self._validate(server_settings)
        except FormValidationError as e:
            self.error = e.message
            return False

        await self._submit(
            lambda: self.api.settings.update(server_settings),
            success_message="Настройки сохранены.",
            fallback_error="Ошибка при сохранении настроек.",
        )
        if self.error is not None:
            return False
        success = self.success
        await self.load()
        self.success = success
        return True

    async def test_notification(self, bot_token: str, chat_id: str) -> bool:
        """Отправляет пробное сообщение в Telegram через сервер."""
        self.clear_messages()
        if not (bot_token or "").strip():
            self.error = "Сначала укажите Bot Token."
            return False
        if not (chat_id or "").strip():
            self.error = "Сначала укажите Chat ID."
            return False

        await self._submit(
            lambda: self.api.settings.test_notification_channel(
                bot_token.strip(), chat_id.strip()
            ),
            success_message="Тестовое сообщение отправлено! Проверьте Telegram.",
            fallback_error="Ошибка при отправке тестового сообщения.",
        )
        return self.error is None

    @staticmethod
    def _validate(server_settings: ServerSettings) -> None:
        telegram = server_settings.telegram
        if telegram.enabled:
            if not telegram.bot_token.strip():
                raise FormValidationError("Укажите Bot Token.")
            if not telegram.chat_id.strip():
                raise FormValidationError("Укажите Chat ID.")
        system = server_settings.system
        if not system.site_name.strip():
            raise FormValidationError("Укажите название сайта.")
        if not system.admin_email.strip():
            raise FormValidationError("Укажите email администратора.")
