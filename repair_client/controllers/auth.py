"""
Контроллеры экранов входа и регистрации.
"""

import logging

from repair_client.controllers.base import ScreenController
from repair_client.core.errors import FormValidationError
from repair_client.models.user import User
from repair_client.services.diff import EMAIL_RE, MIN_PASSWORD_LENGTH

logger = logging.getLogger(__name__)


class LoginController(ScreenController):
    async def submit(self, username: str, password: str) -> User | None:
        """
        Проверяет поля и выполняет вход.

        При ошибке прежняя сессия остаётся нетронутой, а сообщение сервера
        сохраняется в ``error``.
        """
        self.clear_messages()
        username = (username or "").strip()
        if not username:
            self.error = "Укажите имя пользователя."
            return None
        if not password:
            self.error = "Укажите пароль."
            return None

        return await self._submit(
            lambda: self.api.auth.login(username, password),
            success_message="Вход выполнен.",
            fallback_error="Ошибка входа в систему.",
        )


class RegisterController(ScreenController):
    async def submit(
        self, username: str, email: str, full_name: str, password: str
    ) -> User | None:
        self.clear_messages()
        try:
            username, email, full_name = self._validate(
                username, email, full_name, password
            )
        except FormValidationError as e:
            self.error = e.message
            return None

        return await self._submit(
            lambda: self.api.auth.register(username, email, password, full_name),
            success_message="Регистрация прошла успешно.",
            fallback_error="Ошибка регистрации.",
        )

    @staticmethod
    def _validate(
        username: str, email: str, full_name: str, password: str
    ) -> tuple[str, str, str]:
        username = (username or "").strip()
        email = (email or "").strip()
        full_name = (full_name or "").strip()
        if not username:
            raise FormValidationError("Укажите имя пользователя.")
        if not email:
            raise FormValidationError("Укажите email.")
        if not EMAIL_RE.match(email):
            raise FormValidationError("Неверный формат email.")
        if not full_name:
            raise FormValidationError("Укажите имя и фамилию.")
        if not password:
            raise FormValidationError("Укажите пароль.")
        if len(password) < MIN_PASSWORD_LENGTH:
            raise FormValidationError(
                f"Пароль должен содержать не менее {MIN_PASSWORD_LENGTH} символов."
            )
        return username, email, full_name
