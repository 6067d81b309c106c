"""
Модели данных, связанные с пользователем.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

UserRole = Literal["admin", "technician", "requester"]
USER_ROLES: tuple[str, ...] = ("admin", "technician", "requester")


class WireModel(BaseModel):
    """
    Базовая модель для сущностей, приходящих от REST API.

    Сервер использует camelCase и ключ ``ID``; в Python поля доступны в snake_case.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def to_wire(self) -> dict:
        """Сериализует модель в JSON-совместимый словарь с серверными именами ключей."""
        return self.model_dump(mode="json", by_alias=True)


class User(WireModel):
    """
    Модель пользователя системы заявок.

    Атрибуты:
        id (int): Идентификатор пользователя на сервере.
        username (str): Логин.
        full_name (str): Имя и фамилия.
        role (str): Роль пользователя (admin, technician, requester).
        telegram_id (str | None): Идентификатор для уведомлений в Telegram.
    """

    id: int = Field(..., alias="ID")
    username: str = ""
    email: str = ""
    full_name: str = Field(default="", alias="fullName")
    role: UserRole
    phone_number: str | None = Field(default=None, alias="phoneNumber")
    telegram_id: str | None = Field(default=None, alias="telegramId")
    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")

    @property
    def display_name(self) -> str:
        return self.full_name or self.username or f"#{self.id}"


class AuthResult(WireModel):
    """Ответ на вход или регистрацию: токен и профиль пользователя."""

    token: str
    user: User
