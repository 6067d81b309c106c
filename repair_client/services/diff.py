"""
Подготовка тел запросов на изменение сущностей.

Для заявок отправляются только поля, отличающиеся от последнего известного
состояния на сервере. Для категорий и пользователей выполняются проверки
обязательных полей и формата.
"""

import re
from typing import Any

from repair_client.core.errors import FormValidationError
from repair_client.models.request import RepairRequest, RequestEditForm

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 6


def _parse_number(value: Any, field_label: str, cast=float) -> float | int | None:
    """Пустое значение означает "не задано"; иначе число или ошибка формата."""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        return cast(value)
    except (TypeError, ValueError):
        raise FormValidationError(f"Поле «{field_label}» должно быть числом.") from None


def build_request_update(stored: RepairRequest, form: RequestEditForm) -> dict:
    """
    Возвращает тело PUT-запроса с полями, значения которых изменились.

    Стоимость и исполнитель сравниваются как числа, чтобы "1500" и 1500.0
    не считались разными значениями.
    """
    changes: dict[str, Any] = {}

    if form.status != stored.status:
        changes["status"] = form.status

    technician_id = _parse_number(form.technician_id, "Исполнитель", cast=int)
    if technician_id is not None and technician_id != stored.technician_id:
        changes["technicianId"] = technician_id

    if (form.rejection_reason or "") != (stored.rejection_reason or ""):
        changes["rejectionReason"] = form.rejection_reason

    cost = _parse_number(form.cost, "Стоимость")
    if cost is not None and (stored.cost is None or cost != stored.cost):
        if cost < 0:
            raise FormValidationError("Стоимость не может быть отрицательной.")
        changes["cost"] = cost

    if form.priority != stored.priority:
        changes["priority"] = form.priority

    return changes


def build_category_payload(name: str, description: str | None = "") -> dict:
    """Проверяет название категории и возвращает тело запроса."""
    if not name or not name.strip():
        raise FormValidationError("Укажите название категории.")
    return {"name": name.strip(), "description": (description or "").strip()}


def build_user_payload(form: dict, editing: bool) -> dict:
    """
    Проверяет форму пользователя и собирает тело запроса.

    Args:
        form: Поля формы: username, email, fullName, role, phoneNumber,
            telegramId, password.
        editing: True для изменения существующего пользователя. В этом случае
            пустой пароль означает "не менять" и не попадает в запрос.
    """
    username = (form.get("username") or "").strip()
    email = (form.get("email") or "").strip()
    full_name = (form.get("fullName") or "").strip()
    password = form.get("password") or ""

    if not username:
        raise FormValidationError("Укажите имя пользователя.")
    if not email:
        raise FormValidationError("Укажите email.")
    if not full_name:
        raise FormValidationError("Укажите имя и фамилию.")
    if not editing and not password:
        raise FormValidationError("Укажите пароль.")
    if password and len(password) < MIN_PASSWORD_LENGTH:
        raise FormValidationError(
            f"Пароль должен содержать не менее {MIN_PASSWORD_LENGTH} символов."
        )
    if not EMAIL_RE.match(email):
        raise FormValidationError("Неверный формат email.")

    payload = {
        "username": username,
        "email": email,
        "fullName": full_name,
        "role": form.get("role") or "requester",
        "phoneNumber": (form.get("phoneNumber") or "").strip(),
        "telegramId": (form.get("telegramId") or "").strip(),
    }
    if password:
        payload["password"] = password
    return payload
