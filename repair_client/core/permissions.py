"""
Единая проверка прав для элементов интерфейса.

Это только фильтр отображения: настоящую авторизацию выполняет сервер.
"""

from enum import Enum


class Action(str, Enum):
    VIEW_DASHBOARD = "view_dashboard"
    VIEW_REQUESTS = "view_requests"
    CREATE_REQUEST = "create_request"
    EDIT_REQUEST = "edit_request"
    DELETE_REQUEST = "delete_request"
    MANAGE_CATEGORIES = "manage_categories"
    MANAGE_USERS = "manage_users"
    MANAGE_SETTINGS = "manage_settings"


ALL_ROLES = frozenset({"admin", "technician", "requester"})
STAFF_ROLES = frozenset({"admin", "technician"})
ADMIN_ROLES = frozenset({"admin"})

_ALLOWED_ROLES: dict[Action, frozenset[str]] = {
    Action.VIEW_DASHBOARD: ALL_ROLES,
    Action.VIEW_REQUESTS: ALL_ROLES,
    Action.CREATE_REQUEST: ALL_ROLES,
    Action.EDIT_REQUEST: STAFF_ROLES,
    Action.DELETE_REQUEST: STAFF_ROLES,
    Action.MANAGE_CATEGORIES: ADMIN_ROLES,
    Action.MANAGE_USERS: ADMIN_ROLES,
    Action.MANAGE_SETTINGS: ADMIN_ROLES,
}


def can_perform(role: str | None, action: Action) -> bool:
    """
    Проверяет, доступно ли действие пользователю с указанной ролью.

    Args:
        role: Роль из профиля текущей сессии (None, если сессии нет).
        action: Проверяемое действие.

    Returns:
        True, если элемент управления можно показать.
    """
    if not role:
        return False
    return role in _ALLOWED_ROLES.get(action, frozenset())
