"""
Тесты для контроллеров категорий, пользователей и настроек.
"""

import json

import httpx
import pytest

from conftest import ADMIN, ALICE
from repair_client.controllers.base import Loaded
from repair_client.controllers.management import (
    CategoryManagementController,
    SettingsController,
    UserManagementController,
)
from repair_client.models.settings import ServerSettings, TelegramSettings
from repair_client.models.user import User

SETTINGS_JSON = {
    "telegram": {
        "enabled": False,
        "botToken": "",
        "chatId": "",
        "notifyOnNewRequest": True,
        "notifyOnStatusChange": True,
        "notifyOnAssignment": True,
        "notifyOnCompletion": True,
    },
    "system": {
        "siteName": "Ремонт",
        "siteDescription": "",
        "adminEmail": "admin@example.com",
        "autoAssignTechnicians": False,
        "requireApproval": True,
        "defaultPriority": "medium",
        "maintenanceMode": False,
    },
}


@pytest.fixture
def as_admin(session):
    session.install("admin-token", User.model_validate(ADMIN))
    return session


# --- Категории ---


@pytest.mark.asyncio
async def test_create_category_reloads_list(make_api, as_admin):
    """
    Тест: После создания категории список перезагружается, сообщение об успехе остаётся.
    """
    # Arrange
    categories = [{"ID": 1, "name": "Сантехника"}]

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            body = json.loads(request.content)
            created = {"ID": 2, **body}
            categories.append(created)
            return httpx.Response(201, json=created)
        return httpx.Response(200, json=categories)

    # Act
    async with make_api(handler) as api:
        controller = CategoryManagementController(api)
        await controller.load()
        category = await controller.save(" Электрика ", "Розетки")

    # Assert
    assert category.name == "Электрика"
    assert controller.success == "Категория добавлена."
    assert isinstance(controller.state, Loaded)
    assert [c.name for c in controller.data] == ["Сантехника", "Электрика"]


@pytest.mark.asyncio
async def test_blank_category_name_is_rejected(make_api, as_admin):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json=[])

    async with make_api(handler) as api:
        controller = CategoryManagementController(api)
        result = await controller.save("  ")

    assert result is None
    assert controller.error == "Укажите название категории."
    assert calls == []


@pytest.mark.asyncio
async def test_delete_category_in_use_shows_server_error(make_api, as_admin):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error": "category is in use"})

    async with make_api(handler) as api:
        controller = CategoryManagementController(api)
        deleted = await controller.delete(1)

    assert deleted is False
    assert controller.error == "category is in use"


# --- Пользователи ---


@pytest.mark.asyncio
async def test_admin_cannot_delete_self(make_api, as_admin):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200)

    async with make_api(handler) as api:
        controller = UserManagementController(api)
        deleted = await controller.delete(ADMIN["ID"])

    assert deleted is False
    assert calls == []


@pytest.mark.asyncio
async def test_delete_user_reloads_list(make_api, as_admin):
    methods = []

    def handler(request: httpx.Request) -> httpx.Response:
        methods.append(request.method)
        if request.method == "DELETE":
            return httpx.Response(200, json={"message": "deleted"})
        return httpx.Response(200, json=[ADMIN])

    async with make_api(handler) as api:
        controller = UserManagementController(api)
        deleted = await controller.delete(ALICE["ID"])

    assert deleted is True
    assert methods == ["DELETE", "GET"]
    assert controller.success == "Пользователь удалён."


@pytest.mark.asyncio
async def test_edit_user_without_password(make_api, as_admin):
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "PUT":
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json=ALICE)
        return httpx.Response(200, json=[ALICE])

    form = {
        "username": "alice",
        "email": "alice@example.com",
        "fullName": "Alice Smith",
        "role": "technician",
        "password": "",
    }
    async with make_api(handler) as api:
        controller = UserManagementController(api)
        saved = await controller.save(form, user_id=ALICE["ID"])

    assert saved is not None
    assert "password" not in bodies[0]
    assert bodies[0]["role"] == "technician"


# --- Настройки ---


@pytest.mark.asyncio
async def test_settings_round_trip(make_api, as_admin):
    """
    Тест: Настройки загружаются и сохраняются целиком.
    """
    # Arrange
    put_bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "PUT":
            put_bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"message": "ok"})
        return httpx.Response(200, json=SETTINGS_JSON)

    # Act
    async with make_api(handler) as api:
        controller = SettingsController(api)
        loaded = await controller.load()
        changed = loaded.model_copy(
            update={
                "system": loaded.system.model_copy(update={"maintenance_mode": True})
            }
        )
        saved = await controller.save(changed)

    # Assert
    assert controller.can_manage is True
    assert loaded.system.site_name == "Ремонт"
    assert saved is True
    assert put_bodies[0]["system"]["maintenanceMode"] is True
    assert put_bodies[0]["telegram"] == SETTINGS_JSON["telegram"]


@pytest.mark.asyncio
async def test_enabled_telegram_requires_token_and_chat(make_api, as_admin):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json=SETTINGS_JSON)

    settings = ServerSettings.model_validate(SETTINGS_JSON).model_copy(
        update={"telegram": TelegramSettings(enabled=True, bot_token="123:abc")}
    )
    async with make_api(handler) as api:
        controller = SettingsController(api)
        saved = await controller.save(settings)

    assert saved is False
    assert controller.error == "Укажите Chat ID."
    assert calls == []


@pytest.mark.asyncio
async def test_test_notification(make_api, as_admin):
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/settings/test-telegram"
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"message": "sent"})

    async with make_api(handler) as api:
        controller = SettingsController(api)
        sent = await controller.test_notification(" 123:abc ", "-100500")

    assert sent is True
    assert bodies == [{"botToken": "123:abc", "chatId": "-100500"}]
    assert "Тестовое сообщение отправлено" in controller.success


@pytest.mark.asyncio
async def test_test_notification_requires_token(make_api, as_admin):
    async with make_api(lambda request: httpx.Response(200)) as api:
        controller = SettingsController(api)
        sent = await controller.test_notification("", "-100500")

    assert sent is False
    assert controller.error == "Сначала укажите Bot Token."
