"""
Общие фикстуры: сессия во временном каталоге и клиент API с подменённым транспортом.
"""

import httpx
import pytest

from repair_client.services.api_client import ApiClient
from repair_client.services.session_store import FileSessionStorage, SessionStore

BASE_URL = "http://repair.test/api"
STATIC_URL = "http://repair.test"

ALICE = {
    "ID": 1,
    "username": "alice",
    "email": "alice@example.com",
    "fullName": "Alice Smith",
    "role": "requester",
}
ADMIN = {
    "ID": 10,
    "username": "root",
    "email": "root@example.com",
    "fullName": "Admin",
    "role": "admin",
}
TECHNICIAN = {
    "ID": 20,
    "username": "bob",
    "email": "bob@example.com",
    "fullName": "Bob Fixer",
    "role": "technician",
}


def make_request_json(request_id: int = 7, **overrides) -> dict:
    """Заявка в том виде, в каком её возвращает сервер."""
    data = {
        "ID": request_id,
        "title": "Не работает принтер",
        "description": "Замятие бумаги",
        "location": "Корпус 2, каб. 101",
        "categoryId": 3,
        "requesterId": 1,
        "technicianId": None,
        "status": "pending",
        "priority": "medium",
        "images": [],
        "cost": None,
        "rejectionReason": "",
        "createdAt": "2024-05-01T10:00:00Z",
    }
    data.update(overrides)
    return data


@pytest.fixture
def session(tmp_path) -> SessionStore:
    """Пустая сессия с файлом во временном каталоге."""
    return SessionStore(FileSessionStorage(tmp_path / "session.json"))


@pytest.fixture
def make_api(session):
    """
    Фабрика клиентов API: обработчик запросов подменяет сервер.

    Клиент нужно использовать как ``async with``.
    """

    def factory(handler) -> ApiClient:
        return ApiClient(
            session,
            base_url=BASE_URL,
            static_base_url=STATIC_URL,
            transport=httpx.MockTransport(handler),
        )

    return factory
