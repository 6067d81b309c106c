"""
Интеграционные тесты для обработчиков заявок.
"""

import json

import httpx
import pytest
from telegram.ext import ConversationHandler

from conftest import ADMIN, ALICE, BASE_URL, STATIC_URL, TECHNICIAN, make_request_json
from repair_client.handlers.request import (
    DESCRIPTION,
    TITLE,
    finish_request,
    get_title,
    list_requests,
    new_request_start,
    request_callback_handler,
    set_cost,
    show_request,
    show_stats,
)
from repair_client.models.request import RequestDraft
from repair_client.models.user import User
from repair_client.services.api_client import ApiClient
from repair_client.services.session_store import SessionRegistry


@pytest.fixture
def server():
    return {"handler": lambda request: httpx.Response(200, json=[])}


@pytest.fixture
def update_context(mocker, tmp_path, server):
    mock_update = mocker.MagicMock()
    mock_context = mocker.MagicMock()

    mock_update.effective_message.reply_text = mocker.AsyncMock()
    mock_update.callback_query = None
    mock_update.effective_user.id = 100

    transport = httpx.MockTransport(lambda request: server["handler"](request))
    mock_context.application.bot_data = {
        "sessions": SessionRegistry(tmp_path),
        "api_factory": lambda session: ApiClient(
            session,
            base_url=BASE_URL,
            static_base_url=STATIC_URL,
            transport=transport,
        ),
    }
    mock_context.user_data = {}
    mock_context.args = []

    return mock_update, mock_context


def _login_as(context, profile: dict) -> None:
    session = context.application.bot_data["sessions"].get(100)
    session.install("token", User.model_validate(profile))


@pytest.mark.asyncio
async def test_show_stats(update_context, server):
    # Arrange
    mock_update, mock_context = update_context
    _login_as(mock_context, ALICE)
    server["handler"] = lambda request: httpx.Response(
        200,
        json=[
            make_request_json(1, status="pending"),
            make_request_json(2, status="completed"),
        ],
    )

    # Act
    await show_stats(mock_update, mock_context)

    # Assert
    text = mock_update.effective_message.reply_text.call_args.args[0]
    assert "Всего: <b>2</b>" in text


@pytest.mark.asyncio
async def test_list_requests_empty(update_context, server):
    mock_update, mock_context = update_context
    _login_as(mock_context, ALICE)

    await list_requests(mock_update, mock_context)

    mock_update.effective_message.reply_text.assert_awaited_once_with(
        "📭 Заявок пока нет. Создать новую: /new"
    )


@pytest.mark.asyncio
async def test_show_request_for_admin_has_controls(update_context, server):
    """
    Тест: Администратор видит карточку с фото, исполнителями и кнопками.
    """
    # Arrange
    mock_update, mock_context = update_context
    _login_as(mock_context, ADMIN)
    mock_context.args = ["7"]

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/users":
            return httpx.Response(200, json=[ALICE, TECHNICIAN])
        return httpx.Response(
            200, json=make_request_json(7, images=["uploads/a.jpg"])
        )

    server["handler"] = handler

    # Act
    await show_request(mock_update, mock_context)

    # Assert
    kwargs = mock_update.effective_message.reply_text.call_args.kwargs
    text = mock_update.effective_message.reply_text.call_args.args[0]
    assert "Заявка #7" in text
    assert 'href="http://repair.test/uploads/a.jpg"' in text
    assert "Bob Fixer (<code>20</code>)" in text
    callbacks = [
        button.callback_data
        for row in kwargs["reply_markup"].inline_keyboard
        for button in row
    ]
    assert "status:7:completed" in callbacks
    assert "status:7:pending" not in callbacks
    assert "delreq:7" in callbacks


@pytest.mark.asyncio
async def test_show_request_for_requester_has_no_controls(update_context, server):
    mock_update, mock_context = update_context
    _login_as(mock_context, ALICE)
    mock_context.args = ["#7"]
    server["handler"] = lambda request: httpx.Response(200, json=make_request_json(7))

    await show_request(mock_update, mock_context)

    kwargs = mock_update.effective_message.reply_text.call_args.kwargs
    assert kwargs["reply_markup"] is None


@pytest.mark.asyncio
async def test_show_request_not_found(update_context, server):
    mock_update, mock_context = update_context
    _login_as(mock_context, ALICE)
    mock_context.args = ["404"]
    server["handler"] = lambda request: httpx.Response(404, json={"error": "not found"})

    await show_request(mock_update, mock_context)

    mock_update.effective_message.reply_text.assert_awaited_once_with(
        "🔍 Заявка #404 не найдена."
    )


@pytest.mark.asyncio
async def test_set_cost_sends_only_cost(update_context, server):
    # Arrange
    mock_update, mock_context = update_context
    _login_as(mock_context, TECHNICIAN)
    mock_context.args = ["7", "2500"]
    put_bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/users":
            return httpx.Response(200, json=[TECHNICIAN])
        if request.method == "PUT":
            put_bodies.append(json.loads(request.content))
            return httpx.Response(200, json=make_request_json(7, cost=2500))
        return httpx.Response(200, json=make_request_json(7))

    server["handler"] = handler

    # Act
    await set_cost(mock_update, mock_context)

    # Assert
    assert put_bodies == [{"cost": 2500.0}]
    text = mock_update.effective_message.reply_text.call_args.args[0]
    assert text.startswith("✅ Данные заявки обновлены.")


@pytest.mark.asyncio
async def test_status_button_updates_card(update_context, server, mocker):
    # Arrange
    mock_update, mock_context = update_context
    _login_as(mock_context, ADMIN)
    mock_update.callback_query = mocker.MagicMock()
    mock_update.callback_query.data = "status:7:in_progress"
    mock_update.callback_query.answer = mocker.AsyncMock()
    mock_update.callback_query.edit_message_text = mocker.AsyncMock()
    current = {"status": "pending"}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/users":
            return httpx.Response(200, json=[])
        if request.method == "PUT":
            current.update(json.loads(request.content))
        return httpx.Response(200, json=make_request_json(7, **current))

    server["handler"] = handler

    # Act
    await request_callback_handler(mock_update, mock_context)

    # Assert
    assert current["status"] == "in_progress"
    mock_update.callback_query.answer.assert_awaited_once_with(
        "Данные заявки обновлены."
    )
    edited_text = mock_update.callback_query.edit_message_text.call_args.kwargs["text"]
    assert "В работе" in edited_text


@pytest.mark.asyncio
async def test_new_request_without_categories(update_context, server):
    mock_update, mock_context = update_context
    _login_as(mock_context, ALICE)
    server["handler"] = lambda request: httpx.Response(200, json=[])

    state = await new_request_start(mock_update, mock_context)

    assert state == ConversationHandler.END
    assert "draft" not in mock_context.user_data


@pytest.mark.asyncio
async def test_new_request_start_prepares_draft(update_context, server):
    mock_update, mock_context = update_context
    _login_as(mock_context, ALICE)
    server["handler"] = lambda request: httpx.Response(
        200, json=[{"ID": 3, "name": "Оргтехника"}]
    )

    state = await new_request_start(mock_update, mock_context)

    assert state == TITLE
    assert mock_context.user_data["request_form"]["categories"] == {"Оргтехника": 3}


@pytest.mark.asyncio
async def test_finish_request_creates_request(update_context, server):
    """
    Тест: Завершение диалога создаёт заявку с уже загруженными фото.
    """
    # Arrange
    mock_update, mock_context = update_context
    _login_as(mock_context, ALICE)
    mock_context.user_data["draft"] = RequestDraft(
        title="Течёт кран", description="Капает с утра", category_id=3
    )
    mock_context.user_data["request_form"] = {
        "categories": {"Сантехника": 3},
        "images": ["uploads/a.jpg"],
    }
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(201, json=make_request_json(11))

    server["handler"] = handler

    # Act
    state = await finish_request(mock_update, mock_context)

    # Assert
    assert state == ConversationHandler.END
    assert bodies[0]["images"] == ["uploads/a.jpg"]
    assert bodies[0]["title"] == "Течёт кран"
    assert "draft" not in mock_context.user_data
    text = mock_update.effective_message.reply_text.call_args.args[0]
    assert "#11" in text


@pytest.mark.asyncio
async def test_get_title_escapes_markup(update_context):
    # Arrange
    mock_update, mock_context = update_context
    mock_context.user_data["draft"] = RequestDraft()
    mock_update.effective_message.text = "Трубы <течёт> & капает"

    # Act
    state = await get_title(mock_update, mock_context)

    # Assert
    assert state == DESCRIPTION
    assert mock_context.user_data["draft"].title == "Трубы <течёт> & капает"
    text = mock_update.effective_message.reply_text.call_args.args[0]
    assert "Трубы &lt;течёт&gt; &amp; капает" in text


@pytest.mark.asyncio
async def test_show_request_escapes_technician_names_and_links(update_context, server):
    """
    Тест: Имена исполнителей и ссылки на фото экранируются в HTML-карточке.
    """
    # Arrange
    mock_update, mock_context = update_context
    _login_as(mock_context, ADMIN)
    mock_context.args = ["7"]

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/users":
            return httpx.Response(200, json=[{**TECHNICIAN, "fullName": "Bob <Fixer>"}])
        return httpx.Response(
            200, json=make_request_json(7, images=['uploads/a".jpg'])
        )

    server["handler"] = handler

    # Act
    await show_request(mock_update, mock_context)

    # Assert
    text = mock_update.effective_message.reply_text.call_args.args[0]
    assert "Bob &lt;Fixer&gt; (<code>20</code>)" in text
    assert "Bob <Fixer>" not in text
    assert 'href="http://repair.test/uploads/a&quot;.jpg"' in text


@pytest.mark.asyncio
async def test_status_button_reports_load_failure(update_context, server, mocker):
    """
    Тест: Если заявку не удалось загрузить, пользователь видит ошибку сервера,
    а не сообщение о том, что заявка не найдена.
    """
    # Arrange
    mock_update, mock_context = update_context
    _login_as(mock_context, ADMIN)
    mock_update.callback_query = mocker.MagicMock()
    mock_update.callback_query.data = "status:7:completed"
    mock_update.callback_query.answer = mocker.AsyncMock()
    mock_update.callback_query.edit_message_text = mocker.AsyncMock()
    methods = []

    def handler(request: httpx.Request) -> httpx.Response:
        methods.append(request.method)
        if request.url.path == "/api/users":
            return httpx.Response(200, json=[])
        return httpx.Response(500, json={"error": "database is down"})

    server["handler"] = handler

    # Act
    await request_callback_handler(mock_update, mock_context)

    # Assert
    assert "PUT" not in methods
    mock_update.callback_query.answer.assert_awaited_once_with(
        "⚠️ database is down", show_alert=True
    )
    mock_update.callback_query.edit_message_text.assert_not_awaited()
