"""
Обработчики административных команд: пользователи, категории и настройки.
"""

import html
import logging

from telegram import InlineKeyboardButton, InlineKeyboardMarkup, Update
from telegram.constants import ParseMode
from telegram.ext import ContextTypes

from repair_client.controllers.base import Failed
from repair_client.controllers.management import (
    CategoryManagementController,
    SettingsController,
    UserManagementController,
)
from repair_client.core.decorators import require_session
from repair_client.core.permissions import Action
from repair_client.handlers.common import delete_secret_message, open_api
from repair_client.models.user import USER_ROLES
from repair_client.services.formatting import priority_label, role_label

logger = logging.getLogger(__name__)


def _on_off(flag: bool) -> str:
    return "вкл" if flag else "выкл"


@require_session(Action.MANAGE_USERS)
async def list_users(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Выводит список всех пользователей в виде интерактивных карточек с кнопками.
    Доступно только для администраторов.
    """
    message = update.effective_message
    async with open_api(context, context.user_data["session"]) as api:
        controller = UserManagementController(api)
        users = await controller.load()

    if isinstance(controller.state, Failed):
        await message.reply_text(f"❌ {controller.state.message}")
        return
    if not users:
        await message.reply_text("👥 Список пользователей пуст.")
        return

    await message.reply_text(text="--- 👥 Список пользователей ---")
    for user in users:
        # Для каждого пользователя создаем свою клавиатуру
        keyboard = [
            [InlineKeyboardButton("🗑️ Удалить", callback_data=f"delete_user:{user.id}")]
        ]
        user_info = (
            f"👤 <b>{html.escape(user.display_name)}</b>\n"
            f"   Логин: <code>{html.escape(user.username)}</code> (ID {user.id})\n"
            f"   Email: {html.escape(user.email)}\n"
            f"   Роль: <i>{role_label(user.role)}</i>"
        )
        await message.reply_text(
            text=user_info,
            parse_mode=ParseMode.HTML,
            reply_markup=InlineKeyboardMarkup(keyboard),
        )


@require_session(Action.MANAGE_USERS)
async def admin_user_callback(
    update: Update, context: ContextTypes.DEFAULT_TYPE
) -> None:
    """
    Обрабатывает нажатия на inline-кнопки в карточках пользователей.
    """
    query = update.callback_query

    # Формат callback_data: "действие:id_пользователя"
    action, user_id_str = query.data.split(":", 1)
    user_id = int(user_id_str)

    if action != "delete_user":
        await query.answer()
        return

    async with open_api(context, context.user_data["session"]) as api:
        controller = UserManagementController(api)
        deleted = await controller.delete(user_id)

    await query.answer()
    if deleted:
        logger.info(f"Telegram user {query.from_user.id} deleted user {user_id}.")
        await query.edit_message_text(text=f"✅ Пользователь {user_id} удален.")
    else:
        await query.edit_message_text(text=f"⚠️ {controller.error}")


ADD_USER_USAGE = (
    "/adduser <логин>; <email>; <имя и фамилия>; <роль>; <пароль>"
    "[; <телефон>[; <Telegram ID>]]"
)

# Поле команды /edituser -> ключ формы пользователя
EDITABLE_USER_FIELDS = {
    "username": "username",
    "email": "email",
    "name": "fullName",
    "role": "role",
    "phone": "phoneNumber",
    "telegram": "telegramId",
    "password": "password",
}


def _check_role(role: str) -> str | None:
    if role not in USER_ROLES:
        return "⚠️ Роль: " + ", ".join(USER_ROLES)
    return None


@require_session(Action.MANAGE_USERS)
async def add_user(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Создаёт пользователя.
    Использование: /adduser <логин>; <email>; <имя>; <роль>; <пароль>[; <телефон>[; <Telegram ID>]]

    Сообщение с паролем удаляется из переписки.
    """
    message = update.effective_message
    await delete_secret_message(message)

    parts = [part.strip() for part in " ".join(context.args or []).split(";")]
    if len(parts) < 5:
        await message.reply_text(f"⚠️ Использование: {ADD_USER_USAGE}")
        return
    parts += [""] * (7 - len(parts))
    username, email, full_name, role, password, phone, telegram_id = parts[:7]
    role_error = _check_role(role)
    if role_error:
        await message.reply_text(role_error)
        return

    form = {
        "username": username,
        "email": email,
        "fullName": full_name,
        "role": role,
        "password": password,
        "phoneNumber": phone,
        "telegramId": telegram_id,
    }
    async with open_api(context, context.user_data["session"]) as api:
        controller = UserManagementController(api)
        user = await controller.save(form)

    if user is None:
        await message.reply_text(f"⚠️ {controller.error}")
        return
    logger.info(f"Telegram user {update.effective_user.id} created user {user.id}.")
    await message.reply_text(
        f"✅ {controller.success} <b>{html.escape(user.display_name)}</b> "
        f"(ID <code>{user.id}</code>), роль: <i>{role_label(user.role)}</i>",
        parse_mode=ParseMode.HTML,
    )


@require_session(Action.MANAGE_USERS)
async def edit_user(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Меняет одно поле пользователя.
    Использование: /edituser <ID> <поле> <значение>

    Поля: username, email, name, role, phone, telegram, password.
    """
    message = update.effective_message
    args = context.args or []
    usage = "⚠️ Использование: /edituser <ID> <поле> <значение>\n\nПоля: " + ", ".join(
        EDITABLE_USER_FIELDS
    )
    if len(args) < 3 or args[1] not in EDITABLE_USER_FIELDS:
        await message.reply_text(usage)
        return
    try:
        user_id = int(args[0])
    except ValueError:
        await message.reply_text(usage)
        return

    field = EDITABLE_USER_FIELDS[args[1]]
    value = " ".join(args[2:]).strip()
    if field == "password":
        await delete_secret_message(message)
    if field == "role":
        role_error = _check_role(value)
        if role_error:
            await message.reply_text(role_error)
            return

    async with open_api(context, context.user_data["session"]) as api:
        controller = UserManagementController(api)
        users = await controller.load()
        if users is None:
            await message.reply_text(f"❌ {controller.state.message}")
            return
        current = next((user for user in users if user.id == user_id), None)
        if current is None:
            await message.reply_text(f"🔍 Пользователь {user_id} не найден.")
            return

        form = controller.form_from_user(current)
        form[field] = value
        user = await controller.save(form, user_id=user_id)

    if user is None:
        await message.reply_text(f"⚠️ {controller.error}")
        return
    await message.reply_text(
        f"✅ {controller.success} <b>{html.escape(user.display_name)}</b> "
        f"(ID <code>{user.id}</code>)",
        parse_mode=ParseMode.HTML,
    )


@require_session(Action.VIEW_REQUESTS)
async def list_categories(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    message = update.effective_message
    async with open_api(context, context.user_data["session"]) as api:
        controller = CategoryManagementController(api)
        categories = await controller.load()

    if isinstance(controller.state, Failed):
        await message.reply_text(f"❌ {controller.state.message}")
        return
    if not categories:
        await message.reply_text("🗂 Категорий пока нет.")
        return

    lines = ["🗂 <b>Категории</b>", ""]
    for category in categories:
        line = f"<code>{category.id}</code> — <b>{html.escape(category.name)}</b>"
        if category.description:
            line += f": {html.escape(category.description)}"
        lines.append(line)
    await message.reply_text("\n".join(lines), parse_mode=ParseMode.HTML)


@require_session(Action.MANAGE_CATEGORIES)
async def add_category(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Добавляет категорию.
    Использование: /addcategory <название>; <описание>
    """
    message = update.effective_message
    raw = " ".join(context.args or [])
    name, _, description = raw.partition(";")

    async with open_api(context, context.user_data["session"]) as api:
        controller = CategoryManagementController(api)
        category = await controller.save(name, description)

    if category is None:
        await message.reply_text(
            f"⚠️ {controller.error}\n\nИспользование: /addcategory <название>; <описание>"
        )
        return
    await message.reply_text(
        f"✅ {controller.success} <code>{category.id}</code> — "
        f"<b>{html.escape(category.name)}</b>",
        parse_mode=ParseMode.HTML,
    )


@require_session(Action.MANAGE_CATEGORIES)
async def edit_category(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Изменяет категорию.
    Использование: /editcategory <id> <название>; <описание>
    """
    message = update.effective_message
    args = context.args or []
    usage = "⚠️ Использование: /editcategory <ID> <название>; <описание>"
    try:
        category_id = int(args[0])
    except (IndexError, ValueError):
        await message.reply_text(usage)
        return
    name, _, description = " ".join(args[1:]).partition(";")

    async with open_api(context, context.user_data["session"]) as api:
        controller = CategoryManagementController(api)
        category = await controller.save(name, description, category_id=category_id)

    if category is None:
        await message.reply_text(f"⚠️ {controller.error}\n\n{usage}")
        return
    await message.reply_text(
        f"✅ {controller.success} <code>{category.id}</code> — "
        f"<b>{html.escape(category.name)}</b>",
        parse_mode=ParseMode.HTML,
    )


@require_session(Action.MANAGE_CATEGORIES)
async def delete_category(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Удаляет категорию по ID.
    Использование: /delcategory <id>
    """
    message = update.effective_message
    try:
        category_id = int(context.args[0])
    except (IndexError, TypeError, ValueError):
        await message.reply_text("⚠️ Использование: /delcategory <ID категории>")
        return

    async with open_api(context, context.user_data["session"]) as api:
        controller = CategoryManagementController(api)
        deleted = await controller.delete(category_id)

    if deleted:
        await message.reply_text(f"✅ {controller.success}")
    else:
        await message.reply_text(f"⚠️ {controller.error}")


@require_session(Action.MANAGE_SETTINGS)
async def show_settings(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    message = update.effective_message
    async with open_api(context, context.user_data["session"]) as api:
        controller = SettingsController(api)
        server_settings = await controller.load()

    if server_settings is None:
        await message.reply_text(f"❌ {controller.state.message}")
        return

    telegram = server_settings.telegram
    system = server_settings.system
    text = (
        "⚙️ <b>Настройки системы</b>\n\n"
        f"Название: {html.escape(system.site_name)}\n"
        f"Описание: {html.escape(system.site_description)}\n"
        f"Email администратора: {html.escape(system.admin_email)}\n"
        f"Автоназначение техников: {_on_off(system.auto_assign_technicians)}\n"
        f"Требуется одобрение: {_on_off(system.require_approval)}\n"
        f"Приоритет по умолчанию: {priority_label(system.default_priority)}\n"
        f"Режим обслуживания: {_on_off(system.maintenance_mode)}\n\n"
        "📨 <b>Уведомления Telegram</b>: "
        f"{_on_off(telegram.enabled)}\n"
        f"Chat ID: <code>{html.escape(telegram.chat_id or '-')}</code>\n"
        f"Новые заявки: {_on_off(telegram.notify_on_new_request)}, "
        f"смена статуса: {_on_off(telegram.notify_on_status_change)}, "
        f"назначение: {_on_off(telegram.notify_on_assignment)}, "
        f"завершение: {_on_off(telegram.notify_on_completion)}\n\n"
        "Проверить канал: /testtelegram &lt;bot_token&gt; &lt;chat_id&gt;"
    )
    await message.reply_text(text, parse_mode=ParseMode.HTML)


@require_session(Action.MANAGE_SETTINGS)
async def test_telegram(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Отправляет тестовое уведомление через сервер.
    Использование: /testtelegram <bot_token> <chat_id>
    """
    message = update.effective_message
    args = context.args or []
    bot_token = args[0] if len(args) > 0 else ""
    chat_id = args[1] if len(args) > 1 else ""

    async with open_api(context, context.user_data["session"]) as api:
        controller = SettingsController(api)
        sent = await controller.test_notification(bot_token, chat_id)

    if sent:
        await message.reply_text(f"✅ {controller.success}")
    else:
        await message.reply_text(f"⚠️ {controller.error}")


# Ключ команды /set -> (раздел настроек, поле)
EDITABLE_SETTINGS = {
    "site_name": ("system", "site_name"),
    "site_description": ("system", "site_description"),
    "admin_email": ("system", "admin_email"),
    "auto_assign": ("system", "auto_assign_technicians"),
    "require_approval": ("system", "require_approval"),
    "default_priority": ("system", "default_priority"),
    "maintenance": ("system", "maintenance_mode"),
    "telegram": ("telegram", "enabled"),
    "bot_token": ("telegram", "bot_token"),
    "chat_id": ("telegram", "chat_id"),
    "notify_new": ("telegram", "notify_on_new_request"),
    "notify_status": ("telegram", "notify_on_status_change"),
    "notify_assignment": ("telegram", "notify_on_assignment"),
    "notify_completion": ("telegram", "notify_on_completion"),
}

_TRUE_VALUES = {"on", "true", "1", "yes", "вкл", "да"}
_FALSE_VALUES = {"off", "false", "0", "no", "выкл", "нет"}


@require_session(Action.MANAGE_SETTINGS)
async def update_setting(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Меняет одно поле настроек и сохраняет настройки целиком.
    Использование: /set <ключ> <значение>
    """
    message = update.effective_message
    args = context.args or []
    if len(args) < 2 or args[0] not in EDITABLE_SETTINGS:
        await message.reply_text(
            "⚠️ Использование: /set <ключ> <значение>\n\nКлючи: "
            + ", ".join(EDITABLE_SETTINGS)
        )
        return

    section_name, field = EDITABLE_SETTINGS[args[0]]
    raw_value = " ".join(args[1:])

    async with open_api(context, context.user_data["session"]) as api:
        controller = SettingsController(api)
        server_settings = await controller.load()
        if server_settings is None:
            await message.reply_text(f"❌ {controller.state.message}")
            return

        section = getattr(server_settings, section_name)
        current = getattr(section, field)
        if isinstance(current, bool):
            lowered = raw_value.lower()
            if lowered not in _TRUE_VALUES | _FALSE_VALUES:
                await message.reply_text("⚠️ Ожидается значение on или off.")
                return
            value = lowered in _TRUE_VALUES
        else:
            value = raw_value

        try:
            new_section = section.model_validate(
                {**section.model_dump(), field: value}
            )
        except ValueError:
            await message.reply_text(f"⚠️ Недопустимое значение для {args[0]}.")
            return

        saved = await controller.save(
            server_settings.model_copy(update={section_name: new_section})
        )

    if saved:
        await message.reply_text(f"✅ {controller.success}")
    else:
        await message.reply_text(f"⚠️ {controller.error}")
