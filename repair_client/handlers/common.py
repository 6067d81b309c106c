"""
Обработчики общих команд: приветствие, вход, регистрация, выход и ошибки.
"""

import html
import json
import logging
from typing import Any

from telegram import Update
from telegram.constants import ParseMode
from telegram.error import TelegramError
from telegram.ext import ContextTypes, ConversationHandler

from repair_client.controllers.auth import LoginController, RegisterController
from repair_client.core.decorators import require_session
from repair_client.services.api_client import ApiClient
from repair_client.services.formatting import role_label
from repair_client.services.session_store import SessionRegistry, SessionStore

logger = logging.getLogger(__name__)

# Состояния диалогов входа и регистрации
(LOGIN_USERNAME, LOGIN_PASSWORD) = range(2)
(REG_USERNAME, REG_EMAIL, REG_FULL_NAME, REG_PASSWORD) = range(10, 14)

HELP_TEXT = (
    "<b>Доступные команды</b>\n\n"
    "/login — вход в систему\n"
    "/register — регистрация\n"
    "/logout — выход\n"
    "/stats — сводка по заявкам\n"
    "/requests — список заявок\n"
    "/request &lt;номер&gt; — карточка заявки\n"
    "/new — новая заявка\n"
    "/categories — категории\n"
    "/addcategory, /editcategory, /delcategory — управление категориями (администратор)\n"
    "/users — пользователи (администратор)\n"
    "/adduser, /edituser — создать или изменить пользователя (администратор)\n"
    "/settings — настройки (администратор)\n"
    "/cancel — отменить текущий диалог"
)


def get_session(context: ContextTypes.DEFAULT_TYPE, telegram_id: int) -> SessionStore:
    registry: SessionRegistry = context.application.bot_data["sessions"]
    return registry.get(telegram_id)


def open_api(context: ContextTypes.DEFAULT_TYPE, session: SessionStore) -> ApiClient:
    """Создаёт клиент API для сессии; использовать как ``async with``."""
    return context.application.bot_data["api_factory"](session)


async def start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Обработчик команды /start.

    Приветствует пользователя и показывает его роль, если он уже вошёл в систему.
    """
    user = update.effective_user
    if not user:
        return
    session = get_session(context, user.id)
    profile = session.get_user()

    if session.is_authenticated and profile:
        logger.info(
            f"Telegram user {user.id} started the bot as {profile.username} ({profile.role})."
        )
        await update.message.reply_html(
            f"Привет, {html.escape(profile.display_name)}! 👋"
            f"\n\nВаш статус: <b>авторизован</b>."
            f"\nВаша роль: <b>{role_label(profile.role)}</b>."
            f"\n\nСписок команд: /help"
        )
        return

    await update.message.reply_html(
        "Привет! 👋 Это бот системы заявок на ремонт."
        "\n\nВойдите: /login\nИли зарегистрируйтесь: /register"
    )


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await update.effective_message.reply_text(HELP_TEXT, parse_mode=ParseMode.HTML)


# --- Вход ---


async def login_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    await update.effective_message.reply_text("Введите имя пользователя:")
    return LOGIN_USERNAME


async def login_username(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    context.user_data["login_username"] = update.effective_message.text
    await update.effective_message.reply_text("Введите пароль:")
    return LOGIN_PASSWORD


async def login_password(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    message = update.effective_message
    password = message.text
    username = context.user_data.pop("login_username", "")
    await delete_secret_message(message)

    session = get_session(context, update.effective_user.id)
    async with open_api(context, session) as api:
        controller = LoginController(api)
        profile = await controller.submit(username, password)

    if profile is None:
        await message.reply_text(f"❌ {controller.error}\n\nПопробуйте ещё раз: /login")
        return ConversationHandler.END

    await message.reply_html(
        f"✅ Добро пожаловать, {html.escape(profile.display_name)}!"
        f"\nВаша роль: <b>{role_label(profile.role)}</b>.\n\nСписок команд: /help"
    )
    return ConversationHandler.END


# --- Регистрация ---


async def register_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    context.user_data["registration"] = {}
    await update.effective_message.reply_text(
        "<b>Шаг 1/4:</b> Придумайте имя пользователя.", parse_mode=ParseMode.HTML
    )
    return REG_USERNAME


async def register_username(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    context.user_data["registration"]["username"] = update.effective_message.text
    await update.effective_message.reply_text(
        "<b>Шаг 2/4:</b> Введите email.", parse_mode=ParseMode.HTML
    )
    return REG_EMAIL


async def register_email(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    context.user_data["registration"]["email"] = update.effective_message.text
    await update.effective_message.reply_text(
        "<b>Шаг 3/4:</b> Введите имя и фамилию.", parse_mode=ParseMode.HTML
    )
    return REG_FULL_NAME


async def register_full_name(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    context.user_data["registration"]["full_name"] = update.effective_message.text
    await update.effective_message.reply_text(
        "<b>Шаг 4/4:</b> Придумайте пароль (не менее 6 символов).",
        parse_mode=ParseMode.HTML,
    )
    return REG_PASSWORD


async def register_password(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    message = update.effective_message
    password = message.text
    form = context.user_data.pop("registration", {})
    await delete_secret_message(message)

    session = get_session(context, update.effective_user.id)
    async with open_api(context, session) as api:
        controller = RegisterController(api)
        profile = await controller.submit(
            form.get("username", ""),
            form.get("email", ""),
            form.get("full_name", ""),
            password,
        )

    if profile is None:
        await message.reply_text(
            f"❌ {controller.error}\n\nПопробуйте ещё раз: /register"
        )
        return ConversationHandler.END

    await message.reply_html(
        f"✅ Регистрация завершена, {html.escape(profile.display_name)}!"
        "\n\nСписок команд: /help"
    )
    return ConversationHandler.END


@require_session()
async def logout(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    session: SessionStore = context.user_data.pop("session")
    async with open_api(context, session) as api:
        api.auth.logout()
    await update.effective_message.reply_text("👋 Вы вышли из системы. Вход: /login")


async def cancel(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Отменяет текущий диалог и очищает его данные."""
    for key in ("login_username", "registration", "request_form", "draft"):
        context.user_data.pop(key, None)
    await update.effective_message.reply_text("Действие отменено.")
    return ConversationHandler.END


async def delete_secret_message(message) -> None:
    """Удаляет сообщение с паролем из переписки."""
    try:
        await message.delete()
    except TelegramError as e:
        logger.warning(f"Could not delete message with credentials: {e}")


REDACTED = "<скрыто>"
_SECRET_KEYS = {"text", "caption"}


def redact_update(data: Any) -> Any:
    """
    Возвращает копию update без текста сообщений.

    В тексте могут оказаться пароли из диалогов входа и регистрации, поэтому
    в отчёт администраторам он не попадает.
    """
    if isinstance(data, list):
        return [redact_update(item) for item in data]
    if not isinstance(data, dict):
        return data
    return {
        key: REDACTED
        if key in _SECRET_KEYS and isinstance(value, str)
        else redact_update(value)
        for key, value in data.items()
    }


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Логирует ошибки и отправляет уведомление администраторам.
    """

    logger.error("Exception while handling an update:", exc_info=context.error)

    if isinstance(update, Update):
        update_str = json.dumps(
            redact_update(update.to_dict()), indent=2, ensure_ascii=False
        )
    else:
        update_str = str(update)

    message = (
        f"‼️ <b>Произошла ошибка в боте</b> ‼️\n\n"
        f"<pre>update = {html.escape(update_str)}</pre>\n\n"
        f"<pre>{html.escape(str(context.error))}</pre>"
    )

    app_settings = context.bot_data.get("settings")
    admin_ids = app_settings.admin_ids if app_settings else []
    for admin_id in admin_ids:
        try:
            # Telegram ограничивает длину сообщения 4096 символами
            for x in range(0, len(message), 4096):
                await context.bot.send_message(
                    chat_id=admin_id,
                    text=message[x : x + 4096],
                    parse_mode=ParseMode.HTML,
                )
        except TelegramError as e:
            logger.error(f"Failed to send error message to admin {admin_id}: {e}")
