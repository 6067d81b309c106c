"""
Декораторы для проверки сессии и прав доступа в обработчиках бота.
"""

import logging
from functools import wraps
from typing import Any, Callable, Coroutine

from telegram import Update
from telegram.ext import ContextTypes, ConversationHandler

from repair_client.core.errors import SESSION_EXPIRED_MESSAGE, SessionExpiredError
from repair_client.core.permissions import Action, can_perform
from repair_client.services.session_store import SessionRegistry

logger = logging.getLogger(__name__)

LOGIN_REQUIRED_MESSAGE = "🔐 Сначала войдите в систему: /login"
ACCESS_DENIED_MESSAGE = "⛔️ У вас нет доступа для выполнения этой команды."
ACCESS_DENIED_ALERT = "⛔️ У вас нет доступа для этого действия."


async def _reply(update: Update, text: str) -> None:
    # Отвечаем на callback_query, если он есть, иначе в чат
    if update.callback_query:
        await update.callback_query.answer(text, show_alert=True)
    elif update.effective_message:
        await update.effective_message.reply_text(text)


def require_session(*actions: Action) -> Callable:
    """
    Декоратор: пропускает только пользователей с активной сессией, роль которых
    позволяет выполнить все указанные действия.

    Сессия кладётся в ``context.user_data["session"]``. Если сервер отклонил
    токен во время выполнения обработчика, пользователю предлагается войти
    снова, а диалог (если он был) завершается.

    Args:
        *actions: Действия, которые должны быть доступны роли пользователя.
    """

    def decorator(
        func: Callable[[Update, ContextTypes.DEFAULT_TYPE], Coroutine[Any, Any, Any]],
    ):
        @wraps(func)
        async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE) -> Any:
            user = update.effective_user
            if not user:
                return None

            registry: SessionRegistry = context.application.bot_data["sessions"]
            session = registry.get(user.id)

            if not session.is_authenticated:
                await _reply(update, LOGIN_REQUIRED_MESSAGE)
                return ConversationHandler.END

            role = session.role
            denied = [action for action in actions if not can_perform(role, action)]
            if denied:
                logger.warning(
                    f"Access denied for Telegram user {user.id} ({user.username}). "
                    f"Role: '{role}'. Required: {[a.value for a in denied]}"
                )
                if update.callback_query:
                    await update.callback_query.answer(
                        ACCESS_DENIED_ALERT, show_alert=True
                    )
                elif update.effective_message:
                    await update.effective_message.reply_text(ACCESS_DENIED_MESSAGE)
                return ConversationHandler.END

            context.user_data["session"] = session
            try:
                return await func(update, context)
            except SessionExpiredError:
                await _reply(update, SESSION_EXPIRED_MESSAGE)
                context.user_data.pop("session", None)
                return ConversationHandler.END

        return wrapper

    return decorator
