"""
Основная точка входа в приложение.

Этот файл отвечает за инициализацию и запуск Telegram-бота, который работает
как клиент REST API системы заявок на ремонт.
"""

import logging

from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ConversationHandler,
    MessageHandler,
    filters,
)

from repair_client.core.config import settings
from repair_client.core.logging_config import setup_logging
from repair_client.handlers import admin, common
from repair_client.handlers import request as request_handler
from repair_client.services.api_client import ApiClient
from repair_client.services.session_store import SessionRegistry

logger = logging.getLogger(__name__)

TEXT = filters.TEXT & ~filters.COMMAND


def build_application() -> Application:
    """Собирает приложение бота со всеми обработчиками."""
    application = Application.builder().token(settings.bot_token).build()

    # Сессии и фабрика клиентов API доступны обработчикам через bot_data
    application.bot_data["sessions"] = SessionRegistry(settings.session_dir)
    application.bot_data["api_factory"] = ApiClient
    application.bot_data["settings"] = settings

    cancel = CommandHandler("cancel", common.cancel)

    login_handler = ConversationHandler(
        entry_points=[CommandHandler("login", common.login_start)],
        states={
            common.LOGIN_USERNAME: [MessageHandler(TEXT, common.login_username)],
            common.LOGIN_PASSWORD: [MessageHandler(TEXT, common.login_password)],
        },
        fallbacks=[cancel],
    )
    register_handler = ConversationHandler(
        entry_points=[CommandHandler("register", common.register_start)],
        states={
            common.REG_USERNAME: [MessageHandler(TEXT, common.register_username)],
            common.REG_EMAIL: [MessageHandler(TEXT, common.register_email)],
            common.REG_FULL_NAME: [MessageHandler(TEXT, common.register_full_name)],
            common.REG_PASSWORD: [MessageHandler(TEXT, common.register_password)],
        },
        fallbacks=[cancel],
    )
    new_request_handler = ConversationHandler(
        entry_points=[CommandHandler("new", request_handler.new_request_start)],
        states={
            request_handler.TITLE: [MessageHandler(TEXT, request_handler.get_title)],
            request_handler.DESCRIPTION: [
                MessageHandler(TEXT, request_handler.get_description)
            ],
            request_handler.LOCATION: [
                MessageHandler(TEXT, request_handler.get_location),
                CommandHandler("skip", request_handler.skip_location),
            ],
            request_handler.CATEGORY: [
                MessageHandler(TEXT, request_handler.get_category)
            ],
            request_handler.PRIORITY: [
                MessageHandler(TEXT, request_handler.get_priority)
            ],
            request_handler.PHOTO: [
                MessageHandler(
                    filters.PHOTO | filters.Document.IMAGE, request_handler.get_photo
                ),
                CommandHandler(["done", "skip"], request_handler.finish_request),
            ],
        },
        fallbacks=[cancel],
    )

    application.add_handler(login_handler)
    application.add_handler(register_handler)
    application.add_handler(new_request_handler)

    application.add_handler(CommandHandler("start", common.start))
    application.add_handler(CommandHandler("help", common.help_command))
    application.add_handler(CommandHandler("logout", common.logout))

    application.add_handler(CommandHandler("stats", request_handler.show_stats))
    application.add_handler(CommandHandler("requests", request_handler.list_requests))
    application.add_handler(CommandHandler("request", request_handler.show_request))
    application.add_handler(CommandHandler("assign", request_handler.assign_technician))
    application.add_handler(CommandHandler("cost", request_handler.set_cost))
    application.add_handler(CommandHandler("reject", request_handler.reject_request))
    application.add_handler(CommandHandler("priority", request_handler.set_priority))
    application.add_handler(
        CallbackQueryHandler(
            request_handler.request_callback_handler, pattern=r"^(status|delreq):"
        )
    )

    application.add_handler(CommandHandler("users", admin.list_users))
    application.add_handler(CommandHandler("adduser", admin.add_user))
    application.add_handler(CommandHandler("edituser", admin.edit_user))
    application.add_handler(
        CallbackQueryHandler(admin.admin_user_callback, pattern=r"^delete_user:")
    )
    application.add_handler(CommandHandler("categories", admin.list_categories))
    application.add_handler(CommandHandler("addcategory", admin.add_category))
    application.add_handler(CommandHandler("editcategory", admin.edit_category))
    application.add_handler(CommandHandler("delcategory", admin.delete_category))
    application.add_handler(CommandHandler("settings", admin.show_settings))
    application.add_handler(CommandHandler("set", admin.update_setting))
    application.add_handler(CommandHandler("testtelegram", admin.test_telegram))

    # --- Регистрируем обработчик ошибок ---
    application.add_error_handler(common.error_handler)
    return application


def main() -> None:
    """Основная функция для запуска бота."""
    setup_logging(settings.log_level)

    if not settings.bot_token:
        raise RuntimeError(
            "BOT_TOKEN is not set; please add it to your environment or .env file."
        )

    logger.info(f"Using repair API at {settings.api_base_url}")
    application = build_application()

    logger.info("Bot is running in polling mode.")
    application.run_polling()


if __name__ == "__main__":
    main()
