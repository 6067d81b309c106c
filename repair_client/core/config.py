"""
Модуль конфигурации проекта.

Загружает настройки из переменных окружения с помощью Pydantic Settings.
Обеспечивает централизованный доступ к адресам API, токену бота и прочим параметрам.
"""

from pathlib import Path

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Основные настройки приложения.

    Атрибуты:
        api_base_url (str): Базовый URL REST API сервиса заявок.
        static_base_url (str): Базовый URL сервера статики для загруженных фото.
        bot_token (str): Секретный токен для доступа к Telegram Bot API.
        admin_ids (list[int]): Telegram ID, которым отправляются отчёты об ошибках.
        session_dir (Path): Каталог, где хранятся сессии пользователей бота.
        display_timezone (str): Часовой пояс для отображения дат.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # --- REST API ---
    api_base_url: str = Field(
        default="http://localhost:1234/api",
        alias="REPAIR_API_URL",
        description="Base URL of the repair requests REST API",
    )
    static_base_url: str = Field(
        default="http://localhost:1234",
        alias="REPAIR_STATIC_URL",
        description="Base URL used to dereference uploaded image paths",
    )

    # --- Telegram Bot Settings ---
    bot_token: str = Field(default="", description="Telegram Bot API Token")
    # Читаем ADMIN_IDS как строку, список собирается в computed_field ниже
    admin_ids_str: str = Field(
        default="",
        alias="ADMIN_IDS",
        description="List of admin Telegram IDs, comma-separated",
    )

    @computed_field
    @property
    def admin_ids(self) -> list[int]:
        """Преобразует строку admin_ids_str в список целых чисел."""
        if not self.admin_ids_str:
            return []
        return [int(item.strip()) for item in self.admin_ids_str.split(",")]

    # --- Client state ---
    session_dir: Path = Field(
        default=Path(".sessions"),
        description="Directory with persisted per-user sessions",
    )

    display_timezone: str = Field(
        default="Europe/Moscow",
        description="Timezone for displaying dates and times to users",
    )
    log_level: str = Field(default="INFO", description="Root logging level")


# Создаем единственный экземпляр настроек, который будет использоваться во всем приложении
settings = Settings()
