"""
Модели глобальных настроек сервера (уведомления Telegram и параметры системы).

Клиент не хранит их локально: они загружаются и заменяются целиком.
"""

from pydantic import Field

from repair_client.models.request import RequestPriority
from repair_client.models.user import WireModel


class TelegramSettings(WireModel):
    enabled: bool = False
    bot_token: str = Field(default="", alias="botToken")
    chat_id: str = Field(default="", alias="chatId")
    notify_on_new_request: bool = Field(default=True, alias="notifyOnNewRequest")
    notify_on_status_change: bool = Field(default=True, alias="notifyOnStatusChange")
    notify_on_assignment: bool = Field(default=True, alias="notifyOnAssignment")
    notify_on_completion: bool = Field(default=True, alias="notifyOnCompletion")


class SystemSettings(WireModel):
    site_name: str = Field(default="Repair System", alias="siteName")
    site_description: str = Field(default="", alias="siteDescription")
    admin_email: str = Field(default="", alias="adminEmail")
    auto_assign_technicians: bool = Field(default=False, alias="autoAssignTechnicians")
    require_approval: bool = Field(default=True, alias="requireApproval")
    default_priority: RequestPriority = Field(default="medium", alias="defaultPriority")
    maintenance_mode: bool = Field(default=False, alias="maintenanceMode")


class ServerSettings(WireModel):
    """Единственный экземпляр настроек, хранящийся на сервере."""

    telegram: TelegramSettings = Field(default_factory=TelegramSettings)
    system: SystemSettings = Field(default_factory=SystemSettings)
