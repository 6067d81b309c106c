"""
Контроллер главной страницы со сводной статистикой.
"""

from repair_client.controllers.base import ScreenController
from repair_client.models.stats import DashboardStats


class DashboardController(ScreenController):
    load_error_message = "Не удалось загрузить статистику."

    async def load(self) -> DashboardStats | None:
        return await self._load(self.api.dashboard_stats)
