"""
Модель статистики для главной страницы.
"""

from pydantic import BaseModel, Field

from repair_client.models.request import RepairRequest


class DashboardStats(BaseModel):
    """
    Сводка по заявкам, вычисленная на клиенте из полного списка.

    Атрибуты:
        total_requests (int): Общее количество заявок.
        recent_requests (list[RepairRequest]): До пяти последних созданных заявок.
    """

    total_requests: int = 0
    pending_requests: int = 0
    in_progress_requests: int = 0
    waiting_part_requests: int = 0
    completed_requests: int = 0
    rejected_requests: int = 0
    recent_requests: list[RepairRequest] = Field(default_factory=list)

    def count_for(self, status: str) -> int:
        """Возвращает счётчик для статуса заявки."""
        return getattr(self, f"{status}_requests", 0)
