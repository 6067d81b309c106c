"""
Вычисление статистики для главной страницы из полного списка заявок.

Отдельного эндпоинта агрегации на сервере нет, поэтому сводка
пересчитывается при каждой загрузке.
"""

from datetime import datetime, timezone
from typing import Sequence

from repair_client.models.request import REQUEST_STATUSES, RepairRequest
from repair_client.models.stats import DashboardStats

RECENT_REQUESTS_LIMIT = 5

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _created_at_key(request: RepairRequest) -> datetime:
    created_at = request.created_at
    if created_at is None:
        return _EPOCH
    if created_at.tzinfo is None:
        return created_at.replace(tzinfo=timezone.utc)
    return created_at


def aggregate(requests: Sequence[RepairRequest]) -> DashboardStats:
    """
    Считает количество заявок по статусам и выбирает последние созданные.

    Входная последовательность не изменяется: сортировка выполняется на копии.
    """
    counts = dict.fromkeys(REQUEST_STATUSES, 0)
    for request in requests:
        counts[request.status] = counts.get(request.status, 0) + 1

    recent = sorted(requests, key=_created_at_key, reverse=True)[:RECENT_REQUESTS_LIMIT]

    return DashboardStats(
        total_requests=len(requests),
        pending_requests=counts["pending"],
        in_progress_requests=counts["in_progress"],
        waiting_part_requests=counts["waiting_part"],
        completed_requests=counts["completed"],
        rejected_requests=counts["rejected"],
        recent_requests=recent,
    )
