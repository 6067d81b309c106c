"""
Форматирование заявок, дат и справочных значений для вывода пользователю.
"""

import html
from datetime import datetime

import pytz

from repair_client.core.config import settings
from repair_client.models.request import RepairRequest
from repair_client.models.stats import DashboardStats

NOT_SPECIFIED = "не указано"

STATUS_LABELS = {
    "pending": "⏳ Ожидает",
    "in_progress": "🛠 В работе",
    "waiting_part": "📦 Ожидает запчасть",
    "completed": "✅ Выполнено",
    "rejected": "⛔️ Отклонено",
}

PRIORITY_LABELS = {
    "low": "Низкий",
    "medium": "Средний",
    "high": "Высокий",
    "urgent": "Срочный",
}

ROLE_LABELS = {
    "admin": "Администратор",
    "technician": "Техник",
    "requester": "Заявитель",
}


def format_datetime(dt: datetime | None, with_time: bool = True) -> str:
    """
    Форматирует datetime объект в строку с учетом часового пояса из настроек.
    """
    if not dt:
        return NOT_SPECIFIED

    # Наивное время считаем UTC
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=pytz.utc)

    display_tz = pytz.timezone(settings.display_timezone)
    local_dt = dt.astimezone(display_tz)

    return local_dt.strftime("%d.%m.%Y в %H:%M" if with_time else "%d.%m.%Y")


def status_label(status: str) -> str:
    return STATUS_LABELS.get(status, status)


def priority_label(priority: str) -> str:
    return PRIORITY_LABELS.get(priority, priority)


def role_label(role: str) -> str:
    return ROLE_LABELS.get(role, role)


def format_request_line(request: RepairRequest) -> str:
    """Короткая строка заявки для списков."""
    photos = f" 📷{len(request.images)}" if request.images else ""
    return (
        f"<b>#{request.id}</b> {html.escape(request.title)} · "
        f"{status_label(request.status)} · {priority_label(request.priority)}"
        f"{photos}"
    )


def format_request_card(request: RepairRequest) -> str:
    """Подробная карточка заявки."""
    category = request.category.name if request.category else f"#{request.category_id}"
    requester = (
        request.requester.display_name if request.requester else f"#{request.requester_id}"
    )
    if request.technician:
        technician = request.technician.display_name
    elif request.technician_id:
        technician = f"#{request.technician_id}"
    else:
        technician = "не назначен"

    lines = [
        f"🔧 <b>Заявка #{request.id}: {html.escape(request.title)}</b>",
        "",
        html.escape(request.description),
        "",
        f"📍 <b>Место:</b> {html.escape(request.location or NOT_SPECIFIED)}",
        f"🗂 <b>Категория:</b> {html.escape(category)}",
        f"👤 <b>Заявитель:</b> {html.escape(requester)}",
        f"🧑‍🔧 <b>Исполнитель:</b> {html.escape(technician)}",
        f"📊 <b>Статус:</b> {status_label(request.status)}",
        f"❗️ <b>Приоритет:</b> {priority_label(request.priority)}",
        f"🕓 <b>Создана:</b> {format_datetime(request.created_at)}",
    ]
    if request.cost:
        lines.append(f"💰 <b>Стоимость:</b> {request.cost:.2f}")
    if request.status == "rejected" and request.rejection_reason:
        lines.append(f"📝 <b>Причина отказа:</b> {html.escape(request.rejection_reason)}")
    if request.completed_at:
        lines.append(f"🏁 <b>Завершена:</b> {format_datetime(request.completed_at)}")
    if request.images:
        lines.append(f"📷 <b>Фото:</b> {len(request.images)}")
    return "\n".join(lines)


def format_dashboard(stats: DashboardStats) -> str:
    lines = [
        "📊 <b>Сводка по заявкам</b>",
        "",
        f"Всего: <b>{stats.total_requests}</b>",
    ]
    for status, label in STATUS_LABELS.items():
        lines.append(f"{label}: <b>{stats.count_for(status)}</b>")
    if stats.recent_requests:
        lines.extend(["", "<b>Последние заявки:</b>"])
        lines.extend(format_request_line(r) for r in stats.recent_requests)
    return "\n".join(lines)
