"""
Модели данных, связанные с заявкой на ремонт.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator

from repair_client.models.category import Category
from repair_client.models.user import User, WireModel

# Возможные статусы и приоритеты заявки для строгой типизации
RequestStatus = Literal["pending", "in_progress", "waiting_part", "completed", "rejected"]
RequestPriority = Literal["low", "medium", "high", "urgent"]

REQUEST_STATUSES: tuple[str, ...] = (
    "pending",
    "in_progress",
    "waiting_part",
    "completed",
    "rejected",
)
REQUEST_PRIORITIES: tuple[str, ...] = ("low", "medium", "high", "urgent")

MAX_REQUEST_IMAGES = 3


class RepairRequest(WireModel):
    """
    Модель заявки на ремонт в том виде, в каком её отдаёт сервер.

    Идентификатор, заявитель и временные метки назначаются сервером.
    Поле ``rejection_reason`` имеет смысл только для статуса ``rejected``.
    """

    id: int = Field(..., alias="ID")
    title: str
    description: str = ""
    location: str | None = None
    category_id: int = Field(..., alias="categoryId")
    category: Category | None = None
    requester_id: int = Field(..., alias="requesterId")
    requester: User | None = None
    technician_id: int | None = Field(default=None, alias="technicianId")
    technician: User | None = None
    status: RequestStatus = "pending"
    priority: RequestPriority = "medium"
    images: list[str] = Field(default_factory=list)
    cost: float | None = None
    rejection_reason: str | None = Field(default=None, alias="rejectionReason")
    completed_at: datetime | None = Field(default=None, alias="completedAt")
    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")

    @field_validator("category", "requester", "technician", mode="before")
    @classmethod
    def _drop_empty_reference(cls, value: Any) -> Any:
        # Сервер может прислать пустую вложенную сущность с ID = 0
        if isinstance(value, dict) and not value.get("ID"):
            return None
        return value

    @field_validator("images", mode="before")
    @classmethod
    def _images_or_empty(cls, value: Any) -> Any:
        return value if value is not None else []


class RequestDraft(BaseModel):
    """
    Данные формы создания заявки до отправки на сервер.

    Изображения сюда не входят: они загружаются заранее, и в заявку
    передаются уже полученные пути.
    """

    title: str = ""
    description: str = ""
    location: str = ""
    category_id: int | None = None
    priority: RequestPriority = "medium"


class RequestEditForm(BaseModel):
    """
    Форма редактирования заявки (статус, исполнитель, стоимость и т.д.).

    Числовые поля могут прийти строкой из пользовательского ввода;
    пустая строка означает "не менять".
    """

    status: RequestStatus
    priority: RequestPriority
    technician_id: int | str | None = None
    cost: float | str | None = None
    rejection_reason: str = ""

    @classmethod
    def from_request(cls, request: RepairRequest) -> "RequestEditForm":
        """Заполняет форму текущими значениями заявки."""
        return cls(
            status=request.status,
            priority=request.priority,
            technician_id=request.technician_id,
            cost=request.cost,
            rejection_reason=request.rejection_reason or "",
        )
