"""
Модель категории заявок.
"""

from datetime import datetime

from pydantic import Field

from repair_client.models.user import WireModel


class Category(WireModel):
    id: int = Field(..., alias="ID")
    name: str
    description: str | None = None
    created_at: datetime | None = Field(default=None, alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")
