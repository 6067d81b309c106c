"""
Контроллеры экранов заявок: список, карточка с редактированием и форма создания.
"""

import asyncio
import logging
from typing import Sequence

from pydantic import ValidationError

from repair_client.controllers.base import Loaded, ScreenController
from repair_client.core.errors import (
    ApiError,
    FormValidationError,
    NetworkError,
    SessionExpiredError,
)
from repair_client.core.permissions import Action
from repair_client.models.category import Category
from repair_client.models.request import (
    RepairRequest,
    RequestDraft,
    RequestEditForm,
    RequestStatus,
)
from repair_client.models.user import User
from repair_client.services.api_client import ApiClient
from repair_client.services.diff import build_request_update
from repair_client.services.uploads import ImageFile, validate_images

logger = logging.getLogger(__name__)

TECHNICIAN_ROLES = ("technician", "admin")


class RequestListController(ScreenController):
    load_error_message = "Не удалось загрузить список заявок."

    async def load(self) -> list[RepairRequest] | None:
        return await self._load(self.api.repair_requests.list)


class RequestDetailController(ScreenController):
    """
    Карточка заявки.

    Заявка и список возможных исполнителей загружаются одновременно; форму
    редактирования можно открыть только после завершения обеих загрузок.
    """

    load_error_message = "Не удалось загрузить заявку."

    def __init__(self, api: ApiClient, request_id: int) -> None:
        super().__init__(api)
        self.request_id = request_id
        self.technicians: list[User] = []

    @property
    def request(self) -> RepairRequest | None:
        return self.data

    @property
    def can_edit(self) -> bool:
        return self.can(Action.EDIT_REQUEST)

    async def load(self) -> RepairRequest | None:
        async def fetch() -> RepairRequest:
            # Обе загрузки завершаются до выхода из load(), даже если одна упала
            request, technicians = await asyncio.gather(
                self.api.repair_requests.get_by_id(self.request_id),
                self._fetch_technicians(),
                return_exceptions=True,
            )
            for result in (request, technicians):
                if isinstance(result, SessionExpiredError):
                    raise result
            for result in (request, technicians):
                if isinstance(result, BaseException):
                    raise result
            if not self.closed:
                self.technicians = technicians
            return request

        return await self._load(fetch)

    async def _fetch_technicians(self) -> list[User]:
        # Список пользователей нужен только для формы редактирования
        if not self.can_edit:
            return []
        try:
            users = await self.api.users.list()
        except SessionExpiredError:
            raise
        except (ApiError, NetworkError, ValidationError) as e:
            logger.warning(f"Failed to fetch technicians: {e}")
            return []
        return [user for user in users if user.role in TECHNICIAN_ROLES]

    def open_edit(self) -> RequestEditForm | None:
        """Возвращает форму, заполненную текущими значениями заявки."""
        if not isinstance(self.state, Loaded) or not self.can_edit:
            return None
        return RequestEditForm.from_request(self.request)

    async def submit_edit(self, form: RequestEditForm) -> RepairRequest | None:
        """
        Отправляет на сервер только изменённые поля и перезагружает заявку.
        """
        self.clear_messages()
        stored = self.request
        if stored is None:
            return None
        if not self.can_edit:
            self.error = "Недостаточно прав для изменения заявки."
            return None

        try:
            changes = build_request_update(stored, form)
        except FormValidationError as e:
            self.error = e.message
            return None

        if not changes:
            self.success = "Изменений нет."
            return stored

        logger.info(f"Updating request {stored.id}: fields {sorted(changes)}")
        updated = await self._submit(
            lambda: self.api.repair_requests.update(stored.id, changes),
            success_message="Данные заявки обновлены.",
            fallback_error="Ошибка при обновлении заявки.",
        )
        if updated is not None:
            success = self.success
            await self.load()
            self.success = success
        return updated

    async def change_status(self, status: RequestStatus) -> RepairRequest | None:
        form = self.open_edit()
        if form is None:
            self.error = "Недостаточно прав для изменения заявки."
            return None
        return await self.submit_edit(form.model_copy(update={"status": status}))

    async def delete(self) -> bool:
        self.clear_messages()
        if not self.can(Action.DELETE_REQUEST):
            self.error = "Недостаточно прав для удаления заявки."
            return False
        await self._submit(
            lambda: self.api.repair_requests.delete(self.request_id),
            success_message="Заявка удалена.",
            fallback_error="Ошибка при удалении заявки.",
        )
        return self.error is None


class RequestFormController(ScreenController):
    """
    Форма создания заявки.

    Изображения загружаются сразу при выборе; в заявку передаются полученные
    пути в порядке загрузки.
    """

    load_error_message = "Не удалось загрузить категории."

    def __init__(self, api: ApiClient) -> None:
        super().__init__(api)
        self.images: list[str] = []

    @property
    def categories(self) -> list[Category]:
        return self.data or []

    async def load(self) -> list[Category] | None:
        return await self._load(self.api.categories.list)

    async def attach_images(self, files: Sequence[ImageFile]) -> list[str] | None:
        self.clear_messages()
        try:
            validate_images(files, already_attached=len(self.images))
        except FormValidationError as e:
            self.error = e.message
            return None

        paths = await self._submit(
            lambda: self.api.uploads.images(files, already_attached=len(self.images)),
            success_message="Изображения загружены.",
            fallback_error="Ошибка при загрузке изображений.",
        )
        if paths is not None:
            self.images.extend(paths)
        return paths

    def remove_image(self, index: int) -> None:
        if 0 <= index < len(self.images):
            del self.images[index]

    async def submit(self, draft: RequestDraft) -> RepairRequest | None:
        self.clear_messages()
        if not draft.title.strip():
            self.error = "Укажите тему заявки."
            return None
        if not draft.description.strip():
            self.error = "Опишите проблему."
            return None
        if not draft.category_id:
            self.error = "Выберите категорию."
            return None

        user = self.api.session.get_user()
        if user is None:
            self.error = "Данные пользователя не найдены. Пожалуйста, войдите снова."
            return None

        payload = {
            "title": draft.title.strip(),
            "description": draft.description.strip(),
            "location": draft.location.strip(),
            "categoryId": draft.category_id,
            "priority": draft.priority,
            "requesterId": user.id,
            "status": "pending",
            "images": list(self.images),
        }
        created = await self._submit(
            lambda: self.api.repair_requests.create(payload),
            success_message="Заявка успешно создана!",
            fallback_error="Ошибка при создании заявки.",
        )
        if created is not None:
            logger.info(f"Request {created.id} created by user {user.id}.")
            self.images = []
        elif self.images:
            # Загруженные файлы остаются на сервере без заявки
            logger.warning(
                f"Request creation failed with {len(self.images)} uploaded image(s) attached."
            )
        return created
