"""
Общая основа контроллеров экранов.

Каждый экран описывается явным состоянием загрузки (Idle, Loading, Submitting,
Loaded, Failed, NotFound) и полями формы. Ошибки перехватываются на границе
контроллера; наружу пропускается только SessionExpiredError, так как выход из
сессии обрабатывается глобально.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, TypeVar, Union

from pydantic import ValidationError

from repair_client.core.errors import (
    ApiError,
    FormValidationError,
    NetworkError,
    NotFoundError,
    SessionExpiredError,
)
from repair_client.core.permissions import Action, can_perform
from repair_client.services.api_client import ApiClient

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Loading:
    pass


@dataclass(frozen=True)
class Submitting:
    pass


@dataclass(frozen=True)
class Loaded(Generic[T]):
    data: T


@dataclass(frozen=True)
class Failed:
    message: str


@dataclass(frozen=True)
class NotFound:
    message: str


ViewState = Union[Idle, Loading, Submitting, Loaded, Failed, NotFound]


class ScreenController:
    """
    Базовый контроллер экрана.

    Атрибуты:
        state (ViewState): Состояние загрузки данных экрана.
        error (str | None): Сообщение об ошибке для показа в форме.
        success (str | None): Кратковременное сообщение об успехе.
    """

    load_error_message = "Не удалось загрузить данные."

    def __init__(self, api: ApiClient) -> None:
        self.api = api
        self.state: ViewState = Idle()
        self.error: str | None = None
        self.success: str | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def data(self) -> Any:
        return self.state.data if isinstance(self.state, Loaded) else None

    @property
    def role(self) -> str | None:
        return self.api.session.role

    def can(self, action: Action) -> bool:
        return can_perform(self.role, action)

    def close(self) -> None:
        """Экран закрыт: ответы, пришедшие позже, будут отброшены."""
        self._closed = True

    def clear_messages(self) -> None:
        self.error = None
        self.success = None

    async def _load(self, fetch: Callable[[], Awaitable[T]]) -> T | None:
        """Загружает данные экрана и переводит состояние в Loaded/Failed/NotFound."""
        if self._closed:
            return None
        self.state = Loading()
        try:
            data = await fetch()
        except SessionExpiredError:
            raise
        except NotFoundError as e:
            if not self._closed:
                self.state = NotFound(e.message or "Не найдено.")
            return None
        except (ApiError, NetworkError) as e:
            if not self._closed:
                self.state = Failed(e.message or self.load_error_message)
            return None
        except ValidationError as e:
            logger.error(f"{type(self).__name__}: malformed server response: {e}")
            if not self._closed:
                self.state = Failed(self.load_error_message)
            return None

        if self._closed:
            logger.debug(f"{type(self).__name__} closed, discarding loaded data.")
            return None
        self.state = Loaded(data)
        return data

    async def _submit(
        self,
        action: Callable[[], Awaitable[T]],
        success_message: str,
        fallback_error: str,
    ) -> T | None:
        """
        Выполняет изменяющий запрос.

        Ошибки валидации и ответы сервера сохраняются в ``error``; форма
        остаётся открытой. При успехе сохраняется ``success``.
        """
        if self._closed:
            return None
        self.clear_messages()
        previous_state = self.state
        self.state = Submitting()
        try:
            result = await action()
        except SessionExpiredError:
            raise
        except FormValidationError as e:
            self.error = e.message
            return None
        except (ApiError, NetworkError) as e:
            self.error = e.message or fallback_error
            return None
        except ValidationError as e:
            logger.error(f"{type(self).__name__}: malformed server response: {e}")
            self.error = fallback_error
            return None
        finally:
            if isinstance(self.state, Submitting):
                self.state = previous_state

        if self._closed:
            return None
        self.success = success_message
        return result
