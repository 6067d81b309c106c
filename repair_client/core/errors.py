"""
Иерархия исключений клиента.

Ошибки делятся на четыре вида: ошибки валидации формы (до обращения к серверу),
ответы сервера с кодом не 2xx, сетевые сбои и истёкшая сессия (HTTP 401).
"""

NETWORK_ERROR_MESSAGE = "Не удалось связаться с сервером. Проверьте подключение и попробуйте позже."
SESSION_EXPIRED_MESSAGE = "Сессия истекла. Пожалуйста, войдите снова: /login"


class RepairClientError(Exception):
    """Базовое исключение клиента."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or "")
        self.message = message


class FormValidationError(RepairClientError):
    """Данные формы не прошли проверку на стороне клиента."""


class ApiError(RepairClientError):
    """
    Сервер ответил кодом не 2xx.

    Атрибуты:
        message (str | None): Текст из поля ``error`` ответа, если сервер его прислал.
        status_code (int): HTTP-статус ответа.
    """

    def __init__(self, message: str | None, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code

    def __str__(self) -> str:
        return f"[{self.status_code}] {self.message or 'no message'}"


class NotFoundError(ApiError):
    """Запрошенная сущность не найдена (HTTP 404)."""


class SessionExpiredError(ApiError):
    """Сервер отклонил токен (HTTP 401); сессия уже очищена."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or SESSION_EXPIRED_MESSAGE, 401)


class NetworkError(RepairClientError):
    """Сбой транспорта: подробностей от сервера нет."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or NETWORK_ERROR_MESSAGE)
