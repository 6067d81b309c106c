"""
Хранилище сессии: токен доступа и профиль текущего пользователя.

Единственное место, где меняется состояние аутентификации. Токен и профиль
сохраняются в долговременное хранилище (JSON-файл) и очищаются вместе.
"""

import json
import logging
from pathlib import Path
from typing import Callable

from pydantic import ValidationError

from repair_client.models.user import User

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"
USER_KEY = "user"


class FileSessionStorage:
    """
    Долговременное хранилище сессии в JSON-файле с двумя ключами: token и user.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Session file {self.path} is unreadable, ignoring it: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def save(self, token: str, user: dict | None) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {TOKEN_KEY: token, USER_KEY: user}
        self.path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


class SessionStore:
    """
    Сессия одного экземпляра клиента.

    Запись выполняется только через методы этого класса; REST-клиент и проверки
    ролей лишь читают токен и профиль.
    """

    def __init__(self, storage: FileSessionStorage) -> None:
        self._storage = storage
        self._token: str | None = None
        self._user: User | None = None
        self._expiry_listeners: list[Callable[[], None]] = []

    # --- Жизненный цикл ---

    def restore(self) -> None:
        """Загружает сессию из долговременного хранилища при старте."""
        data = self._storage.load()
        token = data.get(TOKEN_KEY)
        if not token:
            return
        self._token = token
        raw_user = data.get(USER_KEY)
        if raw_user:
            try:
                self._user = User.model_validate(raw_user)
            except ValidationError as e:
                logger.warning(f"Stored user profile is invalid, dropping it: {e}")
                self._user = None
        logger.debug("Session restored from storage.")

    def expire(self) -> None:
        """
        Вызывается при ответе 401: очищает сессию и уведомляет подписчиков,
        чтобы интерфейс вернулся к экрану входа.
        """
        logger.info("Server rejected the session token, clearing session.")
        self.clear()
        for listener in list(self._expiry_listeners):
            listener()

    def add_expiry_listener(self, listener: Callable[[], None]) -> None:
        self._expiry_listeners.append(listener)

    # --- Мутаторы ---

    def set_token(self, token: str | None) -> None:
        self._token = token
        if token:
            self._persist()
        else:
            self._user = None
            self._storage.clear()

    def set_user(self, user: User | None) -> None:
        self._user = user
        if self._token:
            self._persist()

    def install(self, token: str, user: User) -> None:
        """Устанавливает токен и профиль, полученные при входе или регистрации."""
        self._user = user
        self.set_token(token)

    def clear(self) -> None:
        self.set_token(None)

    # --- Чтение ---

    def get_token(self) -> str | None:
        return self._token

    def get_user(self) -> User | None:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return bool(self._token)

    @property
    def role(self) -> str | None:
        return self._user.role if self._user else None

    def auth_headers(self) -> dict[str, str]:
        if not self._token:
            return {}
        return {"Authorization": f"Bearer {self._token}"}

    def _persist(self) -> None:
        user_data = self._user.to_wire() if self._user else None
        self._storage.save(self._token, user_data)


class SessionRegistry:
    """
    Набор сессий бота: по одной на пользователя Telegram.

    Каждая сессия хранится в отдельном файле ``<session_dir>/<telegram_id>.json``.
    """

    def __init__(self, session_dir: Path) -> None:
        self.session_dir = Path(session_dir)
        self._sessions: dict[int, SessionStore] = {}

    def get(self, telegram_id: int) -> SessionStore:
        session = self._sessions.get(telegram_id)
        if session is None:
            storage = FileSessionStorage(self.session_dir / f"{telegram_id}.json")
            session = SessionStore(storage)
            session.restore()
            session.add_expiry_listener(
                lambda: logger.info(f"Session of Telegram user {telegram_id} expired.")
            )
            self._sessions[telegram_id] = session
        return session
