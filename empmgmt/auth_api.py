"""Явные сценарии входа, регистрации и выхода.

Вместе с RefreshCoordinator это единственные места,
которые пишут в SessionStore.
"""

import logging

import httpx

from empmgmt.dispatcher import RequestDispatcher
from empmgmt.exceptions import EmpMgmtException
from empmgmt.models import AuthResponse, Identity
from empmgmt.session_store import SessionStore

logger = logging.getLogger(__name__)
logger.setLevel(level=logging.DEBUG)

# Имя cookie, в которой сервер выдаёт refresh-токен
REFRESH_COOKIE = "rt"


class AuthApi:
    """Вход, регистрация и выход пользователя."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        dispatcher: RequestDispatcher,
        session_store: SessionStore,
    ) -> None:
        self._http_client = http_client
        self._dispatcher = dispatcher
        self._session_store = session_store

    async def login(self, username: str, password: str) -> Identity:
        """Войти и сохранить сессию.

        Refresh-токен сервер кладёт в cookie, её хранит HTTP-клиент.

        Args:
            username: Имя пользователя
            password: Пароль

        Returns:
            Данные вошедшего пользователя
        """
        # Старый токен не нужен: вход не должен уходить в обновление
        self._session_store.clear()
        data = await self._dispatcher.post(
            "/auth/login",
            json={"username": username, "password": password},
            skip_refresh=True,
        )
        response = AuthResponse.model_validate(data)
        identity = Identity.from_auth_response(response)
        self._session_store.set(identity, response.token)
        logger.info("Вход выполнен: %s (роль %s)", identity.username, identity.role)
        return identity

    async def register(
        self, username: str, password: str, email: str | None = None
    ) -> AuthResponse:
        """Зарегистрировать пользователя. Сессию не создаёт."""
        payload: dict[str, str] = {"username": username, "password": password}
        if email is not None:
            payload["email"] = email
        data = await self._dispatcher.post(
            "/auth/register", json=payload, skip_refresh=True
        )
        return AuthResponse.model_validate(data)

    async def logout(self) -> None:
        """Выйти из системы.

        Ошибка запроса выхода не мешает локальной очистке сессии.
        """
        if self._session_store.get().authenticated:
            try:
                await self._dispatcher.post("/auth/logout", skip_refresh=True)
                logger.info("Выход из системы выполнен")
            except EmpMgmtException as exc:
                logger.warning("Ошибка при выходе из системы: %s", exc)
        self._session_store.clear()
        self._http_client.cookies.delete(REFRESH_COOKIE)
