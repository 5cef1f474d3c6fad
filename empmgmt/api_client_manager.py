"""Фасад empmgmt API.

Создаётся один раз при старте приложения и связывает между собой
HTTP-клиент, хранилище сессии, координатор обновления токена,
диспетчер запросов и проверку доступа к разделам.
"""

import logging
from dataclasses import dataclass
from types import TracebackType

import httpx

from empmgmt.auth_api import AuthApi
from empmgmt.config_reader import EmpMgmtConfig
from empmgmt.dispatcher import RequestDispatcher
from empmgmt.exceptions import RefreshFailed
from empmgmt.refresh_coordinator import RefreshCoordinator, SessionExpiredCallback
from empmgmt.route_guard import RouteGuard
from empmgmt.session_store import SessionStore

logger = logging.getLogger(__name__)
logger.setLevel(level=logging.DEBUG)


@dataclass
class Navigation:
    """Переход, который должен выполнить UI."""

    route: str
    reason: str


class EmpMgmtApiClientManager:
    """Фасад для работы с empmgmt API.

    Содержит: httpx.AsyncClient, SessionStore, RefreshCoordinator,
    RequestDispatcher, AuthApi, RouteGuard.

    Использование:
        async with EmpMgmtApiClientManager.from_config(config) as manager:
            await manager.auth.login("admin", "secret")
            employees = await manager.dispatcher.get("/employ")
    """

    def __init__(
        self,
        config: EmpMgmtConfig,
        on_session_expired: SessionExpiredCallback | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Инициализация менеджера.

        Args:
            config: Конфигурация клиента
            on_session_expired: Обработчик окончательного истечения сессии.
                По умолчанию запоминает переход на страницу входа.
            transport: Транспорт httpx (в тестах MockTransport)
        """
        self._config = config
        self._pending_navigation: Navigation | None = None

        self.http_client = httpx.AsyncClient(
            base_url=config.base_url,
            timeout=config.timeout,
            headers={"Content-Type": "application/json"},
            transport=transport,
        )
        self.session_store = SessionStore(config.session_file)
        self.coordinator = RefreshCoordinator(
            http_client=self.http_client,
            session_store=self.session_store,
            on_session_expired=on_session_expired or self._redirect_to_login,
            refresh_path=config.refresh_path,
            refresh_timeout=config.refresh_timeout,
        )
        self.dispatcher = RequestDispatcher(
            http_client=self.http_client,
            session_store=self.session_store,
            coordinator=self.coordinator,
        )
        self.auth = AuthApi(
            http_client=self.http_client,
            dispatcher=self.dispatcher,
            session_store=self.session_store,
        )
        self.route_guard = RouteGuard(session_store=self.session_store)
        logger.debug("Создан EmpMgmtApiClientManager для %s", config.base_url)

    @classmethod
    def from_config(
        cls,
        config: EmpMgmtConfig,
        on_session_expired: SessionExpiredCallback | None = None,
    ) -> "EmpMgmtApiClientManager":
        """Создать менеджер из конфигурации empmgmt."""
        return cls(config=config, on_session_expired=on_session_expired)

    def _redirect_to_login(self, error: RefreshFailed) -> None:
        logger.warning("Сессия истекла, требуется повторный вход: %s", error)
        self._pending_navigation = Navigation(
            route=self._config.login_route, reason=str(error)
        )

    def take_pending_navigation(self) -> Navigation | None:
        """Забрать переход, запрошенный после истечения сессии."""
        navigation, self._pending_navigation = self._pending_navigation, None
        return navigation

    async def close(self) -> None:
        """Закрыть HTTP-соединения."""
        await self.http_client.aclose()
        logger.debug("Соединения закрыты")

    async def __aenter__(self) -> "EmpMgmtApiClientManager":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
