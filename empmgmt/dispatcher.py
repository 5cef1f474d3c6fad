"""Диспетчер запросов к empmgmt API с retry при 401.

Подставляет токен доступа в каждый запрос, при 401 один раз
обновляет токен через RefreshCoordinator и повторяет запрос.
"""

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from empmgmt.exceptions import (
    ApiResultError,
    AuthExpired,
    NetworkError,
    ServerError,
)
from empmgmt.models import ApiResult
from empmgmt.refresh_coordinator import RefreshCoordinator
from empmgmt.session_store import SessionStore

logger = logging.getLogger(__name__)
logger.setLevel(level=logging.DEBUG)

# Ключ в request.extensions: запрос уже повторялся после обновления токена
RETRIED_EXTENSION = "empmgmt.retried"

# Ключ в request.extensions: 401 на этот запрос не запускает обновление токена
SKIP_REFRESH_EXTENSION = "empmgmt.skip_refresh"


def attach_token(request: httpx.Request, token: str) -> None:
    """Установить Bearer-заголовок в запрос."""
    request.headers["Authorization"] = f"Bearer {token}"


class RequestDispatcher:
    """Отправляет запросы, обрабатывает 401 и разворачивает ответ.

    Использование:
        dispatcher = RequestDispatcher(http_client, session_store, coordinator)
        employees = await dispatcher.get("/employ", params={"page": 1})
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        session_store: SessionStore,
        coordinator: RefreshCoordinator,
    ) -> None:
        self._http_client = http_client
        self._session_store = session_store
        self._coordinator = coordinator

    def build_request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        skip_refresh: bool = False,
    ) -> httpx.Request:
        """Собрать запрос относительно base_url клиента.

        Args:
            skip_refresh: 401 на запрос не запускает обновление токена
        """
        request = self._http_client.build_request(
            method, url, params=params, json=json
        )
        if skip_refresh:
            request.extensions[SKIP_REFRESH_EXTENSION] = True
        return request

    async def send(self, request: httpx.Request) -> Any:
        """Отправить запрос.

        Args:
            request: Запрос, собранный через build_request

        Returns:
            Поле data из конверта ответа

        Raises:
            NetworkError: Ошибка сети или таймаут
            AuthExpired: Сессию не удалось продлить
            ServerError: Любой другой HTTP-статус >= 400
            ApiResultError: Сервер вернул code != 200
        """
        session = self._session_store.get()
        if session.access_token is not None:
            attach_token(request, session.access_token)

        response = await self._transmit(request)

        if response.status_code == 401 and not request.extensions.get(
            SKIP_REFRESH_EXTENSION
        ):
            response = await self._handle_expired(request)

        return self._unwrap(response)

    async def _handle_expired(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == self._coordinator.refresh_url.path:
            raise AuthExpired("Refresh-токен недействителен: получен 401")
        if request.extensions.get(RETRIED_EXTENSION):
            raise AuthExpired("Сессия истекла: повторный 401 после обновления токена")

        request.extensions[RETRIED_EXTENSION] = True
        logger.debug("Токен истёк, обновляем: %s %s", request.method, request.url)
        # RefreshFailed наследуется от AuthExpired и пробрасывается как есть
        token = await self._coordinator.acquire()

        attach_token(request, token)
        response = await self._transmit(request)
        if response.status_code == 401:
            raise AuthExpired("Сессия истекла: повторный 401 после обновления токена")
        return response

    async def _transmit(self, request: httpx.Request) -> httpx.Response:
        try:
            return await self._http_client.send(request)
        except httpx.TimeoutException as exc:
            raise NetworkError(
                f"Таймаут запроса {request.method} {request.url}", original_error=exc
            ) from exc
        except httpx.TransportError as exc:
            raise NetworkError(
                f"Ошибка сети: {exc}", original_error=exc
            ) from exc

    def _unwrap(self, response: httpx.Response) -> Any:
        if response.status_code >= 400:
            error = ServerError(response.status_code)
            logger.error("Ошибка API: %s", error.user_message)
            raise error

        try:
            result = ApiResult.model_validate_json(response.content)
        except ValidationError as exc:
            raise ServerError(
                response.status_code,
                "Некорректный ответ сервера",
                original_error=exc,
            ) from exc

        if result.code != 200:
            logger.error("Ошибка API: %s", result.message)
            raise ApiResultError(result.code, result.message)
        return result.data

    # ========== Вспомогательные методы ==========

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        skip_refresh: bool = False,
    ) -> Any:
        """Собрать и отправить запрос."""
        request = self.build_request(
            method, url, params=params, json=json, skip_refresh=skip_refresh
        )
        return await self.send(request)

    async def get(self, url: str, *, params: dict[str, Any] | None = None) -> Any:
        return await self.request("GET", url, params=params)

    async def post(
        self, url: str, *, json: Any = None, skip_refresh: bool = False
    ) -> Any:
        return await self.request("POST", url, json=json, skip_refresh=skip_refresh)

    async def put(self, url: str, *, json: Any = None) -> Any:
        return await self.request("PUT", url, json=json)

    async def delete(self, url: str) -> Any:
        return await self.request("DELETE", url)
