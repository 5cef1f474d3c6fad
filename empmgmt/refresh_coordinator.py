"""Координатор обновления токена доступа.

Гарантирует, что одновременно выполняется не больше одного запроса
обновления. Корутины, получившие 401 во время обновления, встают
в очередь текущего эпизода и получают тот же результат, что и
инициатор: все новый токен или все одну и ту же ошибку.

Состояния: IDLE -> REFRESHING -> IDLE. Эпизод живёт от перехода
в REFRESHING до возврата в IDLE.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

import httpx
from pydantic import ValidationError

from empmgmt.exceptions import RefreshFailed
from empmgmt.models import ApiResult, AuthResponse, Identity
from empmgmt.session_store import SessionStore

logger = logging.getLogger(__name__)
logger.setLevel(level=logging.DEBUG)

# Статусы, означающие, что долгоживущий refresh-токен недействителен
EXPIRY_STATUSES = frozenset({401, 403})

SessionExpiredCallback = Callable[[RefreshFailed], None]


@dataclass
class RefreshEpisode:
    """Один запрос обновления и очередь ждущих его вызовов."""

    # Версия сессии на момент начала эпизода
    generation: int
    waiters: list[asyncio.Future[str]] = field(default_factory=list)
    task: asyncio.Task[None] | None = None


class RefreshCoordinator:
    """Сериализует обновления токена и раздаёт результат ожидающим.

    Создаётся один раз на приложение и передаётся во все диспетчеры.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        session_store: SessionStore,
        on_session_expired: SessionExpiredCallback,
        refresh_path: str = "/auth/refresh",
        refresh_timeout: float = 10.0,
    ) -> None:
        """Инициализация координатора.

        Args:
            http_client: HTTP-клиент; refresh-токен лежит в его cookie
            session_store: Хранилище сессии
            on_session_expired: Вызывается один раз на неудачный эпизод
            refresh_path: Путь эндпоинта обновления
            refresh_timeout: Таймаут запроса обновления, секунды
        """
        self._http_client = http_client
        self._session_store = session_store
        self._on_session_expired = on_session_expired
        self._refresh_path = refresh_path
        self._refresh_timeout = refresh_timeout
        self._episode: RefreshEpisode | None = None
        self._refresh_count = 0

    @property
    def in_flight(self) -> bool:
        """True, пока идёт обновление (состояние REFRESHING)."""
        return self._episode is not None

    @property
    def waiting(self) -> int:
        """Число вызовов, ожидающих текущий эпизод."""
        return len(self._episode.waiters) if self._episode is not None else 0

    @property
    def refresh_count(self) -> int:
        """Сколько запросов обновления было отправлено."""
        return self._refresh_count

    @property
    def refresh_url(self) -> httpx.URL:
        """Полный URL эндпоинта обновления."""
        return self._http_client.build_request("POST", self._refresh_path).url

    async def acquire(self) -> str:
        """Получить новый токен доступа.

        Если обновление уже идёт, встаёт в очередь текущего эпизода,
        иначе начинает новый эпизод.

        Returns:
            Новый токен доступа

        Raises:
            RefreshFailed: Если обновление не удалось
        """
        loop = asyncio.get_running_loop()
        waiter: asyncio.Future[str] = loop.create_future()

        # Проверка и переход в REFRESHING без точек приостановки между ними
        if self._episode is not None:
            self._episode.waiters.append(waiter)
            logger.debug(
                "Обновление уже идёт, ожидаем (в очереди: %d)",
                len(self._episode.waiters),
            )
        else:
            episode = RefreshEpisode(
                generation=self._session_store.generation, waiters=[waiter]
            )
            self._episode = episode
            # Отдельная задача: отмена вызывающего не прерывает эпизод
            episode.task = asyncio.create_task(self._run_episode(episode))
            logger.debug("Начат эпизод обновления токена")

        return await waiter

    async def _run_episode(self, episode: RefreshEpisode) -> None:
        try:
            response = await self._fetch_token()
            identity = Identity.from_auth_response(response)
            if self._is_stale(episode):
                # Вход или выход случился во время обновления: токен не применяем
                self._reject(
                    episode,
                    RefreshFailed("Сессия изменилась во время обновления токена"),
                )
                return
            self._session_store.set(identity, response.token)
        except RefreshFailed as exc:
            self._fail(episode, exc)
            return
        except ValueError as exc:
            self._fail(
                episode,
                RefreshFailed(
                    f"Некорректный ответ обновления токена: {exc}", original_error=exc
                ),
            )
            return
        except Exception as exc:
            self._fail(
                episode,
                RefreshFailed(f"Ошибка обновления токена: {exc}", original_error=exc),
            )
            return

        self._finish(episode)
        logger.info(
            "Токен обновлён для %s (ожидало вызовов: %d)",
            identity.username,
            len(episode.waiters),
        )
        for waiter in episode.waiters:
            if not waiter.done():
                waiter.set_result(response.token)

    async def _fetch_token(self) -> AuthResponse:
        """Выполнить запрос обновления.

        Refresh-токен передаётся cookie клиента, тело запроса пустое.

        Raises:
            RefreshFailed: При любой ошибке обновления
        """
        self._refresh_count += 1
        request = self._http_client.build_request(
            "POST", self._refresh_path, timeout=self._refresh_timeout
        )
        try:
            response = await self._http_client.send(request)
        except httpx.TimeoutException as exc:
            raise RefreshFailed(
                "Таймаут запроса обновления токена", original_error=exc
            ) from exc
        except httpx.HTTPError as exc:
            raise RefreshFailed(
                f"Ошибка сети при обновлении токена: {exc}", original_error=exc
            ) from exc

        if response.status_code in EXPIRY_STATUSES:
            # Сам refresh-токен недействителен, повторять бессмысленно
            raise RefreshFailed(
                f"Refresh-токен недействителен: получен {response.status_code}"
            )
        if response.status_code >= 400:
            raise RefreshFailed(
                f"Ошибка обновления токена: HTTP {response.status_code}"
            )

        try:
            result = ApiResult.model_validate_json(response.content)
            if result.code != 200:
                raise RefreshFailed(
                    f"Ошибка обновления токена: {result.message or result.code}"
                )
            return AuthResponse.model_validate(result.data)
        except ValidationError as exc:
            raise RefreshFailed(
                "Некорректный ответ обновления токена", original_error=exc
            ) from exc

    def _finish(self, episode: RefreshEpisode) -> None:
        if self._episode is episode:
            self._episode = None

    def _is_stale(self, episode: RefreshEpisode) -> bool:
        return self._session_store.generation != episode.generation

    def _reject(self, episode: RefreshEpisode, error: RefreshFailed) -> None:
        self._finish(episode)
        for waiter in episode.waiters:
            if not waiter.done():
                waiter.set_exception(error)

    def _fail(self, episode: RefreshEpisode, error: RefreshFailed) -> None:
        logger.error("Ошибка обновления токена: %s", error)
        self._reject(episode, error)
        if self._is_stale(episode):
            # Сессию уже заменил явный вход или выход
            logger.debug("Сессия изменилась во время обновления, store не трогаем")
            return
        try:
            self._session_store.clear()
        except OSError:
            logger.exception("Не удалось очистить сохранённую сессию")
        try:
            self._on_session_expired(error)
        except Exception:
            logger.exception("Ошибка в обработчике истечения сессии")
