"""Хранилище сессии.

Держит текущий токен доступа и данные пользователя в памяти
и синхронизирует их с файлом на каждом set/clear, чтобы сессия
переживала перезапуск приложения.

Писать в store могут только RefreshCoordinator и явные
login/logout. Остальные компоненты только читают get().
"""

import logging
import os
from pathlib import Path

from pydantic import ValidationError

from empmgmt.models import Identity, Session

logger = logging.getLogger(__name__)
logger.setLevel(level=logging.DEBUG)


class SessionStore:
    """Единственный владелец объекта Session."""

    def __init__(self, path: Path | str) -> None:
        """Инициализация и загрузка сохранённой сессии.

        Args:
            path: Путь к файлу сессии
        """
        self._path = Path(path)
        self._session = self._load()
        self._generation = 0

    @property
    def path(self) -> Path:
        return self._path

    @property
    def generation(self) -> int:
        """Номер версии сессии, растёт на каждом set/clear."""
        return self._generation

    def _load(self) -> Session:
        if not self._path.exists():
            return Session.anonymous()
        try:
            session = Session.model_validate_json(self._path.read_bytes())
        except (OSError, ValidationError) as exc:
            logger.warning(
                "Не удалось прочитать сессию из %s: %s", self._path, exc
            )
            return Session.anonymous()
        logger.debug("Сессия загружена из %s", self._path)
        return session

    def _persist(self, session: Session) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            tmp_path.write_text(session.model_dump_json(), encoding="utf-8")
            # Атомарная замена: читатель файла видит старую или новую версию
            os.replace(tmp_path, self._path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise

    def get(self) -> Session:
        """Текущий снимок сессии."""
        return self._session

    def set(self, identity: Identity, access_token: str) -> None:
        """Сохранить новую сессию.

        Args:
            identity: Данные пользователя
            access_token: Новый токен доступа
        """
        session = Session(
            access_token=access_token,
            identity=identity,
            authenticated=True,
        )
        # Память меняется только после успешной записи на диск
        self._persist(session)
        self._session = session
        self._generation += 1
        logger.debug("Сессия обновлена для пользователя %s", identity.username)

    def clear(self) -> None:
        """Сбросить сессию и удалить файл."""
        self._path.unlink(missing_ok=True)
        self._session = Session.anonymous()
        self._generation += 1
        logger.debug("Сессия очищена")
