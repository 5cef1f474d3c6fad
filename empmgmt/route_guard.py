"""Проверка доступа к разделам приложения по роли.

RouteGuard только читает SessionStore и никогда его не изменяет.
"""

import enum
import logging
from collections.abc import Mapping

from empmgmt.session_store import SessionStore

logger = logging.getLogger(__name__)


class Role(enum.Enum):
    """Роль пользователя. Чем меньше level, тем выше права."""

    SUPER_ADMIN = ("SUPER_ADMIN", "Суперадминистратор", 1)
    MANAGER = ("MANAGER", "Руководитель отдела", 2)
    EMPLOYEE = ("EMPLOYEE", "Сотрудник", 3)

    def __init__(self, code: str, title: str, level: int) -> None:
        self.code = code
        self.title = title
        self.level = level

    @classmethod
    def from_code(cls, code: str) -> "Role":
        """Найти роль по коду.

        Raises:
            ValueError: Если код роли неизвестен
        """
        for role in cls:
            if role.code == code:
                return role
        raise ValueError(f"Неизвестный код роли: {code}")

    def has_higher_level_than(self, other: "Role") -> bool:
        return self.level < other.level


class GuardDecision(enum.Enum):
    ALLOW = "allow"
    REDIRECT_LOGIN = "redirect_login"
    FORBIDDEN = "forbidden"


ALL_ROLES = frozenset(Role)

# Разделы приложения и роли, которым они доступны
DEFAULT_ROUTES: dict[str, frozenset[Role]] = {
    "/employees": ALL_ROLES,
    "/users": frozenset({Role.SUPER_ADMIN}),
    "/statistics": frozenset({Role.SUPER_ADMIN, Role.MANAGER}),
    "/logs": frozenset({Role.SUPER_ADMIN}),
}

PUBLIC_ROUTES = frozenset({"/login", "/register"})


class RouteGuard:
    """Разрешает или запрещает переход в раздел."""

    def __init__(
        self,
        session_store: SessionStore,
        routes: Mapping[str, frozenset[Role]] | None = None,
        public_routes: frozenset[str] = PUBLIC_ROUTES,
    ) -> None:
        self._session_store = session_store
        self._routes = dict(DEFAULT_ROUTES if routes is None else routes)
        self._public_routes = public_routes

    def _required_roles(self, path: str) -> frozenset[Role] | None:
        # Самый длинный совпавший префикс: /employees/1/edit -> /employees
        matches = [
            route
            for route in self._routes
            if path == route or path.startswith(route.rstrip("/") + "/")
        ]
        if not matches:
            return None
        return self._routes[max(matches, key=len)]

    def current_role(self) -> Role | None:
        """Роль текущего пользователя или None."""
        session = self._session_store.get()
        if not session.authenticated or session.identity is None:
            return None
        try:
            return Role.from_code(session.identity.role)
        except ValueError:
            logger.warning("Неизвестная роль в сессии: %s", session.identity.role)
            return None

    def check(self, path: str) -> GuardDecision:
        """Проверить доступ к разделу.

        Args:
            path: Путь раздела, например /employees/new

        Returns:
            Решение о переходе
        """
        if path in self._public_routes:
            return GuardDecision.ALLOW

        session = self._session_store.get()
        if not session.authenticated:
            return GuardDecision.REDIRECT_LOGIN

        required = self._required_roles(path)
        if required is None:
            return GuardDecision.ALLOW

        role = self.current_role()
        if role is None or role not in required:
            logger.debug("Доступ к %s запрещён для роли %s", path, role)
            return GuardDecision.FORBIDDEN
        return GuardDecision.ALLOW

    def allowed_routes(self) -> list[str]:
        """Разделы, доступные текущему пользователю."""
        role = self.current_role()
        if role is None:
            return []
        return [route for route, roles in self._routes.items() if role in roles]
