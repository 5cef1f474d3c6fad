"""Модуль для работы с empmgmt API.

Предоставляет клиента, который прозрачно продлевает короткоживущую
сессию: при 401 токен обновляется один раз на всех ожидающих,
а запросы повторяются.

Пример использования:
    from empmgmt import EmpMgmtApiClientManager, get_empmgmt_config

    config = get_empmgmt_config()
    async with EmpMgmtApiClientManager.from_config(config) as manager:
        await manager.auth.login("admin", "secret")
        employees = await manager.dispatcher.get("/employ")
"""

from empmgmt.api_client_manager import EmpMgmtApiClientManager, Navigation
from empmgmt.auth_api import AuthApi
from empmgmt.config_reader import (
    EmpMgmtConfig,
    get_config,
    get_empmgmt_config,
    parse_config_file,
)
from empmgmt.dispatcher import RequestDispatcher
from empmgmt.exceptions import (
    ApiResultError,
    AuthExpired,
    EmpMgmtException,
    NetworkError,
    RefreshFailed,
    ServerError,
)
from empmgmt.models import AuthResponse, Identity, Session
from empmgmt.refresh_coordinator import RefreshCoordinator
from empmgmt.route_guard import GuardDecision, Role, RouteGuard
from empmgmt.session_store import SessionStore

__all__ = [
    # API Client Manager
    "EmpMgmtApiClientManager",
    "Navigation",
    # Core
    "AuthApi",
    "RefreshCoordinator",
    "RequestDispatcher",
    "SessionStore",
    # Navigation
    "GuardDecision",
    "Role",
    "RouteGuard",
    # Models
    "AuthResponse",
    "Identity",
    "Session",
    # Configuration
    "EmpMgmtConfig",
    "get_config",
    "get_empmgmt_config",
    "parse_config_file",
    # Exceptions
    "ApiResultError",
    "AuthExpired",
    "EmpMgmtException",
    "NetworkError",
    "RefreshFailed",
    "ServerError",
]
