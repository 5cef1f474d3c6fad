"""Исключения клиента empmgmt API.

Таксономия ошибок, видимых вызывающему коду:
- NetworkError — сбой транспорта, не повторяется;
- AuthExpired — сессия истекла окончательно для данного вызова;
- RefreshFailed — не удалось обновить токен (терминальная ошибка эпизода);
- ServerError — любой другой HTTP-статус >= 400;
- ApiResultError — HTTP 200, но в конверте ответа code != 200.
"""

_STATUS_MESSAGES = {
    403: "Нет прав доступа к ресурсу",
    404: "Запрошенный ресурс не найден",
    500: "Внутренняя ошибка сервера",
}


class EmpMgmtException(Exception):
    """Базовое исключение для ошибок empmgmt API."""

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        super().__init__(message)
        self.original_error = original_error


class NetworkError(EmpMgmtException):
    """Ошибка сети или таймаут обычного запроса."""


class AuthExpired(EmpMgmtException):
    """Сессия истекла.

    Выбрасывается при:
    - повторном 401 после однократного replay запроса
    - 401 от самого эндпоинта обновления токена
    - неудачном обновлении токена (см. RefreshFailed)
    """


class RefreshFailed(AuthExpired):
    """Ошибка обновления токена.

    Все вызовы, ожидавшие один эпизод обновления, получают
    один и тот же экземпляр этого исключения.
    """


class ServerError(EmpMgmtException):
    """HTTP-ошибка, не связанная с истечением сессии."""

    def __init__(
        self,
        status: int,
        message: str | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message or f"HTTP {status}", original_error=original_error)
        self.status = status

    @property
    def user_message(self) -> str:
        """Сообщение для показа пользователю."""
        return _STATUS_MESSAGES.get(self.status, f"Ошибка запроса: {self.status}")


class ApiResultError(EmpMgmtException):
    """Бизнес-ошибка: сервер вернул code != 200 в конверте ответа."""

    def __init__(self, code: int, message: str | None = None) -> None:
        super().__init__(message or "Ошибка запроса")
        self.code = code
