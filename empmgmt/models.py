"""Модели данных empmgmt API и состояния сессии."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ApiResult(BaseModel):
    """Конверт ответа сервера: {code, message, data}."""

    code: int
    message: str | None = None
    data: Any = None


class AuthResponse(BaseModel):
    """Ответ эндпоинтов входа и обновления токена."""

    model_config = ConfigDict(populate_by_name=True)

    token: str = Field(min_length=1)
    token_type: str = Field(default="Bearer", alias="tokenType")
    expires_in: int | None = Field(default=None, alias="expiresIn")
    username: str | None = None
    role: str | None = None
    department: str | None = None
    employee_id: int | None = Field(default=None, alias="employeeId")


class Identity(BaseModel):
    """Данные пользователя текущей сессии."""

    model_config = ConfigDict(frozen=True)

    username: str
    role: str
    department: str | None = None
    employee_id: int | None = None

    @classmethod
    def from_auth_response(cls, response: AuthResponse) -> "Identity":
        """Собрать Identity из ответа входа/обновления.

        Raises:
            ValueError: Если в ответе нет username или role
        """
        if not response.username or not response.role:
            raise ValueError("В ответе авторизации нет username или role")
        return cls(
            username=response.username,
            role=response.role,
            department=response.department,
            employee_id=response.employee_id,
        )


class Session(BaseModel):
    """Снимок сессии. Неизменяем: store заменяет его целиком."""

    model_config = ConfigDict(frozen=True)

    access_token: str | None = None
    identity: Identity | None = None
    authenticated: bool = False

    @classmethod
    def anonymous(cls) -> "Session":
        """Пустая сессия (после logout или до входа)."""
        return cls()
