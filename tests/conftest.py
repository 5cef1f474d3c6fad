"""Общие фикстуры для тестов empmgmt.

FakeBackend имитирует сервер empmgmt через httpx.MockTransport:
выдаёт токены, отвечает 401 на истёкшие и считает запросы обновления.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncGenerator
from pathlib import Path
from unittest.mock import MagicMock

import httpx
import pytest

from empmgmt import EmpMgmtApiClientManager, EmpMgmtConfig, Identity

BASE_URL = "http://example.org/api"


def envelope(data: object, code: int = 200, message: str = "ok") -> dict:
    return {"code": code, "message": message, "data": data}


class FakeBackend:
    """Сервер empmgmt в памяти."""

    def __init__(self) -> None:
        self.valid_tokens: set[str] = {"T1"}
        self.token_counter = 1
        self.refresh_calls = 0
        self.refresh_cookies: list[str | None] = []
        self.refresh_delay = 0.05
        # ok | expired | malformed | timeout | network | error
        self.refresh_mode = "ok"
        self.refresh_cookie = "rt-1"
        self.identity = {
            "username": "alice",
            "role": "MANAGER",
            "department": "R&D",
            "employeeId": 42,
        }
        # (path, заголовок Authorization) в порядке поступления
        self.api_calls: list[tuple[str, str | None]] = []
        self.logout_calls = 0
        self.logout_status = 200

    def expire(self, token: str) -> None:
        self.valid_tokens.discard(token)

    def _issue_token(self) -> str:
        self.token_counter += 1
        token = f"T{self.token_counter}"
        self.valid_tokens.add(token)
        return token

    def _auth_payload(self, token: str) -> dict:
        return {"token": token, "tokenType": "Bearer", "expiresIn": 900000, **self.identity}

    async def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/api")
        if path == "/auth/refresh":
            return await self._refresh(request)
        if path == "/auth/login":
            return self._login(request)
        if path == "/auth/register":
            body = json.loads(request.content)
            return httpx.Response(200, json=envelope(
                {"token": "REG", "tokenType": "Bearer", "expiresIn": 1,
                 "username": body["username"], "role": "EMPLOYEE"}
            ))
        if path == "/auth/logout":
            self.logout_calls += 1
            return httpx.Response(self.logout_status, json=envelope(None))

        auth = request.headers.get("Authorization")
        self.api_calls.append((path, auth))
        if path == "/network":
            raise httpx.ConnectError("connection refused", request=request)
        if path == "/slow":
            raise httpx.ReadTimeout("read timed out", request=request)
        if path == "/server-error":
            return httpx.Response(500, json=envelope(None, code=500))
        if path == "/business-error":
            return httpx.Response(200, json=envelope(None, code=400, message="Отдел не найден"))
        if path == "/always-401":
            return httpx.Response(401)
        token = auth.removeprefix("Bearer ") if auth else None
        if token not in self.valid_tokens:
            return httpx.Response(401)
        return httpx.Response(200, json=envelope({"path": path, "token": token}))

    def _login(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if body["password"] != "secret":
            return httpx.Response(401)
        token = self._issue_token()
        return httpx.Response(
            200,
            json=envelope(self._auth_payload(token), message="Вход выполнен"),
            headers={"Set-Cookie": f"rt={self.refresh_cookie}; Path=/; HttpOnly"},
        )

    async def _refresh(self, request: httpx.Request) -> httpx.Response:
        self.refresh_calls += 1
        self.refresh_cookies.append(request.headers.get("Cookie"))
        await asyncio.sleep(self.refresh_delay)
        if self.refresh_mode == "expired":
            return httpx.Response(401)
        if self.refresh_mode == "malformed":
            return httpx.Response(200, content=b"<html>oops</html>")
        if self.refresh_mode == "timeout":
            raise httpx.ReadTimeout("refresh timed out", request=request)
        if self.refresh_mode == "network":
            raise httpx.ConnectError("connection refused", request=request)
        if self.refresh_mode == "error":
            return httpx.Response(500)
        return httpx.Response(200, json=envelope(self._auth_payload(self._issue_token())))


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def config(tmp_path: Path) -> EmpMgmtConfig:
    return EmpMgmtConfig(
        base_url=BASE_URL,
        session_file=tmp_path / "session.json",
        refresh_timeout=1.0,
    )


@pytest.fixture
def on_expired() -> MagicMock:
    """Обработчик окончательного истечения сессии."""
    return MagicMock()


@pytest.fixture
async def manager(
    config: EmpMgmtConfig, backend: FakeBackend, on_expired: MagicMock
) -> AsyncGenerator[EmpMgmtApiClientManager, None]:
    """Менеджер поверх FakeBackend."""
    mgr = EmpMgmtApiClientManager(
        config=config,
        on_session_expired=on_expired,
        transport=httpx.MockTransport(backend.handle),
    )
    yield mgr
    await mgr.close()


@pytest.fixture
def signed_in(manager: EmpMgmtApiClientManager) -> EmpMgmtApiClientManager:
    """Менеджер с сохранённой сессией на токене T1."""
    manager.session_store.set(
        Identity(username="alice", role="MANAGER", department="R&D", employee_id=42),
        "T1",
    )
    return manager
