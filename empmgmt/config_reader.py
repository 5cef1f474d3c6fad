"""Конфигурация для empmgmt API клиента.

Читает настройки из YAML-файла, путь к которому указывается
в переменной окружения EMPMGMT_CONFIG.

Переменные окружения автоматически загружаются из .env файла.
"""

from functools import lru_cache
from os import getenv
from pathlib import Path
from typing import Any, TypeVar, cast

from dotenv import load_dotenv
from pydantic import BaseModel, Field, SecretStr
from yaml import CSafeLoader as SafeLoader
from yaml import load

# Автоматически загружаем переменные из .env файла
load_dotenv()

ConfigType = TypeVar("ConfigType", bound=BaseModel)


class EmpMgmtConfig(BaseModel):
    """Конфигурация для подключения к empmgmt API."""

    # Базовый URL API (например: http://localhost:8080/api)
    base_url: str

    # Файл, в котором сессия переживает перезапуск
    session_file: Path = Path(".empmgmt/session.json")

    # Таймаут обычных запросов, секунды
    timeout: float = Field(default=10.0, gt=0)

    # Таймаут запроса обновления токена, секунды
    refresh_timeout: float = Field(default=10.0, gt=0)

    refresh_path: str = "/auth/refresh"

    # Куда уводить пользователя после окончательного истечения сессии
    login_route: str = "/login"

    # Учетные данные для примера main.py
    username: SecretStr | None = None
    password: SecretStr | None = None


@lru_cache
def parse_config_file() -> dict[str, Any]:
    """Прочитать и распарсить YAML-файл конфигурации.

    Путь к файлу берётся из переменной окружения EMPMGMT_CONFIG.

    Returns:
        Словарь с конфигурацией

    Raises:
        ValueError: Если переменная окружения не задана
        FileNotFoundError: Если файл не найден
    """
    file_path = getenv("EMPMGMT_CONFIG")
    if file_path is None:
        raise ValueError(
            "Переменная окружения EMPMGMT_CONFIG не задана. "
            "Укажите путь к файлу конфигурации."
        )

    with open(file_path, "rb") as file:
        config_data = load(file, Loader=SafeLoader)

    if not isinstance(config_data, dict):
        raise ValueError("Конфигурация должна быть словарём")
    return config_data


@lru_cache
def get_config(model: type[ConfigType], root_key: str) -> ConfigType:  # noqa: UP047
    """Получить конфигурацию определённого типа из файла.

    Args:
        model: Pydantic-модель для валидации
        root_key: Корневой ключ в YAML-файле

    Returns:
        Экземпляр модели с заполненными значениями

    Raises:
        ValueError: Если ключ не найден в конфигурации
    """
    config_dict = parse_config_file()
    if root_key not in config_dict:
        raise ValueError(f"Ключ '{root_key}' не найден в конфигурации")
    return model.model_validate(config_dict[root_key])


def get_empmgmt_config() -> EmpMgmtConfig:
    """Получить конфигурацию empmgmt."""
    return cast(EmpMgmtConfig, get_config(EmpMgmtConfig, "empmgmt"))
