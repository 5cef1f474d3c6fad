"""Пример использования empmgmt API клиента."""

import asyncio
import logging

from empmgmt import EmpMgmtApiClientManager, get_empmgmt_config

# Настраиваем логирование
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


async def main() -> None:
    """Основная функция."""
    # Загружаем конфигурацию из config.yml
    config = get_empmgmt_config()
    print(f"Подключение к серверу: {config.base_url}")

    async with EmpMgmtApiClientManager.from_config(config) as manager:
        if not manager.session_store.get().authenticated:
            if config.username is None or config.password is None:
                raise SystemExit("Нет сохранённой сессии и не заданы username/password")
            await manager.auth.login(
                config.username.get_secret_value(),
                config.password.get_secret_value(),
            )

        print(f"Доступные разделы: {manager.route_guard.allowed_routes()}")

        # Несколько параллельных запросов: при истёкшем токене
        # обновление выполнится один раз на всех
        page, stats = await asyncio.gather(
            manager.dispatcher.get("/employ", params={"page": 1, "size": 5}),
            manager.dispatcher.get("/employ/stats/dept-count"),
        )
        print(f"\nСотрудники: {page}")
        print(f"Статистика по отделам: {stats}")

        navigation = manager.take_pending_navigation()
        if navigation is not None:
            print(f"\nНужен переход: {navigation.route} ({navigation.reason})")

    print("\nСоединения закрыты.")


if __name__ == "__main__":
    asyncio.run(main())
