# src/services/realtime_relay/app.py
"""
FastAPI приложение ретранслятора координат и чата.

WebSocket endpoints:
- /ws?room=<roomId> - единое соединение водителя или диспетчера

REST endpoints:
- GET /health - проверка здоровья
- GET /stats - статистика соединений, комнат и записи координат
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Query, Request, WebSocket, WebSocketDisconnect

from src.common.logger import log_error, log_info, log_warning, setup_logging
from src.core.users.repository import UserRepository
from src.infra.database import DatabaseManager, close_db, init_db
from src.services.realtime_relay.service import RealtimeRelayService
from src.shared.models.common import HealthStatus

SERVICE_NAME = "realtime_relay"
SERVICE_VERSION = "1.0.0"


async def _connect_database() -> DatabaseManager | None:
    """Подключение к БД. Без неё ретранслятор работает, но не сохраняет координаты."""
    try:
        return await init_db(apply_schema=False)
    except Exception as e:
        await log_error(f"PostgreSQL недоступен, координаты не будут сохраняться: {e}")
        return None


def create_app(service: RealtimeRelayService | None = None, manage_db: bool = True) -> FastAPI:
    """
    Создаёт приложение.

    Args:
        service: Готовый сервис (для тестов); иначе собирается по конфигурации
        manage_db: Подключаться ли к PostgreSQL при старте
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging()
        await log_info("Запуск Realtime Relay...")

        db = await _connect_database() if manage_db else None
        relay = service
        if relay is None:
            relay = RealtimeRelayService.from_settings(UserRepository(db) if db else None)
        app.state.relay = relay
        app.state.db = db

        await relay.start()
        yield

        await log_info("Остановка Realtime Relay...")
        await relay.stop()
        if db is not None:
            await close_db()

    app = FastAPI(
        title="Realtime Relay",
        description="WebSocket ретранслятор координат водителей и чата водитель-диспетчер.",
        version=SERVICE_VERSION,
        lifespan=lifespan,
    )

    @app.get("/health", response_model=HealthStatus, tags=["Health"])
    async def health_check(request: Request) -> HealthStatus:
        relay: RealtimeRelayService = request.app.state.relay
        db: DatabaseManager | None = request.app.state.db
        dependencies: dict[str, str] = {}
        status = "healthy"
        if manage_db:
            db_ok = db is not None and await db.health_check()
            dependencies["postgres"] = "healthy" if db_ok else "unhealthy"
            if not db_ok:
                # Рассылка работает и без БД
                status = "degraded"
        return HealthStatus(
            service=SERVICE_NAME,
            status=status,
            version=SERVICE_VERSION,
            uptime_seconds=relay.uptime_seconds,
            dependencies=dependencies,
        )

    @app.get("/stats", tags=["Stats"])
    async def get_stats(request: Request) -> dict[str, Any]:
        return request.app.state.relay.get_stats()

    @app.websocket("/ws")
    async def relay_socket(
        websocket: WebSocket,
        room: str | None = Query(default=None),
    ) -> None:
        relay: RealtimeRelayService = websocket.app.state.relay
        handle = await relay.open_connection(websocket, room)
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    raise WebSocketDisconnect(message.get("code", 1000))
                # Бинарные кадры разбираются так же, как текстовые
                raw = message.get("text")
                if raw is None:
                    raw = message.get("bytes") or b""
                await relay.handle_message(handle, raw)
        except WebSocketDisconnect:
            pass
        except Exception as e:
            await log_warning(f"Соединение {handle.connection_id} разорвано: {e}")
        finally:
            await relay.close_connection(handle)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    from src.config import settings

    uvicorn.run(
        "src.services.realtime_relay.app:app",
        host=settings.deployment.BIND_HOST,
        port=settings.deployment.REALTIME_RELAY_PORT,
    )
