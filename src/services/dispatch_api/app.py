from contextlib import asynccontextmanager

from fastapi import FastAPI

from src.common.logger import log_info, setup_logging, TypeMsg
from src.core.geo.service import GeoService
from src.infra.database import DatabaseManager, close_db, init_db
from src.services.dispatch_api.routes import auth_router, drivers_router, jobs_router
from src.shared.models.common import HealthStatus

SERVICE_NAME = "dispatch_api"
SERVICE_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    setup_logging()
    await log_info("Starting Dispatch API...", type_msg=TypeMsg.INFO)
    await init_db()
    app.state.geo = GeoService()

    yield

    # Shutdown
    await log_info("Shutting down Dispatch API...", type_msg=TypeMsg.INFO)
    await app.state.geo.close()
    await close_db()


def create_app(use_lifespan: bool = True) -> FastAPI:
    app = FastAPI(
        title="Dispatch API",
        description="Drivers, delivery jobs and authentication for fleet dispatch",
        version=SERVICE_VERSION,
        lifespan=lifespan if use_lifespan else None,
    )

    app.include_router(auth_router, prefix="/api/v1")
    app.include_router(drivers_router, prefix="/api/v1")
    app.include_router(jobs_router, prefix="/api/v1")

    @app.get("/health", response_model=HealthStatus, tags=["Health"])
    async def health_check() -> HealthStatus:
        db_ok = await DatabaseManager().health_check()
        return HealthStatus(
            service=SERVICE_NAME,
            status="healthy" if db_ok else "unhealthy",
            version=SERVICE_VERSION,
            dependencies={"postgres": "healthy" if db_ok else "unhealthy"},
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    from src.config import settings

    uvicorn.run(
        "src.services.dispatch_api.app:app",
        host=settings.deployment.BIND_HOST,
        port=settings.deployment.DISPATCH_API_PORT,
    )
