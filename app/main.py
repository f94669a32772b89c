from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.endpoints import health, leads, import_reports
from app.core.config import settings
from app.core.database import init_db
from app.core.exceptions import register_exception_handlers


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


def create_application() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        openapi_url=f"{settings.API_PREFIX}/openapi.json",
        lifespan=lifespan
    )

    # Set up CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Origin", "X-Requested-With", "Content-Type", "Accept"],
    )

    register_exception_handlers(app)

    # Include routers
    app.include_router(health.router, prefix=f"{settings.API_PREFIX}/health", tags=["health"])
    app.include_router(leads.router, prefix=f"{settings.API_PREFIX}/leads", tags=["leads"])
    app.include_router(import_reports.router, prefix=f"{settings.API_PREFIX}/import-reports", tags=["import-reports"])

    return app

app = create_application()
