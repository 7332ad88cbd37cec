# src/garagehub/api/app.py
"""
FastAPI приложение GarageHub.

Endpoints:
- /api/auth/* - регистрация и вход
- /api/customers/* - операции клиента
- /api/garages/* - операции гаража
- GET /health - состояние сервиса и хранилища
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Annotated, AsyncIterator, Optional

from fastapi import Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from garagehub import __version__
from garagehub.api.dependencies import ServiceContainer, build_container, get_container
from garagehub.api.responses import HealthStatus, error_response
from garagehub.api.routes import auth_router, customers_router, garages_router
from garagehub.common.constants import TypeMsg
from garagehub.common.exceptions import DomainError, StorageUnavailableError, ValidationError
from garagehub.common.logger import log_error, log_info, setup_logging


# === ERROR HANDLERS ===

async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Доменная ошибка -> стабильный error_code и HTTP-код."""
    if isinstance(exc, StorageUnavailableError):
        await log_error(f"{request.method} {request.url.path}: {exc.message}")
    else:
        await log_info(
            f"{request.method} {request.url.path}: {exc.error_code} ({exc.message})",
            type_msg=TypeMsg.DEBUG,
        )
    return error_response(exc)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Ошибки разбора запроса FastAPI отдаются как validation_error с кодом 400."""
    problems = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ())) or 'body'}: {err.get('msg')}"
        for err in exc.errors()
    )
    return error_response(ValidationError(problems or None))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Непредвиденная ошибка: пишем трейсбек и отвечаем 500."""
    await log_error(
        f"Необработанная ошибка {request.method} {request.url.path}: {exc}",
        exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error_code": "internal_error", "message": "Внутренняя ошибка сервера"},
    )


# === APP ===

def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """
    Создаёт приложение.

    Args:
        container: Готовый контейнер сервисов (иначе собирается из настроек)
    """
    from garagehub.config import settings

    setup_logging()
    if container is None:
        container = build_container(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await log_info("Запуск GarageHub API...", type_msg=TypeMsg.INFO)
        await app.state.container.startup()
        yield
        await log_info("Остановка GarageHub API...", type_msg=TypeMsg.INFO)
        await app.state.container.shutdown()

    app = FastAPI(
        title="GarageHub API",
        description="Клиенты и автосервисы: профили, поиск гаражей рядом, отзывы.",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(auth_router, prefix="/api")
    app.include_router(customers_router, prefix="/api")
    app.include_router(garages_router, prefix="/api")

    @app.get("/health", response_model=HealthStatus, tags=["Health"])
    async def health_check(
        container: Annotated[ServiceContainer, Depends(get_container)],
    ) -> HealthStatus:
        """Проверка здоровья сервиса."""
        storage_ok = await container.repository.health_check()
        return HealthStatus(
            service="garagehub",
            status="healthy" if storage_ok else "degraded",
            version=__version__,
            dependencies={"storage": "healthy" if storage_ok else "unhealthy"},
        )

    return app
