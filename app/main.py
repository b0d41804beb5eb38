from __future__ import annotations

import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import uuid4

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.routes.catalog import router as catalog_router
from app.api.routes.codes import router as codes_router
from app.api.routes.health import router as health_router
from app.api.routes.orders import router as orders_router
from app.api.routes.payments import router as payments_router
from app.api.routes.products import router as products_router
from app.api.routes.realtime import router as realtime_router
from app.api.routes.reviews import router as reviews_router
from app.api.routes.users import router as users_router
from app.core.config import Settings, get_settings
from app.core.logging import configure_logging
from app.db.models import Base
from app.db.session import build_engine, build_read_session_factory, build_session_factory
from app.services.payments import ChargilyGateway, PayPalGateway
from app.services.realtime import ChangeBroadcaster
from app.store.fulfillment.service import FulfillmentService
from app.store.reviews.service import ReviewService

logger = structlog.get_logger(__name__)

ROUTE_NOT_FOUND_MESSAGE = "المسار غير موجود"
SERVER_ERROR_MESSAGE = "خطأ في الخادم"
INVALID_REQUEST_MESSAGE = "بيانات الطلب غير صالحة"


def _lifespan(settings: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        engine = build_engine(settings.database_url, echo=settings.db_echo)
        if settings.db_create_all:
            async with engine.begin() as connection:
                await connection.run_sync(Base.metadata.create_all)

        session_factory = build_session_factory(engine)
        broadcaster = ChangeBroadcaster(
            redis_url=settings.redis_url,
            channel=settings.realtime_channel,
        )
        await broadcaster.start()

        app.state.engine = engine
        app.state.session_factory = session_factory
        app.state.read_session_factory = build_read_session_factory(engine)
        app.state.broadcaster = broadcaster
        app.state.fulfillment = FulfillmentService(
            session_factory,
            timeout_seconds=settings.fulfillment_timeout_seconds,
            max_attempts=settings.fulfillment_max_attempts,
        )
        app.state.reviews = ReviewService(session_factory)
        app.state.chargily = ChargilyGateway(settings)
        app.state.paypal = PayPalGateway(settings)
        logger.info("app_started", app_env=settings.app_env, database=engine.url.get_backend_name())
        try:
            yield
        finally:
            await broadcaster.stop()
            await engine.dispose()
            logger.info("app_stopped")

    return lifespan


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        message = exc.detail if isinstance(exc.detail, str) else SERVER_ERROR_MESSAGE
        if exc.status_code == 404 and message == "Not Found":
            message = ROUTE_NOT_FOUND_MESSAGE
        return JSONResponse(status_code=exc.status_code, content={"message": message}, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        logger.info("request_validation_failed", path=request.url.path, errors=len(errors))
        fields = [".".join(str(part) for part in error.get("loc", ())[1:]) for error in errors]
        return JSONResponse(
            status_code=400,
            content={"message": INVALID_REQUEST_MESSAGE, "fields": [field for field in fields if field]},
        )

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("request_failed", path=request.url.path, method=request.method)
        return JSONResponse(status_code=500, content={"message": SERVER_ERROR_MESSAGE})


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Matajir Store API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=_lifespan(settings),
    )
    app.state.settings = settings
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def bind_request_id(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid4().hex
        structlog.contextvars.bind_contextvars(request_id=request_id)
        started = time.perf_counter()
        try:
            response = await call_next(request)
            logger.info(
                "request_completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
            )
        finally:
            structlog.contextvars.unbind_contextvars("request_id")
        response.headers["X-Request-ID"] = request_id
        return response

    _install_error_handlers(app)
    app.include_router(health_router)
    app.include_router(products_router)
    app.include_router(catalog_router)
    app.include_router(codes_router)
    app.include_router(orders_router)
    app.include_router(reviews_router)
    app.include_router(users_router)
    app.include_router(payments_router)
    app.include_router(realtime_router)
    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_env == "dev",
    )


if __name__ == "__main__":
    run()
