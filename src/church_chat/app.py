from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from church_chat.api.deps import get_verifier
from church_chat.api.middleware.correlation_id import CorrelationIdMiddleware
from church_chat.api.middleware.metrics import RequestTimingMiddleware
from church_chat.api.v1.gateway import ChatGateway
from church_chat.api.v1.routers import (
    conversations,
    health,
    messages,
    stats,
    ws,
)
from church_chat.api.v1.schemas.common import ErrorEnvelope
from church_chat.application.exceptions import AppError
from church_chat.config import settings
from church_chat.infrastructure.bus.redis_pubsub import (
    RedisRoomBroadcaster,
    RedisRoomSubscriber,
)
from church_chat.infrastructure.db.session import dispose_engine
from church_chat.infrastructure.ws.presence import PresenceTracker
from church_chat.infrastructure.ws.rooms import RoomRouter

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Startup / shutdown lifecycle."""
    subscriber: RedisRoomSubscriber | None = None
    if settings.CHAT_FANOUT == "redis":
        app.state.redis = aioredis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
        )
        logger.info("Redis connection pool created")

        gateway: ChatGateway = app.state.gateway
        subscriber = RedisRoomSubscriber(
            app.state.redis,
            settings.REDIS_PUBSUB_CHANNEL,
            gateway.rooms,
        )
        await subscriber.start()
        gateway.use_broadcaster(
            RedisRoomBroadcaster(app.state.redis, settings.REDIS_PUBSUB_CHANNEL),
        )

    yield

    if subscriber is not None:
        await subscriber.stop()
        await app.state.redis.aclose()
        logger.info("Redis connection pool closed")
    await dispose_engine()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Church Chat Service",
        version="0.1.0",
        lifespan=lifespan,
    )

    presence = PresenceTracker()
    rooms = RoomRouter()
    app.state.redis = None
    app.state.gateway = ChatGateway(
        verifier=get_verifier(),
        presence=presence,
        rooms=rooms,
    )

    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)

    _register_exception_handlers(app)

    app.include_router(health.router)
    app.include_router(conversations.router)
    app.include_router(messages.router)
    app.include_router(stats.router)
    app.include_router(ws.router)

    return app


def _error_response(status_code: int, message: str, error: object = None) -> JSONResponse:
    body = ErrorEnvelope(
        message=message,
        error=error if settings.is_development else None,
    )
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
    )


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def _app_error(_req: Request, exc: AppError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s: %s", type(exc).__name__, exc.detail)
            return _error_response(exc.status_code, "Internal server error", exc.detail)
        return _error_response(exc.status_code, exc.detail)

    @app.exception_handler(RequestValidationError)
    async def _request_validation(_req: Request, exc: RequestValidationError) -> JSONResponse:
        return _error_response(422, "Invalid request", [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg")}
            for err in exc.errors()
        ])

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(_req: Request, exc: StarletteHTTPException) -> JSONResponse:
        return _error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(Exception)
    async def _unexpected(req: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", req.method, req.url.path)
        return _error_response(500, "Internal server error", str(exc))
