"""
Babel Relay Backend - FastAPI Application
多语言房间实时字幕转发服务
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from babel_relay.__version__ import __version__
from babel_relay.api.v1.router import api_router
from babel_relay.core.config import settings
from babel_relay.core.exception_handlers import register_exception_handlers
from babel_relay.core.logging import setup_logging
from babel_relay.services.translation_service import get_translator
from babel_relay.services.websocket import (
    ConnectionManager,
    RoomMessageHandler,
    RoomRouter,
    SessionRegistry,
)

# Configure logging (JSON in production, colored in development)
setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    logger.info("🚀 Starting Babel Relay...")
    logger.info(f"📝 Environment: {settings.ENVIRONMENT}")

    registry = SessionRegistry()
    manager = ConnectionManager()
    # 测试可以预先注入 translator
    translator = getattr(app.state, "translator", None) or get_translator(settings)
    room_router = RoomRouter(
        registry,
        manager,
        translator,
        skip_same_language=settings.TRANSLATION_SKIP_SAME_LANGUAGE,
    )

    app.state.registry = registry
    app.state.connection_manager = manager
    app.state.translator = translator
    message_handler = RoomMessageHandler(registry, manager, room_router)
    # 发送失败的连接立即退出房间，不必等接收循环结束
    manager.on_send_failure = message_handler.handle_disconnect
    app.state.message_handler = message_handler
    logger.info(f"✅ Room router ready (translator: {translator.provider})")

    yield

    logger.info("👋 Shutting down Babel Relay...")
    registry.clear()
    manager.clear()


app = FastAPI(
    title="Babel Relay API",
    description="多语言房间实时字幕转发 API",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS Configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
async def health_check():
    """Health check with live connection stats"""
    registry: SessionRegistry | None = getattr(app.state, "registry", None)
    manager: ConnectionManager | None = getattr(app.state, "connection_manager", None)

    if registry is None or manager is None:
        return {"status": "starting", "version": __version__}

    return {
        "status": "healthy",
        "version": __version__,
        "checks": {
            "connections": len(manager),
            "joined": len(registry),
            "rooms": len(registry.rooms()),
        },
    }


@app.get("/")
async def root():
    """Root endpoint"""
    return {"message": "Welcome to Babel Relay API", "docs": "/docs", "version": __version__}


def run() -> None:
    """Run the server with uvicorn"""
    import uvicorn

    uvicorn.run(
        "babel_relay.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        reload=settings.DEBUG and settings.ENVIRONMENT == "development",
    )
