"""
Exception Handlers
全局异常处理器，将自定义异常转换为 HTTP 响应
"""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from babel_relay.core.exceptions import (
    BabelRelayError,
    ConfigurationError,
    ResourceNotFoundError,
)


def register_exception_handlers(app: FastAPI) -> None:
    """注册全局异常处理器"""

    @app.exception_handler(ResourceNotFoundError)
    async def resource_not_found_handler(request: Request, exc: ResourceNotFoundError):
        return JSONResponse(
            status_code=404,
            content={"detail": exc.message},
        )

    @app.exception_handler(ConfigurationError)
    async def config_error_handler(request: Request, exc: ConfigurationError):
        logger.error(f"Configuration Error: {exc.message}")
        return JSONResponse(
            status_code=500,
            content={"detail": "Server configuration error"},
        )

    @app.exception_handler(BabelRelayError)
    async def generic_error_handler(request: Request, exc: BabelRelayError):
        logger.error(f"Unhandled BabelRelayError: {exc.message}")
        return JSONResponse(
            status_code=500,
            content={"detail": exc.message},
        )
