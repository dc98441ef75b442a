"""
FastAPI 应用配置

配置 CORS、异常映射、路由注册。
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..config import get_config
from ..errors import InvalidInputError, NotFoundError
from .routers import health, legacy, loads

logger = logging.getLogger(__name__)


async def invalid_input_handler(request: Request, exc: InvalidInputError):
    logger.warning(f"Invalid input on {request.url.path}: {exc}")
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


def create_app() -> FastAPI:
    """
    创建 FastAPI 应用实例

    配置：
    - CORS 中间件
    - 核心异常 -> HTTP 状态码（InvalidInputError 400，NotFoundError 404）
    - API 路由
    """
    config = get_config()

    app = FastAPI(
        title="Load Monitor",
        description="服务器负载滚动平均 API 服务",
        version="1.0.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json"
    )

    # CORS 中间件
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(InvalidInputError, invalid_input_handler)
    app.add_exception_handler(NotFoundError, not_found_handler)

    # 注册路由
    app.include_router(loads.router)
    app.include_router(health.router)
    app.include_router(legacy.router)

    @app.on_event("startup")
    async def startup_event():
        logger.info("Load Monitor starting up...")

    @app.on_event("shutdown")
    async def shutdown_event():
        logger.info("Load Monitor shutting down...")

    return app


# 默认应用实例
app = create_app()
