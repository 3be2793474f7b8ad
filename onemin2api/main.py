"""
FastAPI 应用主入口
"""
import json
import time
from contextlib import asynccontextmanager
from typing import Optional

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from onemin2api.api.native import router as native_router
from onemin2api.api.v1 import router as v1_router
from onemin2api.config import Settings, load_settings
from onemin2api.errors import APIError, ErrorKind
from onemin2api.services.rate_limiter import FixedWindowRateLimiter
from onemin2api.utils.http_client import close_async_client, create_async_client
from onemin2api.utils.logger import configure_root_logger, format_fields, get_logger, log_request

logger = get_logger(__name__)

VERSION = "1.0.0"

# 定义一些颜色代码
CYAN = "\033[36m"
GREEN = "\033[32m"
RESET = "\033[0m"

OPENAI_ENDPOINTS = [
    "/v1/chat/completions",
    "/v1/images/generations",
    "/v1/images/variations",
    "/v1/audio/speech",
    "/v1/audio/transcriptions",
    "/v1/audio/translations",
    "/v1/embeddings",
    "/v1/models",
]

NATIVE_ENDPOINTS = [
    "/api/features",
    "/api/features/stream",
    "/api/conversations",
    "/api/assets",
    "/api/chat/*",
    "/api/image/*",
    "/api/audio/*",
    "/api/video/*",
]

_STATUS_KINDS = {kind.status_code: kind for kind in (
    ErrorKind.VALIDATION,
    ErrorKind.AUTHENTICATION,
    ErrorKind.NOT_FOUND,
    ErrorKind.RATE_LIMIT,
    ErrorKind.NOT_IMPLEMENTED,
)}


def _banner(settings: Settings) -> str:
    summary = {
        "ONEMIN_BASE_URL": settings.onemin_base_url,
        "ONEMIN_API_KEY": "已配置" if settings.onemin_api_key else "未配置（使用请求头中的 Key）",
        "ENVIRONMENT": settings.environment,
        "CORS_ORIGINS": settings.cors_origins,
        "RATE_LIMIT": f"{settings.rate_limit_max}/{settings.rate_limit_window_seconds}s",
    }
    base = f"http://localhost:{settings.port}"
    return fr"""{GREEN}
OneMin2API - 1min.ai 的 OpenAI 兼容代理
版本     : {VERSION}
服务地址 : {base}
OpenAI   : {base}/v1/chat/completions
图片     : {base}/v1/images/generations
音频     : {base}/v1/audio/speech
模型列表 : {base}/v1/models
当前环境变量信息
{json.dumps(summary, ensure_ascii=False, indent=2)}
{RESET}"""


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    应用生命周期管理

    启动时创建共享的 HTTP 连接池，关闭时释放
    """
    settings: Settings = app.state.settings
    app.state.http_client = create_async_client(settings, transport=app.state.transport)

    print(f"{GREEN}{'=' * 50}{RESET}")
    print(f"{GREEN}🚀OneMin2API 启动成功{RESET}")
    print(_banner(settings))
    print(f"{GREEN}{'=' * 50}{RESET}")
    logger.info(f"✅ 服务已就绪: {format_fields(host=settings.host, port=settings.port, env=settings.environment)}")

    yield

    logger.info("🛑 正在关闭应用...")
    await close_async_client(app.state.http_client)
    logger.info("✅ 异步HTTP客户端已关闭")
    logger.info("✅ 应用关闭完成")


def _error_response(error: APIError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if error.kind is ErrorKind.AUTHENTICATION else None
    return JSONResponse(status_code=error.status_code, content=error.to_dict(), headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """所有错误统一输出 {"error": {"message", "type", "details"?}}"""

    @app.exception_handler(APIError)
    async def api_error_handler(request: Request, exc: APIError):
        if exc.status_code >= 500:
            logger.error(f"❌ {request.method} {request.url.path} 失败: {exc.message}")
        return _error_response(exc)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            message = f"Endpoint {request.method} {request.url.path} not found"
            return _error_response(APIError(message, ErrorKind.VALIDATION, status_code=404))
        kind = _STATUS_KINDS.get(exc.status_code, ErrorKind.VALIDATION if exc.status_code < 500 else ErrorKind.SERVER)
        return _error_response(APIError(str(exc.detail), kind, status_code=exc.status_code))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        details = [
            {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
            for error in exc.errors()
        ]
        return _error_response(APIError.validation("Invalid request", details=details))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error(f"❌ 未处理的异常 {request.method} {request.url.path}: {exc}", exc_info=True)
        return _error_response(APIError.wrap(exc))


def register_middlewares(app: FastAPI, settings: Settings) -> None:
    limiter = FixedWindowRateLimiter(settings.rate_limit_max, settings.rate_limit_window_seconds)
    app.state.rate_limiter = limiter

    @app.middleware("http")
    async def rate_limit_middleware(request: Request, call_next):
        client_ip = request.client.host if request.client else "unknown"
        result = limiter.hit(client_ip)
        if not result.allowed:
            response = _error_response(APIError.rate_limited())
        else:
            response = await call_next(request)
        if limiter.enabled:
            response.headers["RateLimit-Limit"] = str(result.limit)
            response.headers["RateLimit-Remaining"] = str(result.remaining)
            response.headers["RateLimit-Reset"] = str(result.reset_seconds)
        return response

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        log_request(logger, request.method, request.url.path, response.status_code,
                    (time.perf_counter() - start) * 1000)
        return response

    # 最后添加的中间件最先执行，CORS 需要包在最外层
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials="*" not in settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-API-Key"],
    )


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    创建应用实例

    Args:
        settings: 应用配置，默认从环境变量读取
        transport: 上游 HTTP 传输层，测试时注入 httpx.MockTransport

    Raises:
        RuntimeError: 配置不合法（例如生产环境未配置 ONEMIN_API_KEY）
    """
    settings = settings or load_settings()
    errors = settings.get_config_errors()
    if errors:
        for error in errors:
            logger.error(f"❌ 配置错误: {error}")
        raise RuntimeError(f"Invalid configuration: {'; '.join(errors)}")

    app = FastAPI(title="OneMin2API", version=VERSION, lifespan=lifespan)
    app.state.settings = settings
    app.state.transport = transport

    register_exception_handlers(app)
    register_middlewares(app, settings)

    # 注册 API 路由
    app.include_router(v1_router)
    app.include_router(native_router)

    @app.get("/")
    async def root():
        """根路径，返回 API 基本信息"""
        return {
            "name": "onemin2api",
            "description": "OpenAI-compatible proxy for 1min.ai API",
            "version": VERSION,
            "health": "/health",
            "openai": "/v1/chat/completions",
        }

    @app.get("/health")
    async def health():
        """健康检查端点"""
        return {
            "status": "ok",
            "proxy": "onemin2api",
            "version": VERSION,
            "endpoints": {"openai": OPENAI_ENDPOINTS, "native": NATIVE_ENDPOINTS},
        }

    return app


def run() -> None:
    """命令行入口"""
    settings = load_settings()
    configure_root_logger(level=settings.log_level, use_color=settings.log_color)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
