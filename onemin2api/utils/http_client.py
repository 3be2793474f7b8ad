"""
HTTP 客户端工具函数
基于 httpx.AsyncClient，进程内共享一个连接池，由应用生命周期负责创建和关闭
"""
from typing import Dict, Optional

import httpx

from onemin2api.config import Settings
from onemin2api.utils.logger import get_logger

logger = get_logger(__name__)

USER_AGENT = 'onemin2api/1.0'


def build_headers(
    api_key: str,
    content_type: Optional[str] = 'application/json',
    accept: str = '*/*',
) -> Dict[str, str]:
    """
    构建上游请求头

    Args:
        api_key: 1min.ai API Key
        content_type: Content-Type，multipart 请求传 None，由 httpx 生成 boundary
        accept: Accept 头

    Returns:
        请求头字典
    """
    headers = {
        'API-KEY': api_key,
        'accept': accept,
        'user-agent': USER_AGENT,
    }
    if content_type:
        headers['content-type'] = content_type
    return headers


def build_timeout(settings: Settings) -> httpx.Timeout:
    """上游调用的超时配置，流式读取同样受 read 超时约束"""
    return httpx.Timeout(
        connect=settings.upstream_connect_timeout,
        read=settings.upstream_read_timeout,
        write=30.0,
        pool=10.0
    )


def create_async_client(
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> httpx.AsyncClient:
    """
    创建异步HTTP客户端
    使用连接池复用TCP连接

    Args:
        settings: 应用配置
        transport: 自定义传输层（测试时注入 MockTransport）

    Returns:
        httpx.AsyncClient实例
    """
    limits = httpx.Limits(
        max_keepalive_connections=20,  # 保持活跃的连接数
        max_connections=100,            # 最大连接数
        keepalive_expiry=30.0           # 连接保持时间（秒）
    )
    client = httpx.AsyncClient(
        limits=limits,
        timeout=build_timeout(settings),
        http2=settings.upstream_http2,
        follow_redirects=True,
        transport=transport,
    )
    logger.debug("已创建异步HTTP客户端")
    return client


async def close_async_client(client: Optional[httpx.AsyncClient]) -> None:
    """关闭异步客户端，应在应用关闭时调用"""
    if client is not None and not client.is_closed:
        await client.aclose()
        logger.debug("已关闭异步HTTP客户端")
