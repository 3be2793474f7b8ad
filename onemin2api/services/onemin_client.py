"""
1min.ai 客户端服务
"""
import json
from typing import Any, AsyncIterator, Dict, Optional

import httpx

from onemin2api.config import Settings
from onemin2api.errors import APIError
from onemin2api.models.feature import FeatureRequest
from onemin2api.models.registry import FeatureType
from onemin2api.services import translators
from onemin2api.utils.http_client import build_headers
from onemin2api.utils.logger import get_logger

logger = get_logger(__name__)

FEATURES_PATH = '/api/features'
ASSETS_PATH = '/api/assets'
CONVERSATIONS_PATH = '/api/conversations'


class UpstreamStream:
    """
    上游的原始字节流

    打开时已确认状态码为 2xx；逐块读取，使用方负责调用 aclose()
    """

    def __init__(self, response: httpx.Response):
        self.response = response

    @property
    def status_code(self) -> int:
        return self.response.status_code

    @property
    def content_type(self) -> Optional[str]:
        return self.response.headers.get('content-type')

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        async for chunk in self.response.aiter_bytes():
            if chunk:
                yield chunk

    async def aclose(self) -> None:
        await self.response.aclose()


async def _raise_for_status(response: httpx.Response) -> None:
    """非 2xx 时读取完整响应文本并抛出上游错误"""
    if response.is_success:
        return
    body = (await response.aread()).decode('utf-8', errors='replace')
    await response.aclose()
    logger.error(f"❌ 上游返回错误: status={response.status_code}, body={body[:200]}")
    raise APIError.upstream(response.status_code, body)


class OneMinClient:
    """1min.ai HTTP 绑定：鉴权头、JSON 与 multipart 请求体、缓冲和流式两种读取方式"""

    def __init__(self, api_key: str, base_url: str, http_client: httpx.AsyncClient):
        self.api_key = api_key
        self.base_url = base_url.rstrip('/')
        self.http_client = http_client

    def _build_request(
        self,
        method: str,
        endpoint: str,
        json_data: Any = None,
        files: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Request:
        # multipart 不能强制 content-type，否则丢失 boundary
        headers = build_headers(self.api_key, content_type=None if files else 'application/json')
        return self.http_client.build_request(
            method,
            f'{self.base_url}{endpoint}',
            headers=headers,
            json=json_data,
            files=files,
            params=params,
        )

    async def send(self, request: httpx.Request, stream: bool = False) -> httpx.Response:
        try:
            return await self.http_client.send(request, stream=stream)
        except httpx.TimeoutException as e:
            logger.error(f"上游请求超时 {request.method} {request.url}: {e}")
            raise APIError.upstream(504, f"Upstream request timed out: {e}") from e
        except httpx.RequestError as e:
            logger.error(f"上游请求失败 {request.method} {request.url}: {e}")
            raise APIError.upstream(502, f"Upstream request failed: {e}") from e

    async def json(
        self,
        method: str,
        endpoint: str,
        json_data: Any = None,
        files: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        发送请求并读取完整响应

        Returns:
            解析后的 JSON；响应体不是 JSON 时返回文本

        Raises:
            APIError: 上游非 2xx 或网络错误
        """
        request = self._build_request(method, endpoint, json_data=json_data, files=files)
        response = await self.send(request)
        await _raise_for_status(response)
        try:
            return response.json()
        except json.JSONDecodeError:
            return response.text

    async def stream(self, method: str, endpoint: str, json_data: Any = None, params=None) -> UpstreamStream:
        """发送请求并返回未缓冲的字节流"""
        request = self._build_request(method, endpoint, json_data=json_data, params=params)
        response = await self.send(request, stream=True)
        await _raise_for_status(response)
        return UpstreamStream(response)

    async def fetch_stream(self, url: str) -> UpstreamStream:
        """以 GET 打开任意地址的字节流（如合成后的音频文件），不带鉴权头"""
        request = self.http_client.build_request('GET', url)
        response = await self.send(request, stream=True)
        await _raise_for_status(response)
        return UpstreamStream(response)


class AssetAPI:
    """资源上传与查询"""

    def __init__(self, client: OneMinClient):
        self.client = client

    async def upload(self, content: bytes, filename: str, content_type: Optional[str] = None) -> Any:
        file_tuple = (filename, content, content_type) if content_type else (filename, content)
        logger.info(f"[assets:upload] filename={filename}, size={len(content)}, content_type={content_type}")
        return await self.client.json('POST', ASSETS_PATH, files={'asset': file_tuple})

    async def get(self, asset_id: str) -> Any:
        return await self.client.json('GET', f'{ASSETS_PATH}/{asset_id}')


class ConversationAPI:
    """会话管理"""

    def __init__(self, client: OneMinClient):
        self.client = client

    async def create(self, params: Dict[str, Any]) -> Any:
        return await self.client.json('POST', CONVERSATIONS_PATH, json_data=params)

    async def get(self, conversation_id: str) -> Any:
        return await self.client.json('GET', f'{CONVERSATIONS_PATH}/{conversation_id}')

    async def list(self) -> Any:
        return await self.client.json('GET', CONVERSATIONS_PATH)

    async def delete(self, conversation_id: str) -> Any:
        return await self.client.json('DELETE', f'{CONVERSATIONS_PATH}/{conversation_id}')


class FeatureAPI:
    """AI 功能调用"""

    def __init__(self, client: OneMinClient):
        self.client = client

    async def call(self, feature_request: FeatureRequest) -> Any:
        """调用功能（缓冲）"""
        logger.debug(f"[features:call] type={feature_request.type.value}, model={feature_request.model}")
        return await self.client.json('POST', FEATURES_PATH, json_data=feature_request.to_payload())

    async def stream(self, feature_request: FeatureRequest) -> UpstreamStream:
        """调用功能（流式）"""
        logger.debug(f"[features:stream] type={feature_request.type.value}, model={feature_request.model}")
        return await self.client.stream(
            'POST',
            FEATURES_PATH,
            json_data=feature_request.to_payload(),
            params={'isStreaming': 'true'},
        )

    # ==================== CHAT ====================

    async def chat(self, model: str, prompt: str, **options) -> Any:
        return await self.call(translators.build_chat_ai_request(model, prompt, **options))

    async def chat_stream(self, model: str, prompt: str, **options) -> UpstreamStream:
        return await self.stream(translators.build_chat_ai_request(model, prompt, **options))

    async def chat_with_pdf(self, model: str, prompt: str, conversation_id: str, is_mixed=None) -> Any:
        return await self.call(translators.build_chat_document_request(
            FeatureType.CHAT_WITH_PDF, model, prompt, conversation_id, is_mixed
        ))

    async def chat_with_youtube(self, model: str, prompt: str, conversation_id: str, is_mixed=None) -> Any:
        return await self.call(translators.build_chat_document_request(
            FeatureType.CHAT_WITH_YOUTUBE_VIDEO, model, prompt, conversation_id, is_mixed
        ))

    # ==================== IMAGE ====================

    async def generate_image(self, model: str, prompt: str, **options) -> Any:
        return await self.call(translators.build_image_generation_request(model, prompt, **options))

    async def image_variation(self, model: str, image_url: str, **options) -> Any:
        return await self.call(translators.build_image_variation_request(model, image_url, **options))

    async def upscale_image(self, model: str, image_url: str, **options) -> Any:
        return await self.call(translators.build_image_upscale_request(model, image_url, **options))

    async def remove_background(self, model: str, image_url: str, extra=None) -> Any:
        return await self.call(translators.build_image_input_request(
            FeatureType.BACKGROUND_REMOVER, model, image_url, extra
        ))

    async def replace_background(self, model: str, image_url: str, new_background: str, extra=None) -> Any:
        return await self.call(translators.build_background_replace_request(model, image_url, new_background, extra))

    async def remove_text(self, model: str, image_url: str, extra=None) -> Any:
        return await self.call(translators.build_image_input_request(
            FeatureType.TEXT_REMOVER, model, image_url, extra
        ))

    async def image_to_prompt(self, model: str, image_url: str, extra=None) -> Any:
        return await self.call(translators.build_image_input_request(
            FeatureType.IMAGE_TO_PROMPT, model, image_url, extra
        ))

    async def object_replace(
        self, model: str, image_url: str, search_prompt: str, replace_prompt: str, extra=None
    ) -> Any:
        return await self.call(translators.build_object_replace_request(
            model, image_url, search_prompt, replace_prompt, extra
        ))

    # ==================== AUDIO ====================

    async def text_to_speech(self, model: str, text: str, **options) -> Any:
        return await self.call(translators.build_text_to_speech_request(model, text, **options))

    async def speech_to_text(self, model: str, audio_url: str, **options) -> Any:
        return await self.call(translators.build_speech_to_text_request(model, audio_url, **options))

    # ==================== VIDEO ====================

    async def generate_video(self, model: str, prompt: str, **options) -> Any:
        return await self.call(translators.build_video_request(model, prompt, **options))

    async def image_to_video(self, model: str, image_url: str, **options) -> Any:
        return await self.call(translators.build_image_to_video_request(model, image_url, **options))


class OneMinAPI:
    """按请求创建，绑定该请求使用的 API Key；底层连接池全局共享"""

    def __init__(self, api_key: str, settings: Settings, http_client: httpx.AsyncClient):
        self.settings = settings
        self.client = OneMinClient(api_key, settings.onemin_base_url, http_client)
        self.assets = AssetAPI(self.client)
        self.conversations = ConversationAPI(self.client)
        self.features = FeatureAPI(self.client)
