"""
聊天相关 API 路由
"""
from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from onemin2api.api.dependencies import get_onemin_api, read_json_body
from onemin2api.errors import APIError
from onemin2api.models.registry import ModelCategory, resolve_model
from onemin2api.models.schemas import ChatCompletionRequest, validate_payload
from onemin2api.services import translators
from onemin2api.services.extractors import build_chat_completion, extract_text
from onemin2api.services.onemin_client import OneMinAPI
from onemin2api.services.stream_relay import SSE_HEADERS, new_completion_id, relay_chat_stream
from onemin2api.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["chat"])


@router.post("/chat/completions")
async def chat_completions(request: Request, api: OneMinAPI = Depends(get_onemin_api)):
    """
    Chat completions endpoint compatible with OpenAI API format.

    stream=true 时先打开上游流再返回 SSE 响应，打开失败仍能以 JSON 错误返回
    """
    try:
        body = validate_payload(ChatCompletionRequest, await read_json_body(request))
        upstream_model = resolve_model(body.model, ModelCategory.CHAT)
        feature_request = translators.build_chat_request(upstream_model, body.messages, body.conversation_id)
        image_count = len(feature_request.prompt_object.get("imageList", ()))

        logger.info(
            f"[chat] model={body.model} -> {upstream_model}, stream={body.stream}, "
            f"messages={len(body.messages)}, images={image_count}"
        )

        if body.stream:
            upstream = await api.features.stream(feature_request)
            completion_id = new_completion_id()
            return StreamingResponse(
                relay_chat_stream(upstream, body.model, request.is_disconnected, completion_id),
                media_type="text/event-stream",
                headers=SSE_HEADERS,
            )

        data = await api.features.call(feature_request)
        return build_chat_completion(extract_text(data), body.model)

    except APIError:
        raise
    except Exception as e:
        logger.error(f"[chat] 聊天完成失败: {e}", exc_info=True)
        raise APIError.wrap(e) from e
