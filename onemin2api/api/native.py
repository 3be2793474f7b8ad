"""
1min.ai 原生接口路由

请求体使用 camelCase 字段名，响应为上游信封原样返回；
便捷接口中的 extra 字段合并到 promptObject，同名键覆盖命名字段
"""
from typing import Any, Awaitable

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from onemin2api.api.dependencies import get_onemin_api, read_form_or_json, read_json_body
from onemin2api.errors import APIError
from onemin2api.models.feature import FeatureRequest
from onemin2api.models.registry import ModelCategory, resolve_model
from onemin2api.models.schemas import (
    BackgroundReplaceBody,
    ChatDocumentBody,
    ConversationCreateRequest,
    FeatureRequestBody,
    ImageGenerateBody,
    ImageInputBody,
    ImageToVideoBody,
    ImageUpscaleBody,
    ImageVariationBody,
    ObjectReplaceBody,
    SpeechToTextBody,
    TextToSpeechBody,
    VideoGenerateBody,
    validate_payload,
)
from onemin2api.services.onemin_client import OneMinAPI
from onemin2api.services.stream_relay import SSE_HEADERS, relay_raw_stream
from onemin2api.utils.file_utils import resolve_upload_meta
from onemin2api.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/api", tags=["native"])

ASSET_FIELDS = ("asset", "file")


async def _run(operation: str, call: Awaitable[Any]) -> Any:
    """执行上游调用，未分类的异常统一包装为 APIError"""
    try:
        return await call
    except APIError:
        raise
    except Exception as e:
        logger.error(f"[{operation}] 调用失败: {e}", exc_info=True)
        raise APIError.wrap(e) from e


async def _body(request: Request, schema):
    return validate_payload(schema, await read_json_body(request))


# ==================== ASSETS ====================

@router.post("/assets")
async def upload_asset(request: Request, api: OneMinAPI = Depends(get_onemin_api)):
    """上传资源（multipart，文件字段为 asset 或 file）"""
    _, files = await read_form_or_json(request)
    upload = next((files[name] for name in ASSET_FIELDS if name in files), None)
    if upload is None:
        raise APIError.validation("Missing file field 'asset'")

    content = await upload.read()
    filename, content_type = resolve_upload_meta(upload.filename, upload.content_type, "upload")
    return await _run("assets:upload", api.assets.upload(content, filename, content_type))


@router.get("/assets/{asset_id}")
async def get_asset(asset_id: str, api: OneMinAPI = Depends(get_onemin_api)):
    return await _run("assets:get", api.assets.get(asset_id))


# ==================== CONVERSATIONS ====================

@router.post("/conversations")
async def create_conversation(request: Request, api: OneMinAPI = Depends(get_onemin_api)):
    body = await _body(request, ConversationCreateRequest)
    params = body.model_dump(mode="json", by_alias=True, exclude_none=True)
    logger.info(f"[conversations:create] type={body.type}, model={body.model}")
    return await _run("conversations:create", api.conversations.create(params))


@router.get("/conversations")
async def list_conversations(api: OneMinAPI = Depends(get_onemin_api)):
    return await _run("conversations:list", api.conversations.list())


@router.get("/conversations/{conversation_id}")
async def get_conversation(conversation_id: str, api: OneMinAPI = Depends(get_onemin_api)):
    return await _run("conversations:get", api.conversations.get(conversation_id))


@router.delete("/conversations/{conversation_id}")
async def delete_conversation(conversation_id: str, api: OneMinAPI = Depends(get_onemin_api)):
    return await _run("conversations:delete", api.conversations.delete(conversation_id))


# ==================== FEATURES ====================

def _feature_request(body: FeatureRequestBody) -> FeatureRequest:
    # 通用接口不做别名解析，model 原样转发
    return FeatureRequest(
        type=body.type,
        model=body.model,
        conversation_id=body.conversation_id,
        prompt_object=body.prompt_object,
    )


@router.post("/features")
async def call_feature(request: Request, api: OneMinAPI = Depends(get_onemin_api)):
    body = await _body(request, FeatureRequestBody)
    return await _run("features:call", api.features.call(_feature_request(body)))


@router.post("/features/stream")
async def stream_feature(request: Request, api: OneMinAPI = Depends(get_onemin_api)):
    """流式调用，上游字节原样透传"""
    body = await _body(request, FeatureRequestBody)
    upstream = await _run("features:stream", api.features.stream(_feature_request(body)))
    return StreamingResponse(
        relay_raw_stream(upstream, request.is_disconnected),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


# ==================== CHAT ====================

@router.post("/chat/pdf")
async def chat_with_pdf(request: Request, api: OneMinAPI = Depends(get_onemin_api)):
    body = await _body(request, ChatDocumentBody)
    model = resolve_model(body.model, ModelCategory.CHAT)
    logger.info(f"[chat:pdf] model={body.model} -> {model}, conversation={body.conversation_id}")
    return await _run("chat:pdf", api.features.chat_with_pdf(model, body.prompt, body.conversation_id, body.is_mixed))


@router.post("/chat/youtube")
async def chat_with_youtube(request: Request, api: OneMinAPI = Depends(get_onemin_api)):
    body = await _body(request, ChatDocumentBody)
    model = resolve_model(body.model, ModelCategory.CHAT)
    logger.info(f"[chat:youtube] model={body.model} -> {model}, conversation={body.conversation_id}")
    return await _run(
        "chat:youtube",
        api.features.chat_with_youtube(model, body.prompt, body.conversation_id, body.is_mixed),
    )


# ==================== IMAGE ====================

@router.post("/image/generate")
async def image_generate(request: Request, api: OneMinAPI = Depends(get_onemin_api)):
    body = await _body(request, ImageGenerateBody)
    model = resolve_model(body.model, ModelCategory.IMAGE)
    return await _run("image:generate", api.features.generate_image(
        model,
        body.prompt,
        num_outputs=body.num_outputs,
        aspect_ratio=body.aspect_ratio,
        output_format=body.output_format,
        extra=body.extra,
    ))


@router.post("/image/variation")
async def image_variation(request: Request, api: OneMinAPI = Depends(get_onemin_api)):
    body = await _body(request, ImageVariationBody)
    model = resolve_model(body.model, ModelCategory.IMAGE)
    return await _run("image:variation", api.features.image_variation(
        model,
        body.image_url,
        mode=body.mode,
        n=body.n,
        aspect_width=body.aspect_width,
        aspect_height=body.aspect_height,
        maintain_moderation=body.maintain_moderation,
        extra=body.extra,
    ))


@router.post("/image/upscale")
async def image_upscale(request: Request, api: OneMinAPI = Depends(get_onemin_api)):
    body = await _body(request, ImageUpscaleBody)
    model = resolve_model(body.model, ModelCategory.IMAGE)
    return await _run(
        "image:upscale",
        api.features.upscale_image(model, body.image_url, scale=body.scale, extra=body.extra),
    )


@router.post("/image/remove-background")
async def image_remove_background(request: Request, api: OneMinAPI = Depends(get_onemin_api)):
    body = await _body(request, ImageInputBody)
    model = resolve_model(body.model, ModelCategory.IMAGE)
    return await _run("image:remove-background", api.features.remove_background(model, body.image_url, body.extra))


@router.post("/image/replace-background")
async def image_replace_background(request: Request, api: OneMinAPI = Depends(get_onemin_api)):
    body = await _body(request, BackgroundReplaceBody)
    model = resolve_model(body.model, ModelCategory.IMAGE)
    return await _run(
        "image:replace-background",
        api.features.replace_background(model, body.image_url, body.new_background, body.extra),
    )


@router.post("/image/remove-text")
async def image_remove_text(request: Request, api: OneMinAPI = Depends(get_onemin_api)):
    body = await _body(request, ImageInputBody)
    model = resolve_model(body.model, ModelCategory.IMAGE)
    return await _run("image:remove-text", api.features.remove_text(model, body.image_url, body.extra))


@router.post("/image/to-prompt")
async def image_to_prompt(request: Request, api: OneMinAPI = Depends(get_onemin_api)):
    body = await _body(request, ImageInputBody)
    model = resolve_model(body.model, ModelCategory.IMAGE)
    return await _run("image:to-prompt", api.features.image_to_prompt(model, body.image_url, body.extra))


@router.post("/image/object-replace")
async def image_object_replace(request: Request, api: OneMinAPI = Depends(get_onemin_api)):
    body = await _body(request, ObjectReplaceBody)
    model = resolve_model(body.model, ModelCategory.IMAGE)
    return await _run("image:object-replace", api.features.object_replace(
        model, body.image_url, body.search_prompt, body.replace_prompt, body.extra
    ))


# ==================== AUDIO ====================

@router.post("/audio/tts")
async def audio_tts(request: Request, api: OneMinAPI = Depends(get_onemin_api)):
    body = await _body(request, TextToSpeechBody)
    model = resolve_model(body.model, ModelCategory.AUDIO)
    return await _run("audio:tts", api.features.text_to_speech(model, body.text, voice=body.voice, extra=body.extra))


@router.post("/audio/stt")
async def audio_stt(request: Request, api: OneMinAPI = Depends(get_onemin_api)):
    body = await _body(request, SpeechToTextBody)
    model = resolve_model(body.model, ModelCategory.AUDIO)
    return await _run(
        "audio:stt",
        api.features.speech_to_text(model, body.audio_url, language=body.language, extra=body.extra),
    )


# ==================== VIDEO ====================

@router.post("/video/generate")
async def video_generate(request: Request, api: OneMinAPI = Depends(get_onemin_api)):
    body = await _body(request, VideoGenerateBody)
    model = resolve_model(body.model, ModelCategory.VIDEO)
    return await _run("video:generate", api.features.generate_video(
        model, body.prompt, duration=body.duration, aspect_ratio=body.aspect_ratio, extra=body.extra
    ))


@router.post("/video/from-image")
async def video_from_image(request: Request, api: OneMinAPI = Depends(get_onemin_api)):
    body = await _body(request, ImageToVideoBody)
    model = resolve_model(body.model, ModelCategory.VIDEO)
    return await _run("video:from-image", api.features.image_to_video(
        model, body.image_url, motion=body.motion, duration=body.duration, extra=body.extra
    ))
