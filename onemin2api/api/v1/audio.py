"""
音频相关 API 路由
"""
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse, StreamingResponse

from onemin2api.api.dependencies import get_onemin_api, read_form_or_json, read_json_body, validate_with_upload
from onemin2api.errors import APIError
from onemin2api.models.registry import ModelCategory, resolve_model
from onemin2api.models.schemas import SpeechRequest, TranscriptionRequest, TranslationRequest, validate_payload
from onemin2api.services.extractors import extract_audio_url, extract_text
from onemin2api.services.onemin_client import OneMinAPI
from onemin2api.services.stream_relay import relay_raw_stream
from onemin2api.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/audio", tags=["audio"])

AUDIO_CONTENT_TYPES = {
    "mp3": "audio/mpeg",
    "opus": "audio/opus",
    "aac": "audio/aac",
    "flac": "audio/flac",
    "wav": "audio/wav",
    "pcm": "audio/pcm",
}


@router.post("/speech")
async def create_speech(request: Request, api: OneMinAPI = Depends(get_onemin_api)):
    """
    文本转语音

    上游返回音频地址，取回后按字节流原样转发，Content-Type 由 response_format 决定
    """
    try:
        body = validate_payload(SpeechRequest, await read_json_body(request))
        upstream_model = resolve_model(body.model, ModelCategory.AUDIO)

        logger.info(f"[audio:speech] model={body.model} -> {upstream_model}, voice={body.voice}")

        data = await api.features.text_to_speech(
            upstream_model,
            body.input,
            voice=body.voice,
            extra={"format": body.response_format},
        )
        audio_url = extract_audio_url(data, api.settings.asset_base_url)
        if not audio_url:
            raise APIError("No audio generated")

        upstream = await api.client.fetch_stream(audio_url)
        return StreamingResponse(
            relay_raw_stream(upstream, request.is_disconnected, label="audio:speech"),
            media_type=AUDIO_CONTENT_TYPES.get(body.response_format, "audio/mpeg"),
        )

    except APIError:
        raise
    except Exception as e:
        logger.error(f"[audio:speech] 语音合成失败: {e}", exc_info=True)
        raise APIError.wrap(e) from e


async def _transcribe(
    request: Request,
    api: OneMinAPI,
    schema,
    operation: str,
    language: Optional[str] = None,
):
    fields, files = await read_form_or_json(request)
    body = await validate_with_upload(api, schema, fields, files, "file", "audio.mp3")
    upstream_model = resolve_model(body.model, ModelCategory.AUDIO)
    language = language or getattr(body, "language", None)

    logger.info(f"[audio:{operation}] model={body.model} -> {upstream_model}, language={language}")

    data = await api.features.speech_to_text(upstream_model, body.file, language=language)
    text = extract_text(data)

    # srt / vtt 原样返回上游文本，不做字幕格式转换
    if body.response_format in ("text", "srt", "vtt"):
        return PlainTextResponse(text)
    return {"text": text}


@router.post("/transcriptions")
async def create_transcription(request: Request, api: OneMinAPI = Depends(get_onemin_api)):
    """语音转文字，file 为音频 URL 或 multipart 上传的文件"""
    try:
        return await _transcribe(request, api, TranscriptionRequest, "transcription")
    except APIError:
        raise
    except Exception as e:
        logger.error(f"[audio:transcription] 语音转写失败: {e}", exc_info=True)
        raise APIError.wrap(e) from e


@router.post("/translations")
async def create_translation(request: Request, api: OneMinAPI = Depends(get_onemin_api)):
    """语音翻译为英文（固定 language=en）"""
    try:
        return await _transcribe(request, api, TranslationRequest, "translation", language="en")
    except APIError:
        raise
    except Exception as e:
        logger.error(f"[audio:translation] 语音翻译失败: {e}", exc_info=True)
        raise APIError.wrap(e) from e
