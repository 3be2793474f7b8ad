"""
响应提取：1min.ai 响应信封 -> OpenAI 风格的响应

上游结果的位置不固定，统一先解析为 Envelope 的某一种形态，再按能力提取。
数据形态不符合预期时只做尽力提取，从不抛异常。
"""
import json
import time
from typing import Any, Dict, List, Mapping, Optional

from onemin2api.models.feature import (
    Envelope,
    FieldEnvelope,
    RecordEnvelope,
    TextEnvelope,
    UnrecognizedEnvelope,
)
from onemin2api.utils.logger import get_logger

logger = get_logger(__name__)

# 顶层字段的检查顺序
TOP_LEVEL_FIELDS = ("result", "response", "content")


def _present(value: Any) -> bool:
    return value is not None and value != "" and value != [] and value != {}


def _nested(data: Mapping[str, Any], *path: str) -> Any:
    current: Any = data
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def parse_envelope(data: Any) -> Envelope:
    """
    按固定优先级识别响应形态

    字符串 -> result -> response -> content -> aiRecord.aiRecordDetail.resultObject，
    都不匹配时返回 UnrecognizedEnvelope
    """
    if isinstance(data, str):
        return TextEnvelope(data)

    if isinstance(data, Mapping):
        for name in TOP_LEVEL_FIELDS:
            value = data.get(name)
            if _present(value):
                return FieldEnvelope(name, value)

        record = _nested(data, "aiRecord", "aiRecordDetail", "resultObject")
        if _present(record):
            return RecordEnvelope(record)

    return UnrecognizedEnvelope(data)


def _dumps(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False, default=str)


def _value_to_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return "".join(item if isinstance(item, str) else _dumps(item) for item in value)
    if isinstance(value, (dict, bool)) or value is None:
        return _dumps(value)
    return str(value)


def extract_text(data: Any) -> str:
    """
    提取文本结果（聊天、语音转写、图生提示词）

    序列按空字符串拼接；无法识别时返回整个信封的 JSON 文本
    """
    envelope = parse_envelope(data)
    if isinstance(envelope, TextEnvelope):
        return envelope.text
    if isinstance(envelope, (FieldEnvelope, RecordEnvelope)):
        return _value_to_text(envelope.value)
    logger.debug("未识别的响应信封，返回原始 JSON")
    return _dumps(envelope.raw)


def normalize_asset_url(value: str, asset_base_url: str) -> str:
    """相对资源路径加上资源域名前缀，绝对 URL 原样返回"""
    if value.startswith(("http://", "https://")):
        return value
    return f"{asset_base_url.rstrip('/')}/{value.lstrip('/')}"


def extract_urls(data: Any, asset_base_url: str) -> List[str]:
    """提取结果中的资源地址列表（图片、视频），无法识别时返回空列表"""
    envelope = parse_envelope(data)
    if isinstance(envelope, TextEnvelope):
        values: List[Any] = [envelope.text]
    elif isinstance(envelope, (FieldEnvelope, RecordEnvelope)):
        value = envelope.value
        values = list(value) if isinstance(value, (list, tuple)) else [value]
    else:
        logger.warning("⚠ 响应中未找到资源地址")
        return []

    return [
        normalize_asset_url(item, asset_base_url)
        for item in values
        if isinstance(item, str) and item
    ]


def extract_audio_url(data: Any, asset_base_url: str) -> Optional[str]:
    """取第一个音频地址，没有则返回 None"""
    urls = extract_urls(data, asset_base_url)
    return urls[0] if urls else None


def extract_asset_reference(data: Any) -> str:
    """
    从资源上传的响应中取可用的引用

    依次尝试 fileContent.path 和 asset.key，都没有时返回空字符串，
    由使用方决定如何报错
    """
    if not isinstance(data, Mapping):
        return ""
    for path in (("fileContent", "path"), ("asset", "key")):
        value = _nested(data, *path)
        if isinstance(value, str) and value:
            return value
    return ""


# ==================== OpenAI 响应构建 ====================

def to_image_data(urls: List[str], response_format: str = "url") -> List[Dict[str, Any]]:
    """
    构建 images 响应的 data 列表

    不支持 b64_json：不会下载再编码，始终返回 url 字段，b64_json 字段缺省
    """
    if response_format == "b64_json" and urls:
        logger.warning("⚠ 暂不支持 b64_json，返回 url 格式")
    return [{"url": url} for url in urls]


def build_chat_completion(content: str, model: str, completion_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "id": completion_id or f"chatcmpl-{int(time.time() * 1000)}",
        "object": "chat.completion",
        "created": int(time.time()),
        "model": model,
        "choices": [{
            "index": 0,
            "message": {"role": "assistant", "content": content},
            "finish_reason": "stop",
        }],
        "usage": {
            "prompt_tokens": 0,
            "completion_tokens": 0,
            "total_tokens": 0,
        },
    }


def build_chat_chunk(
    completion_id: str,
    model: str,
    content: Optional[str] = None,
    finish_reason: Optional[str] = None
) -> Dict[str, Any]:
    return {
        "id": completion_id,
        "object": "chat.completion.chunk",
        "created": int(time.time()),
        "model": model,
        "choices": [{
            "index": 0,
            "delta": {"content": content} if content is not None else {},
            "finish_reason": finish_reason,
        }],
    }

