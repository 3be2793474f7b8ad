"""
请求翻译：OpenAI 风格的请求 -> 1min.ai FeatureRequest

全部为纯函数。调用方未提供的字段不会出现在 promptObject 中；
extra 字典最后合并，同名键覆盖命名字段。
"""
from math import gcd
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from onemin2api.models.feature import FeatureRequest
from onemin2api.models.registry import FeatureType

ROLE_LABELS = {
    "system": "System",
    "user": "User",
    "assistant": "Assistant",
}


def _field(message: Any, name: str) -> Any:
    # 兼容 Pydantic 模型对象和字典
    if isinstance(message, Mapping):
        return message.get(name)
    return getattr(message, name, None)


def _part_field(part: Any, name: str) -> Any:
    if isinstance(part, Mapping):
        return part.get(name)
    return getattr(part, name, None)


def merge_extras(named: Mapping[str, Any], extra: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """
    合并命名字段与 extra 字典

    命名字段先写入，extra 按插入顺序覆盖；值为 None 的命名字段跳过
    """
    merged = {key: value for key, value in named.items() if value is not None}
    if extra:
        merged.update(extra)
    return merged


# ==================== Chat ====================

def _content_text(content: Any) -> str:
    """多模态内容只取文本部分"""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        texts = [
            _part_field(part, "text") or ""
            for part in content
            if _part_field(part, "type") == "text"
        ]
        return "\n".join(text for text in texts if text)
    return ""


def build_chat_prompt(messages: Sequence[Any]) -> str:
    """
    把消息列表压平为单个提示词

    规则：
    1. 除最后一条外的所有消息作为上下文，格式为 "<Role>: <content>\\n\\n"
       （仅字符串内容；历史消息中的多模态内容会被丢弃）
    2. 最近一条 user 消息作为主提示词
    3. 有上下文时结果为 "<context>User: <prompt>"，否则就是提示词本身

    Examples:
        >>> build_chat_prompt([{"role": "user", "content": "Hello"}])
        'Hello'
    """
    # TODO: 历史消息里的多模态内容目前直接丢弃，需要和上游确认是否应渲染为文本
    context = ""
    for message in messages[:-1]:
        content = _field(message, "content")
        label = ROLE_LABELS.get(_field(message, "role"))
        if label and isinstance(content, str):
            context += f"{label}: {content}\n\n"

    user_messages = [m for m in messages if _field(m, "role") == "user"]
    prompt = _content_text(_field(user_messages[-1], "content")) if user_messages else ""

    if context:
        return f"{context}User: {prompt}"
    return prompt


def extract_image_urls(messages: Sequence[Any]) -> List[str]:
    """按顺序收集所有 user 消息中的图片 URL"""
    images = []
    for message in messages:
        content = _field(message, "content")
        if _field(message, "role") != "user" or not isinstance(content, list):
            continue
        for part in content:
            if _part_field(part, "type") != "image_url":
                continue
            image_url = _part_field(part, "image_url")
            url = _part_field(image_url, "url") if image_url is not None else None
            if url:
                images.append(str(url))
    return images


def build_chat_request(
    model: str,
    messages: Sequence[Any],
    conversation_id: Optional[str] = None
) -> FeatureRequest:
    """
    构建聊天请求

    消息中带图片时切换为 CHAT_WITH_IMAGE 并附带 imageList
    """
    prompt_object: Dict[str, Any] = {
        "prompt": build_chat_prompt(messages),
        "isMixed": False,
        "webSearch": False,
    }
    images = extract_image_urls(messages)
    feature_type = FeatureType.CHAT_WITH_AI
    if images:
        feature_type = FeatureType.CHAT_WITH_IMAGE
        prompt_object["imageList"] = images

    return FeatureRequest(
        type=feature_type,
        model=model,
        conversation_id=conversation_id,
        prompt_object=prompt_object,
    )


def build_chat_ai_request(
    model: str,
    prompt: str,
    conversation_id: Optional[str] = None,
    is_mixed: bool = False,
    web_search: bool = False,
    num_of_site: int = 1,
    max_word: int = 500
) -> FeatureRequest:
    """原生接口使用的完整 CHAT_WITH_AI 请求（带联网搜索参数）"""
    return FeatureRequest(
        type=FeatureType.CHAT_WITH_AI,
        model=model,
        conversation_id=conversation_id,
        prompt_object={
            "prompt": prompt,
            "isMixed": is_mixed,
            "webSearch": web_search,
            "numOfSite": num_of_site,
            "maxWord": max_word,
        },
    )


def build_chat_document_request(
    feature_type: FeatureType,
    model: str,
    prompt: str,
    conversation_id: str,
    is_mixed: Optional[bool] = None
) -> FeatureRequest:
    """针对已上传 PDF / YouTube 视频的会话提问"""
    return FeatureRequest(
        type=feature_type,
        model=model,
        conversation_id=conversation_id,
        prompt_object={
            "prompt": prompt,
            "isMixed": False if is_mixed is None else is_mixed,
        },
    )


# ==================== Images ====================

def calculate_aspect_ratio(width: int, height: int) -> str:
    """
    由宽高计算宽高比字符串

    Examples:
        >>> calculate_aspect_ratio(1792, 1024)
        '7:4'
    """
    divisor = gcd(width, height) or 1
    return f"{width // divisor}:{height // divisor}"


def parse_size(size: str) -> Tuple[int, int]:
    width, height = size.lower().split("x", 1)
    return int(width), int(height)


def build_image_generation_request(
    model: str,
    prompt: str,
    num_outputs: Optional[int] = None,
    aspect_ratio: Optional[str] = None,
    output_format: Optional[str] = None,
    extra: Optional[Mapping[str, Any]] = None
) -> FeatureRequest:
    return FeatureRequest(
        type=FeatureType.IMAGE_GENERATOR,
        model=model,
        prompt_object=merge_extras({
            "prompt": prompt,
            "num_outputs": 1 if num_outputs is None else num_outputs,
            "aspect_ratio": aspect_ratio or "1:1",
            "output_format": output_format or "webp",
        }, extra),
    )


def build_image_variation_request(
    model: str,
    image_url: str,
    mode: Optional[str] = None,
    n: Optional[int] = None,
    aspect_width: Optional[int] = None,
    aspect_height: Optional[int] = None,
    maintain_moderation: Optional[bool] = None,
    extra: Optional[Mapping[str, Any]] = None
) -> FeatureRequest:
    return FeatureRequest(
        type=FeatureType.IMAGE_VARIATOR,
        model=model,
        prompt_object=merge_extras({
            "imageUrl": image_url,
            "mode": mode or "fast",
            "n": 4 if n is None else n,
            "aspect_width": 1 if aspect_width is None else aspect_width,
            "aspect_height": 1 if aspect_height is None else aspect_height,
            "maintainModeration": True if maintain_moderation is None else maintain_moderation,
        }, extra),
    )


def build_image_upscale_request(
    model: str,
    image_url: str,
    scale: Optional[int] = None,
    extra: Optional[Mapping[str, Any]] = None
) -> FeatureRequest:
    return FeatureRequest(
        type=FeatureType.IMAGE_UPSCALER,
        model=model,
        prompt_object=merge_extras({"imageUrl": image_url, "scale": 2 if scale is None else scale}, extra),
    )


def build_image_input_request(
    feature_type: FeatureType,
    model: str,
    image_url: str,
    extra: Optional[Mapping[str, Any]] = None
) -> FeatureRequest:
    """只需要 imageUrl 的图片功能：去背景、去文字、图生提示词"""
    return FeatureRequest(
        type=feature_type,
        model=model,
        prompt_object=merge_extras({"imageUrl": image_url}, extra),
    )


def build_background_replace_request(
    model: str,
    image_url: str,
    background_prompt: str,
    extra: Optional[Mapping[str, Any]] = None
) -> FeatureRequest:
    return FeatureRequest(
        type=FeatureType.BACKGROUND_REPLACER,
        model=model,
        prompt_object=merge_extras({"imageUrl": image_url, "backgroundPrompt": background_prompt}, extra),
    )


def build_object_replace_request(
    model: str,
    image_url: str,
    search_prompt: str,
    replace_prompt: str,
    extra: Optional[Mapping[str, Any]] = None
) -> FeatureRequest:
    return FeatureRequest(
        type=FeatureType.IMAGE_OBJECT_REPLACER,
        model=model,
        prompt_object=merge_extras({
            "imageUrl": image_url,
            "searchPrompt": search_prompt,
            "replacePrompt": replace_prompt,
        }, extra),
    )


# ==================== Audio ====================

def build_text_to_speech_request(
    model: str,
    text: str,
    voice: Optional[str] = None,
    extra: Optional[Mapping[str, Any]] = None
) -> FeatureRequest:
    return FeatureRequest(
        type=FeatureType.TEXT_TO_SPEECH,
        model=model,
        prompt_object=merge_extras({"text": text, "voice": voice}, extra),
    )


def build_speech_to_text_request(
    model: str,
    audio_url: str,
    language: Optional[str] = None,
    extra: Optional[Mapping[str, Any]] = None
) -> FeatureRequest:
    return FeatureRequest(
        type=FeatureType.SPEECH_TO_TEXT,
        model=model,
        prompt_object=merge_extras({"audioUrl": audio_url, "language": language}, extra),
    )


# ==================== Video ====================

def build_video_request(
    model: str,
    prompt: str,
    duration: Optional[float] = None,
    aspect_ratio: Optional[str] = None,
    extra: Optional[Mapping[str, Any]] = None
) -> FeatureRequest:
    return FeatureRequest(
        type=FeatureType.VIDEO_GENERATOR,
        model=model,
        prompt_object=merge_extras({
            "prompt": prompt,
            "duration": duration,
            "aspectRatio": aspect_ratio,
        }, extra),
    )


def build_image_to_video_request(
    model: str,
    image_url: str,
    motion: Optional[str] = None,
    duration: Optional[float] = None,
    extra: Optional[Mapping[str, Any]] = None
) -> FeatureRequest:
    return FeatureRequest(
        type=FeatureType.IMAGE_TO_VIDEO,
        model=model,
        prompt_object=merge_extras({
            "imageUrl": image_url,
            "motion": motion,
            "duration": duration,
        }, extra),
    )
