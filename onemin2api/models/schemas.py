"""
Pydantic 数据模型定义

入站请求的结构与语义校验，独立于翻译逻辑
"""
from typing import Any, Dict, List, Literal, Optional, Type, TypeVar, Union
from urllib.parse import urlparse

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from onemin2api.errors import APIError
from onemin2api.models.registry import FeatureType

T = TypeVar("T", bound=BaseModel)


# ==================== Chat ====================

class ImageURL(BaseModel):
    url: str

    @field_validator("url")
    @classmethod
    def check_url(cls, v: str) -> str:
        # 允许 http(s) 链接和 data: URL，原文保留
        parsed = urlparse(v)
        if parsed.scheme == "data" or (parsed.scheme in ("http", "https") and parsed.netloc):
            return v
        raise ValueError("must be a valid URL")


class TextContentPart(BaseModel):
    type: Literal["text"]
    text: str


class ImageContentPart(BaseModel):
    type: Literal["image_url"]
    image_url: ImageURL


ContentPart = Union[TextContentPart, ImageContentPart]


class ChatMessage(BaseModel):
    """聊天消息模型"""
    role: Literal["system", "user", "assistant"]
    content: Union[str, List[ContentPart]]  # 支持文本或多模态内容（文本+图片）


class ChatCompletionRequest(BaseModel):
    """聊天完成请求模型"""
    model: str = Field(min_length=1)
    messages: List[ChatMessage] = Field(min_length=1)
    stream: bool = False
    temperature: Optional[float] = Field(default=None, ge=0, le=2)
    max_tokens: Optional[int] = Field(default=None, gt=0)
    top_p: Optional[float] = Field(default=None, ge=0, le=1)
    frequency_penalty: Optional[float] = Field(default=None, ge=-2, le=2)
    presence_penalty: Optional[float] = Field(default=None, ge=-2, le=2)
    conversation_id: Optional[str] = None  # 上游会话ID，透传为 conversationId


# ==================== Images ====================

class ImageGenerationRequest(BaseModel):
    model: str = "dall-e-3"
    prompt: str = Field(min_length=1, max_length=4000)
    n: int = Field(default=1, ge=1, le=10)
    size: Literal["256x256", "512x512", "1024x1024", "1792x1024", "1024x1792"] = "1024x1024"
    quality: Literal["standard", "hd"] = "standard"
    style: Literal["vivid", "natural"] = "vivid"
    response_format: Literal["url", "b64_json"] = "url"


class ImageVariationRequest(BaseModel):
    # 图片 URL，或 multipart 上传后得到的资源路径
    image: str = Field(min_length=1)
    model: str = "dall-e-2"
    n: int = Field(default=1, ge=1, le=10)
    size: Literal["256x256", "512x512", "1024x1024"] = "1024x1024"
    response_format: Literal["url", "b64_json"] = "url"


# ==================== Audio ====================

class SpeechRequest(BaseModel):
    model: str = "tts-1"
    input: str = Field(min_length=1, max_length=4096)
    voice: Literal["alloy", "echo", "fable", "onyx", "nova", "shimmer"] = "alloy"
    response_format: Literal["mp3", "opus", "aac", "flac", "wav", "pcm"] = "mp3"
    speed: float = Field(default=1.0, ge=0.25, le=4.0)


class TranscriptionRequest(BaseModel):
    file: str = Field(min_length=1)
    model: str = "whisper-1"
    language: Optional[str] = Field(default=None, min_length=2, max_length=2)
    prompt: Optional[str] = None
    response_format: Literal["json", "text", "srt", "vtt"] = "json"


class TranslationRequest(BaseModel):
    file: str = Field(min_length=1)
    model: str = "whisper-1"
    prompt: Optional[str] = None
    response_format: Literal["json", "text"] = "json"


# ==================== Models ====================

class ModelInfo(BaseModel):
    """模型信息模型"""
    id: str
    object: str = "model"
    created: int
    owned_by: str
    permission: List[Any] = Field(default_factory=list)
    root: str
    parent: Optional[str] = None


class ModelsResponse(BaseModel):
    """模型列表响应模型"""
    object: str = "list"
    data: List[ModelInfo]


# ==================== Native API ====================

class NativeModel(BaseModel):
    """原生接口使用 camelCase 字段名"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ConversationCreateRequest(NativeModel):
    type: Literal["CHAT_WITH_AI", "CHAT_WITH_IMAGE", "CHAT_WITH_PDF", "CHAT_WITH_YOUTUBE_VIDEO"]
    title: Optional[str] = None
    model: Optional[str] = None
    file_list: Optional[List[str]] = None
    youtube_url: Optional[AnyHttpUrl] = None


class FeatureRequestBody(NativeModel):
    type: FeatureType
    model: str
    conversation_id: Optional[str] = None
    prompt_object: Dict[str, Any]


class NativeFeatureBody(NativeModel):
    model: str = Field(min_length=1)
    extra: Dict[str, Any] = Field(default_factory=dict)


class ChatDocumentBody(NativeFeatureBody):
    prompt: str = Field(min_length=1)
    conversation_id: str = Field(min_length=1)
    is_mixed: Optional[bool] = None


class ImageGenerateBody(NativeFeatureBody):
    prompt: str = Field(min_length=1)
    num_outputs: Optional[int] = Field(default=None, ge=1)
    aspect_ratio: Optional[str] = None
    output_format: Optional[str] = None


class ImageInputBody(NativeFeatureBody):
    image_url: str = Field(min_length=1)


class ImageVariationBody(ImageInputBody):
    mode: Optional[str] = None
    n: Optional[int] = Field(default=None, ge=1)
    aspect_width: Optional[int] = None
    aspect_height: Optional[int] = None
    maintain_moderation: Optional[bool] = None


class ImageUpscaleBody(ImageInputBody):
    scale: Optional[int] = Field(default=None, ge=1)


class BackgroundReplaceBody(ImageInputBody):
    new_background: str = Field(min_length=1)


class ObjectReplaceBody(ImageInputBody):
    search_prompt: str = Field(min_length=1)
    replace_prompt: str = Field(min_length=1)


class TextToSpeechBody(NativeFeatureBody):
    text: str = Field(min_length=1)
    voice: Optional[str] = None


class SpeechToTextBody(NativeFeatureBody):
    audio_url: str = Field(min_length=1)
    language: Optional[str] = None


class VideoGenerateBody(NativeFeatureBody):
    prompt: str = Field(min_length=1)
    duration: Optional[float] = None
    aspect_ratio: Optional[str] = None


class ImageToVideoBody(ImageInputBody):
    motion: Optional[str] = None
    duration: Optional[float] = None


def validate_payload(schema: Type[T], data: Any, message: str = "Invalid request body") -> T:
    """
    用 schema 校验请求体

    Raises:
        APIError: 校验失败（400），details 中带字段级错误
    """
    try:
        return schema.model_validate(data)
    except PydanticValidationError as e:
        raise APIError.validation(
            message,
            details=e.errors(include_url=False, include_context=False, include_input=False),
        ) from e
