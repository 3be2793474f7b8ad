"""
模型别名映射表

对外暴露稳定的（类 OpenAI）模型名，内部映射为 1min.ai 的模型 ID。
未知别名原样透传，方便直接使用上游模型 ID。
"""
from enum import Enum
from typing import Dict, List, Optional


class ModelCategory(str, Enum):
    """模型类别"""
    CHAT = "chat"
    IMAGE = "image"
    AUDIO = "audio"
    VIDEO = "video"


class FeatureType(str, Enum):
    """1min.ai 功能类型（请求体中的 type 字段）"""
    # Chat
    CHAT_WITH_AI = "CHAT_WITH_AI"
    CHAT_WITH_IMAGE = "CHAT_WITH_IMAGE"
    CHAT_WITH_PDF = "CHAT_WITH_PDF"
    CHAT_WITH_YOUTUBE_VIDEO = "CHAT_WITH_YOUTUBE_VIDEO"
    # Image
    IMAGE_GENERATOR = "IMAGE_GENERATOR"
    IMAGE_VARIATOR = "IMAGE_VARIATOR"
    IMAGE_UPSCALER = "IMAGE_UPSCALER"
    IMAGE_TO_PROMPT = "IMAGE_TO_PROMPT"
    BACKGROUND_REMOVER = "BACKGROUND_REMOVER"
    BACKGROUND_REPLACER = "BACKGROUND_REPLACER"
    TEXT_REMOVER = "TEXT_REMOVER"
    IMAGE_OBJECT_REPLACER = "IMAGE_OBJECT_REPLACER"
    IMAGE_TEXT_EDITOR = "IMAGE_TEXT_EDITOR"
    # Audio
    TEXT_TO_SPEECH = "TEXT_TO_SPEECH"
    SPEECH_TO_TEXT = "SPEECH_TO_TEXT"
    # Video
    VIDEO_GENERATOR = "VIDEO_GENERATOR"
    IMAGE_TO_VIDEO = "IMAGE_TO_VIDEO"


CHAT_FEATURE_TYPES = (
    FeatureType.CHAT_WITH_AI,
    FeatureType.CHAT_WITH_IMAGE,
    FeatureType.CHAT_WITH_PDF,
    FeatureType.CHAT_WITH_YOUTUBE_VIDEO,
)


CHAT_MODELS: Dict[str, str] = {
    # Claude
    'claude-3-5-haiku-20241022': 'claude-3-5-haiku-20241022',
    'claude-3-5-sonnet-20241022': 'claude-3-5-sonnet-20241022',
    'claude-3-opus-20240229': 'claude-3-opus-20240229',
    'claude-haiku': 'claude-3-5-haiku-20241022',
    'claude-sonnet': 'claude-3-5-sonnet-20241022',
    'claude-opus': 'claude-3-opus-20240229',
    # GPT
    'gpt-4o': 'gpt-4o',
    'gpt-4o-mini': 'gpt-4o-mini',
    'gpt-4-turbo': 'gpt-4-turbo',
    'gpt-4': 'gpt-4',
    'gpt-3.5-turbo': 'gpt-3.5-turbo',
    'o1': 'o1',
    'o1-mini': 'o1-mini',
    'o1-preview': 'o1-preview',
    'o3-mini': 'o3-mini',
    # Gemini
    'gemini-pro': 'gemini-1.5-pro',
    'gemini-1.5-pro': 'gemini-1.5-pro',
    'gemini-1.5-flash': 'gemini-1.5-flash',
    'gemini-2.0-flash': 'gemini-2.0-flash-exp',
    'gemini-2.5-flash': 'gemini-2.5-flash-preview-04-17',
    'gemini-2.5-pro': 'gemini-2.5-pro-exp-03-25',
    # Mistral
    'mistral-large': 'mistral-large-latest',
    'mistral-medium': 'mistral-medium-latest',
    'mistral-small': 'mistral-small-latest',
    'codestral': 'codestral-latest',
    'pixtral-large': 'pixtral-large-latest',
    # Llama
    'llama-3.1-405b': 'llama-3.1-405b-instruct',
    'llama-3.1-70b': 'llama-3.1-70b-instruct',
    'llama-3.1-8b': 'llama-3.1-8b-instruct',
    'llama-3.3-70b': 'llama-3.3-70b-instruct',
    # DeepSeek
    'deepseek-chat': 'deepseek-chat',
    'deepseek-reasoner': 'deepseek-reasoner',
    'deepseek-coder': 'deepseek-coder',
    # Qwen
    'qwen-max': 'qwen-max',
    'qwen-plus': 'qwen-plus',
    'qwen-turbo': 'qwen-turbo',
    'qwen-coder': 'qwen-coder-turbo',
    # Grok
    'grok-2': 'grok-2-latest',
    'grok-beta': 'grok-beta',
    # Perplexity
    'perplexity-online': 'llama-3.1-sonar-huge-128k-online',
    'perplexity-sonar': 'llama-3.1-sonar-large-128k-online',
}

IMAGE_MODELS: Dict[str, str] = {
    # DALL-E
    'dall-e-3': 'dall-e-3',
    'dall-e-2': 'dall-e-2',
    # Flux
    'flux-pro': 'black-forest-labs/flux-pro',
    'flux-pro-1.1': 'black-forest-labs/flux-1.1-pro',
    'flux-pro-ultra': 'black-forest-labs/flux-1.1-pro-ultra',
    'flux-dev': 'black-forest-labs/flux-dev',
    'flux-schnell': 'black-forest-labs/flux-schnell',
    # Stable Diffusion
    'sdxl': 'stability-ai/stable-diffusion-xl-1024-v1-0',
    'sd-core': 'stability-ai/stable-image-core',
    'sd-ultra': 'stability-ai/stable-image-ultra',
    # Leonardo
    'leonardo-phoenix': 'leonardo-ai/phoenix',
    'leonardo-lightning': 'leonardo-ai/lightning-xl',
    'leonardo-anime': 'leonardo-ai/anime-xl',
    'leonardo-diffusion': 'leonardo-ai/diffusion-xl',
    'leonardo-kino': 'leonardo-ai/kino-xl',
    'leonardo-vision': 'leonardo-ai/vision-xl',
    # Magic Art
    'magic-art': 'magic-art',
    'magic-art-5.2': 'magic-art-5.2',
    'magic-art-6.1': 'magic-art-6.1',
    'magic-art-7.0': 'magic-art-7.0',
    # Recraft
    'recraft': 'recraft-v3',
    # GPT Image
    'gpt-image-1': 'gpt-image-1',
    'gpt-image-1-mini': 'gpt-image-1-mini',
    # 其他厂商
    'gemini-image': 'gemini-2.0-flash-exp-image',
    'grok-image': 'grok-2-image',
    'qwen-image': 'qwen-vl-max',
}

AUDIO_MODELS: Dict[str, str] = {
    # TTS
    'tts-1': 'tts-1',
    'tts-1-hd': 'tts-1-hd',
    'elevenlabs': 'elevenlabs-v1',
    # STT
    'whisper-1': 'whisper-1',
    'whisper-large': 'whisper-large-v3',
}

VIDEO_MODELS: Dict[str, str] = {
    'runway-gen3': 'runway-gen3-turbo',
    'luma': 'luma-dream-machine',
    'kling': 'kling-v1',
    'minimax': 'minimax-video-01',
    'haiper': 'haiper-video-2',
    'pika': 'pika-1.0',
}

MODEL_TABLES: Dict[ModelCategory, Dict[str, str]] = {
    ModelCategory.CHAT: CHAT_MODELS,
    ModelCategory.IMAGE: IMAGE_MODELS,
    ModelCategory.AUDIO: AUDIO_MODELS,
    ModelCategory.VIDEO: VIDEO_MODELS,
}


def _table_for(category) -> Dict[str, str]:
    try:
        return MODEL_TABLES[ModelCategory(category)]
    except ValueError:
        return CHAT_MODELS


def resolve_model(alias: str, category=ModelCategory.CHAT) -> str:
    """
    把对外模型名解析为上游模型 ID

    Args:
        alias: 对外暴露的模型名
        category: 模型类别，未知类别按 chat 处理

    Returns:
        上游模型 ID；未知别名原样返回，不会抛错

    Examples:
        >>> resolve_model("claude-haiku")
        'claude-3-5-haiku-20241022'
        >>> resolve_model("my-custom-model", "image")
        'my-custom-model'
    """
    return _table_for(category).get(alias, alias)


def get_all_models() -> Dict[str, List[str]]:
    """按类别列出所有已知别名"""
    return {category.value: list(table.keys()) for category, table in MODEL_TABLES.items()}


def find_model(alias: str) -> Optional[ModelCategory]:
    """返回别名所属的类别，未知返回 None"""
    for category, table in MODEL_TABLES.items():
        if alias in table:
            return category
    return None
