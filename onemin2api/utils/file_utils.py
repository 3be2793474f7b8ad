"""
文件处理工具函数
上传到 1min.ai 资源接口前补全文件名和 Content-Type
"""
from typing import Optional

from onemin2api.utils.logger import get_logger

logger = get_logger(__name__)

EXTENSION_CONTENT_TYPES = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
    ".gif": "image/gif",
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".m4a": "audio/mp4",
    ".ogg": "audio/ogg",
    ".flac": "audio/flac",
    ".webm": "audio/webm",
    ".mp4": "video/mp4",
    ".pdf": "application/pdf",
}

CONTENT_TYPE_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
    "image/gif": ".gif",
    "audio/mpeg": ".mp3",
    "audio/mp3": ".mp3",
    "audio/wav": ".wav",
    "audio/x-wav": ".wav",
    "audio/mp4": ".m4a",
    "audio/ogg": ".ogg",
    "audio/flac": ".flac",
    "audio/webm": ".webm",
    "video/mp4": ".mp4",
    "application/pdf": ".pdf",
}


def guess_content_type(file_name: str, default: Optional[str] = None) -> Optional[str]:
    """
    根据文件名猜测 Content-Type

    Args:
        file_name: 文件名
        default: 无法识别时的返回值

    Returns:
        Content-Type字符串
    """
    lowered = file_name.lower()
    for extension, content_type in EXTENSION_CONTENT_TYPES.items():
        if lowered.endswith(extension):
            return content_type
    return default


def get_file_extension_from_content_type(content_type: Optional[str], default: str = "") -> str:
    """根据 content_type 返回对应的文件扩展名（包含点号）"""
    if not content_type:
        return default
    return CONTENT_TYPE_EXTENSIONS.get(content_type.split(";", 1)[0].strip().lower(), default)


def resolve_upload_meta(
    filename: Optional[str],
    content_type: Optional[str],
    fallback_filename: str,
):
    """
    补全上传文件的文件名和 Content-Type

    客户端没给文件名时用 fallback 的主干名加上由 Content-Type 推断的扩展名；
    没给 Content-Type（或是 application/octet-stream）时由文件名推断

    Returns:
        (filename, content_type)，content_type 可能仍为 None
    """
    if not filename:
        stem, dot, ext = fallback_filename.rpartition(".")
        if not dot:
            stem, ext = fallback_filename, ""
        extension = get_file_extension_from_content_type(content_type, f".{ext}" if ext else "")
        filename = f"{stem}{extension}"

    if not content_type or content_type == "application/octet-stream":
        guessed = guess_content_type(filename)
        if guessed:
            logger.debug(f"由文件名推断 Content-Type: {filename} -> {guessed}")
            content_type = guessed

    return filename, content_type
