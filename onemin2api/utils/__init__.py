"""
工具函数模块
"""
from .http_client import build_headers, build_timeout, create_async_client, close_async_client
from .file_utils import (
    guess_content_type,
    get_file_extension_from_content_type,
    resolve_upload_meta,
)
from .logger import get_logger, configure_root_logger, format_fields, log_request

__all__ = [
    'build_headers',
    'build_timeout',
    'create_async_client',
    'close_async_client',
    'guess_content_type',
    'get_file_extension_from_content_type',
    'resolve_upload_meta',
    'get_logger',
    'configure_root_logger',
    'format_fields',
    'log_request',
]
