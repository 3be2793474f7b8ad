"""
API 依赖项
"""
import json
from typing import Any, Dict, Optional, Tuple, Type, TypeVar

from fastapi import Depends, Header, Request
from pydantic import BaseModel
from starlette.datastructures import UploadFile

from onemin2api.config import Settings
from onemin2api.errors import APIError
from onemin2api.models.schemas import validate_payload
from onemin2api.services.extractors import extract_asset_reference
from onemin2api.services.onemin_client import OneMinAPI
from onemin2api.utils.file_utils import resolve_upload_meta
from onemin2api.utils.logger import get_logger

logger = get_logger(__name__)

FORM_CONTENT_TYPES = ("multipart/form-data", "application/x-www-form-urlencoded")

ModelT = TypeVar("ModelT", bound=BaseModel)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def resolve_api_key(
    request: Request,
    authorization: Optional[str] = Header(None, alias="Authorization"),
    x_api_key: Optional[str] = Header(None, alias="X-API-Key"),
) -> str:
    """
    解析本次请求使用的 1min.ai API Key

    支持三种来源（按优先级）：
    1. Authorization: Bearer <token> (OpenAI 兼容格式)
    2. X-API-Key: <token> (备用方式)
    3. 配置中的 ONEMIN_API_KEY

    Returns:
        str: API Key，原样转发给上游

    Raises:
        APIError: 三处都没有时返回 401，此时不会发起任何上游请求
    """
    api_key = None
    if authorization:
        scheme, _, token = authorization.partition(" ")
        if scheme.lower() == "bearer" and token.strip():
            api_key = token.strip()

    if not api_key and x_api_key:
        api_key = x_api_key.strip() or None

    if not api_key:
        api_key = get_settings(request).onemin_api_key

    if not api_key:
        logger.warning(f"请求缺少 API Key: {request.method} {request.url.path}")
        raise APIError.authentication(
            "Missing API key. Provide it via the Authorization header (Bearer token) "
            "or configure ONEMIN_API_KEY."
        )
    return api_key


async def get_onemin_api(request: Request, api_key: str = Depends(resolve_api_key)) -> OneMinAPI:
    """按请求绑定 API Key，复用应用级的连接池"""
    return OneMinAPI(api_key, get_settings(request), request.app.state.http_client)


async def read_json_body(request: Request) -> Any:
    """读取 JSON 请求体，空请求体视为 {}"""
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise APIError.validation("Invalid JSON body", details=[{"msg": str(e)}]) from e


def is_form_request(request: Request) -> bool:
    content_type = request.headers.get("content-type", "")
    return content_type.split(";", 1)[0].strip().lower() in FORM_CONTENT_TYPES


async def read_form_or_json(request: Request) -> Tuple[Dict[str, Any], Dict[str, UploadFile]]:
    """
    读取表单或 JSON 请求体

    Returns:
        (字段字典, 上传文件字典)；JSON 请求的文件字典为空
    """
    if not is_form_request(request):
        body = await read_json_body(request)
        if not isinstance(body, dict):
            raise APIError.validation("Request body must be a JSON object")
        return body, {}

    form = await request.form()
    fields: Dict[str, Any] = {}
    files: Dict[str, UploadFile] = {}
    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            files[key] = value
        else:
            fields[key] = value
    return fields, files


async def upload_to_asset(api: OneMinAPI, upload: UploadFile, default_filename: str) -> str:
    """
    上传文件到 1min.ai 并返回资源引用

    Raises:
        APIError: 上传失败，或上传成功但响应里没有可用的资源引用
    """
    content = await upload.read()
    filename, content_type = resolve_upload_meta(upload.filename, upload.content_type, default_filename)
    uploaded = await api.assets.upload(content, filename, content_type)
    reference = extract_asset_reference(uploaded)
    if not reference:
        logger.error(f"❌ 资源上传响应中没有 fileContent.path 或 asset.key: filename={filename}")
        raise APIError.upstream(502, "Asset upload returned no usable reference")
    logger.info(f"[assets:upload] ✅ filename={filename}, reference={reference}")
    return reference


async def validate_with_upload(
    api: OneMinAPI,
    schema: Type[ModelT],
    fields: Dict[str, Any],
    files: Dict[str, UploadFile],
    field: str,
    default_filename: str,
) -> ModelT:
    """
    校验请求体，校验通过后再上传文件并把资源引用填回 field

    上传前先用文件名占位通过必填校验，非法请求不会在上游产生资源
    """
    upload = files.get(field)
    if upload is not None:
        fields[field] = upload.filename or default_filename
    body = validate_payload(schema, fields)
    if upload is not None:
        reference = await upload_to_asset(api, upload, default_filename)
        body = body.model_copy(update={field: reference})
    return body
