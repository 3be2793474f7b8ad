"""
图片相关 API 路由
"""
import time

from fastapi import APIRouter, Depends, Request

from onemin2api.api.dependencies import get_onemin_api, read_form_or_json, read_json_body, validate_with_upload
from onemin2api.errors import APIError
from onemin2api.models.registry import ModelCategory, resolve_model
from onemin2api.models.schemas import ImageGenerationRequest, ImageVariationRequest, validate_payload
from onemin2api.services import translators
from onemin2api.services.extractors import extract_urls, to_image_data
from onemin2api.services.onemin_client import OneMinAPI
from onemin2api.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/images", tags=["images"])


@router.post("/generations")
async def create_image(request: Request, api: OneMinAPI = Depends(get_onemin_api)):
    """Generate images from a prompt (OpenAI images API)."""
    try:
        body = validate_payload(ImageGenerationRequest, await read_json_body(request))
        upstream_model = resolve_model(body.model, ModelCategory.IMAGE)
        width, height = translators.parse_size(body.size)
        aspect_ratio = translators.calculate_aspect_ratio(width, height)

        logger.info(f"[images:generate] model={body.model} -> {upstream_model}, size={body.size}, n={body.n}")

        data = await api.features.generate_image(
            upstream_model,
            body.prompt,
            num_outputs=body.n,
            aspect_ratio=aspect_ratio,
            output_format="webp",
            extra={"quality": body.quality, "style": body.style},
        )
        urls = extract_urls(data, api.settings.asset_base_url)
        return {"created": int(time.time()), "data": to_image_data(urls, body.response_format)}

    except APIError:
        raise
    except Exception as e:
        logger.error(f"[images:generate] 图片生成失败: {e}", exc_info=True)
        raise APIError.wrap(e) from e


@router.post("/edits")
async def edit_image():
    """图片编辑：上游没有对应能力"""
    raise APIError.not_implemented("Image edits")


@router.post("/variations")
async def create_image_variation(request: Request, api: OneMinAPI = Depends(get_onemin_api)):
    """
    生成图片变体

    image 可以是 JSON 中的图片 URL，也可以是 multipart 上传的文件（先上传为资源）
    """
    try:
        fields, files = await read_form_or_json(request)
        body = await validate_with_upload(api, ImageVariationRequest, fields, files, "image", "image.png")
        upstream_model = resolve_model(body.model, ModelCategory.IMAGE)

        logger.info(f"[images:variations] model={body.model} -> {upstream_model}, n={body.n}")

        data = await api.features.image_variation(upstream_model, body.image, n=body.n, mode="fast")
        urls = extract_urls(data, api.settings.asset_base_url)
        return {"created": int(time.time()), "data": to_image_data(urls, body.response_format)}

    except APIError:
        raise
    except Exception as e:
        logger.error(f"[images:variations] 图片变体失败: {e}", exc_info=True)
        raise APIError.wrap(e) from e
