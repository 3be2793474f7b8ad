"""
模型相关 API 路由
"""
import time

from fastapi import APIRouter, Depends

from onemin2api.api.dependencies import resolve_api_key
from onemin2api.errors import APIError
from onemin2api.models.registry import find_model, get_all_models
from onemin2api.models.schemas import ModelInfo, ModelsResponse
from onemin2api.utils.logger import get_logger

logger = get_logger(__name__)
router = APIRouter(tags=["models"], dependencies=[Depends(resolve_api_key)])

OWNED_BY = "1min-proxy"


def _model_info(alias: str, created: int) -> ModelInfo:
    return ModelInfo(id=alias, created=created, owned_by=OWNED_BY, root=alias)


@router.get("/models", response_model=ModelsResponse)
async def list_models():
    """
    Get available models endpoint compatible with OpenAI API format.
    """
    created = int(time.time())
    data = [
        _model_info(alias, created)
        for aliases in get_all_models().values()
        for alias in aliases
    ]
    return ModelsResponse(data=data)


@router.get("/models/{model}", response_model=ModelInfo)
async def get_model(model: str):
    """查询单个模型，别名表中不存在时返回 404"""
    category = find_model(model)
    if category is None:
        logger.info(f"[models:get] 未知模型: {model}")
        raise APIError.not_found(f"Model '{model}'")
    return _model_info(model, int(time.time()))
