"""
Embeddings 路由：上游不提供向量能力，始终返回 501
"""
from fastapi import APIRouter

from onemin2api.errors import APIError

router = APIRouter(tags=["embeddings"])


@router.post("/embeddings")
async def create_embeddings():
    raise APIError.not_implemented("Embeddings")
