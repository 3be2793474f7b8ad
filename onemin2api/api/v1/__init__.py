"""
API v1 路由模块（OpenAI 兼容）
"""
from fastapi import APIRouter
from . import audio, chat, embeddings, images, models
router = APIRouter(prefix="/v1")

router.include_router(chat.router)
router.include_router(images.router)
router.include_router(audio.router)
router.include_router(embeddings.router)
router.include_router(models.router)
