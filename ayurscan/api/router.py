"""
Главный роутер для объединения всех API endpoints
"""
from fastapi import APIRouter

from ayurscan.api import analyze, config, health, history

router = APIRouter()

# Подключаем все роутеры
router.include_router(health.router, prefix="/api", tags=["health"])
router.include_router(analyze.router, prefix="/api", tags=["analyze"])
router.include_router(history.router, prefix="/api", tags=["history"])
router.include_router(config.router, prefix="/api", tags=["config"])
