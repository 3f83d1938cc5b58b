"""
Health check и диагностические эндпоинты
"""
import logging
import time
from typing import Dict

from fastapi import APIRouter

from ayurscan.config import settings
from ayurscan.dependencies import HEIC_SUPPORT
from ayurscan.utils.constants import APP_NAME, APP_VERSION

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/health",
    summary="Health check",
    description="Проверка работоспособности API"
)
async def health_check() -> Dict:
    return {
        "status": "healthy",
        "service": f"{APP_NAME} API",
        "version": APP_VERSION,
        "timestamp": time.time()
    }


@router.get(
    "/health/detailed",
    summary="Детальная проверка здоровья",
    description="Проверка работоспособности всех компонентов системы"
)
async def detailed_health_check() -> Dict:
    """
    Детальная проверка здоровья всех компонентов

    Сервис считается degraded, если не настроен ни один провайдер:
    без ключа провайдер отвечает Unauthorized без сетевого запроса.
    """
    api_keys = {
        "mistral": {
            "available": bool(settings.mistral_api_key),
            "status": "ok" if settings.mistral_api_key else "missing"
        },
        "gemini": {
            "available": bool(settings.gemini_api_key),
            "status": "ok" if settings.gemini_api_key else "missing"
        },
    }
    health_status = {
        "status": "healthy",
        "service": f"{APP_NAME} API",
        "version": APP_VERSION,
        "timestamp": time.time(),
        "components": {
            "api_keys": api_keys,
            "primary_provider": settings.primary_provider,
            "heic_support": HEIC_SUPPORT,
            "server": {
                "host": settings.host,
                "port": settings.port,
                "status": "ok"
            }
        }
    }

    if not any(key["available"] for key in api_keys.values()):
        health_status["status"] = "degraded"
        health_status["message"] = "Не настроен ни один провайдер"

    return health_status
