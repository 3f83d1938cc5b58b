"""
API endpoints для конфигурации
"""
import os
import logging

from fastapi import APIRouter, Depends, HTTPException

from ayurscan.config import settings
from ayurscan.dependencies import get_orchestrator
from ayurscan.schemas.config import ConfigRequest, ConfigResponse, ProviderInfo

logger = logging.getLogger(__name__)

router = APIRouter()


def _config_response(orchestrator) -> ConfigResponse:
    providers = [
        ProviderInfo(
            id=client.provider_id,
            label=client.label,
            model=client.config.model_name,
            configured=client.configured,
        )
        for client in orchestrator.clients.values()
    ]
    return ConfigResponse(
        success=True,
        primary_provider=orchestrator.primary_provider,
        provider_order=orchestrator.provider_order(),
        providers=providers,
    )


@router.get(
    "/config",
    response_model=ConfigResponse,
    summary="Получить конфигурацию",
    description="Основной провайдер, порядок fallback и статус ключей"
)
async def get_config(orchestrator=Depends(get_orchestrator)):
    return _config_response(orchestrator)


@router.post(
    "/config",
    response_model=ConfigResponse,
    summary="Сменить основной провайдер",
    description="Влияет только на анализы, начатые после смены. Текущие анализы не прерываются."
)
async def update_config(request: ConfigRequest, orchestrator=Depends(get_orchestrator)):
    """
    **Пример:**
    ```json
    {"primary_provider": "mistral"}
    ```
    """
    try:
        orchestrator.switch_provider(request.primary_provider)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _config_response(orchestrator)


@router.get(
    "/config/env-check",
    summary="Проверка переменных окружения",
    description="Диагностический эндпоинт для проверки доступности API ключей (без показа самих ключей)"
)
async def check_env_variables():
    """Статус ключей провайдеров без показа самих ключей"""
    env_vars = {
        "MISTRAL_API_KEY": {
            "available": bool(settings.mistral_api_key),
            "from_os_env": bool(os.getenv("MISTRAL_API_KEY")),
            "length": len(settings.mistral_api_key) if settings.mistral_api_key else 0
        },
        "GEMINI_API_KEY": {
            "available": bool(settings.gemini_api_key),
            "from_os_env": bool(os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")),
            "length": len(settings.gemini_api_key) if settings.gemini_api_key else 0
        },
        "HISTORY_PATH": {
            "available": True,
            "settings_value": settings.history_path
        },
    }
    return {
        "success": True,
        "message": "Проверка переменных окружения",
        "variables": env_vars,
    }
