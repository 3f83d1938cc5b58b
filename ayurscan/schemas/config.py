"""
Pydantic схемы для endpoint /api/config
"""
from typing import List
from pydantic import BaseModel

from ayurscan.services.provider_client import ProviderId


class ConfigRequest(BaseModel):
    """Схема запроса на смену основного провайдера"""
    primary_provider: ProviderId


class ProviderInfo(BaseModel):
    """Информация о провайдере"""
    id: ProviderId
    label: str
    model: str
    configured: bool


class ConfigResponse(BaseModel):
    """Схема ответа с конфигурацией"""
    success: bool
    primary_provider: ProviderId
    provider_order: List[ProviderId]
    providers: List[ProviderInfo]
