"""
Pydantic схемы для endpoint /api/analyze
"""
from typing import Dict, List, Optional
from pydantic import BaseModel, Field

from ayurscan.schemas.report import AnalysisReport


class AnalyzeRequest(BaseModel):
    """Схема запроса на анализ кожи"""
    image: str = Field(..., min_length=1, description="Base64 encoded image или data URI")
    structured: bool = Field(False, description="Просить у провайдера JSON вместо текстового отчёта")
    save_to_history: bool = Field(True, description="Сохранить результат в историю")
    session_id: Optional[str] = Field(
        None,
        min_length=1,
        max_length=64,
        description="Идентификатор сессии клиента; без него каждый запрос выполняется в отдельной сессии",
    )


class AnalyzeResponse(BaseModel):
    """Схема ответа на анализ кожи"""
    success: bool
    report: Optional[AnalysisReport] = None
    history_id: Optional[str] = None
    provider: Optional[str] = None


class AnalyzeErrorDetail(BaseModel):
    """Тело ошибки, когда ни один провайдер не ответил"""
    message: str
    kind: str
    attempts: List[Dict] = Field(default_factory=list)
