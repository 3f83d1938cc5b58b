"""
Pydantic схемы истории анализов
"""
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from ayurscan.schemas.report import AnalysisReport, SeverityLevel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class HistoryEntry(BaseModel):
    """Сохранённый анализ: исходный текст отчёта и производные поля для списка"""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    image_thumbnail: Optional[str] = Field(None, description="Base64 JPEG миниатюра")
    raw_text: str
    timestamp: datetime = Field(default_factory=_utcnow)
    severity_level: Optional[SeverityLevel] = None
    top_condition_probability: Optional[int] = Field(None, ge=0, le=100)
    condition_detected: Optional[str] = None
    provider_used: Optional[str] = None

    @field_validator("timestamp")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Записи без часового пояса считаем UTC, иначе их нельзя сортировать вместе
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @classmethod
    def from_report(cls, report: AnalysisReport, image_thumbnail: Optional[str] = None) -> "HistoryEntry":
        top = report.top_condition
        return cls(
            image_thumbnail=image_thumbnail,
            raw_text=report.raw_text,
            severity_level=report.severity_level,
            top_condition_probability=top.probability if top else None,
            condition_detected=top.name if top else None,
            provider_used=report.provider_used,
        )

    @property
    def preview(self) -> str:
        """Первые 100 символов отчёта без разметки"""
        cleaned = " ".join(self.raw_text.replace("**", "").split())
        if len(cleaned) > 100:
            return cleaned[:100] + "..."
        return cleaned


class HistoryListResponse(BaseModel):
    """Схема ответа со списком анализов"""
    success: bool
    total: int
    items: List[HistoryEntry]


class HistoryImportResponse(BaseModel):
    success: bool
    imported: int
    total: int
