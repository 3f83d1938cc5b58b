"""
Pydantic схемы разобранного отчёта анализа кожи
"""
from enum import Enum
from typing import List, Optional

from pydantic import AliasGenerator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ayurscan.utils.constants import DEFAULT_SEVERITY, SEVERITY_SCORES


class SeverityLevel(str, Enum):
    """Уровень тяжести состояния кожи"""
    HEALTHY = "Healthy"
    MILD = "Mild"
    MODERATE = "Moderate"
    SEVERE = "Severe"

    @classmethod
    def from_text(cls, value: Optional[str]) -> "SeverityLevel":
        """Нестрогое сопоставление; нераспознанный текст считается Mild"""
        text = (value or "").strip().lower()
        for level in cls:
            if level.value.lower() in text:
                return level
        return cls(DEFAULT_SEVERITY)

    @property
    def score(self) -> int:
        return SEVERITY_SCORES[self.value]


class _ReportModel(BaseModel):
    """Общая конфигурация: неизменяемые модели, snake_case и camelCase ключи"""
    model_config = ConfigDict(
        frozen=True,
        alias_generator=AliasGenerator(validation_alias=to_camel),
        populate_by_name=True,
    )


class PossibleCondition(_ReportModel):
    """Возможное заболевание с вероятностью от модели"""
    name: str
    probability: int = Field(0, ge=0, le=100)
    description: str = ""


class AyurvedicRemedy(_ReportModel):
    """Аюрведическое средство"""
    name: str
    ingredients: List[str] = Field(default_factory=list)
    instructions: str = ""
    benefits: str = ""


class AnalysisReport(_ReportModel):
    """
    Разобранный отчёт анализа.

    Создаётся один раз на успешный анализ и больше не меняется.
    Отчёт с пустыми структурными полями и заполненным raw_text валиден:
    клиент в этом случае показывает исходный текст.
    """
    severity_level: Optional[SeverityLevel] = None
    severity_score: Optional[int] = Field(None, ge=1, le=10)
    severity_description: str = ""
    observations: List[str] = Field(default_factory=list)
    possible_conditions: List[PossibleCondition] = Field(default_factory=list)
    recommended_actions: List[str] = Field(default_factory=list)
    remedies: List[AyurvedicRemedy] = Field(default_factory=list)
    skincare_tips: List[str] = Field(default_factory=list)
    raw_text: str = ""
    provider_used: Optional[str] = None

    @property
    def top_condition(self) -> Optional[PossibleCondition]:
        """Первое заболевание в порядке ответа модели"""
        return self.possible_conditions[0] if self.possible_conditions else None

    @property
    def has_structured_content(self) -> bool:
        return any([
            self.severity_level is not None,
            self.observations,
            self.possible_conditions,
            self.recommended_actions,
            self.remedies,
            self.skincare_tips,
        ])

    def with_provider(self, provider_id: str) -> "AnalysisReport":
        """Копия отчёта с указанием провайдера"""
        return self.model_copy(update={"provider_used": provider_id})
