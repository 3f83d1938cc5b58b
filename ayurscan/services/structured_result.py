"""
Сборка AnalysisReport из JSON ответа провайдера

Если JSON не удаётся разобрать, используется текстовый парсер,
поэтому build_structured никогда не бросает исключений.
"""
import json
import re
import logging
from typing import Dict, Optional

from pydantic import ValidationError

from ayurscan.schemas.report import AnalysisReport, SeverityLevel
from ayurscan.utils.parsing import parse_report

logger = logging.getLogger(__name__)

_CODE_FENCE_RE = re.compile(r'```[a-zA-Z]*')


class ParsingFailed(Exception):
    """JSON не найден или не соответствует схеме отчёта"""

    kind = "parsing_failed"
    user_message = "⚠️ Failed to parse response"


def extract_json_block(raw_text: str) -> Optional[str]:
    """Убирает markdown ограждения и берёт текст от первой { до последней }"""
    text = _CODE_FENCE_RE.sub('', raw_text or '')
    json_start = text.find("{")
    json_end = text.rfind("}") + 1
    if json_start >= 0 and json_end > json_start:
        return text[json_start:json_end]
    return None


def _first(data: Dict, *keys):
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return None


def _normalize_payload(data: Dict) -> Dict:
    """
    Приводит варианты JSON к полям AnalysisReport.

    Поддерживается вложенная форма:
    severity: {level, score, description}, observedCondition: {summary, details},
    ayurvedicRemedies: [...].
    """
    payload = dict(data)

    severity = payload.pop("severity", None)
    if isinstance(severity, dict):
        payload.setdefault("severity_level", severity.get("level"))
        payload.setdefault("severity_score", severity.get("score"))
        payload.setdefault("severity_description", severity.get("description") or "")
    elif isinstance(severity, str):
        payload.setdefault("severity_level", severity)

    observed = _first(payload, "observedCondition", "observed_condition")
    if isinstance(observed, dict):
        payload.pop("observedCondition", None)
        payload.pop("observed_condition", None)
        details = observed.get("details")
        details = list(details) if isinstance(details, list) else []
        summary = observed.get("summary")
        if summary:
            details.insert(0, summary)
        payload.setdefault("observations", details)

    remedies = _first(payload, "ayurvedicRemedies", "ayurvedic_remedies")
    if remedies is not None:
        payload.pop("ayurvedicRemedies", None)
        payload.pop("ayurvedic_remedies", None)
        payload.setdefault("remedies", remedies)

    level = _first(payload, "severity_level", "severityLevel")
    payload.pop("severityLevel", None)
    if level is not None:
        level = SeverityLevel.from_text(str(level))
        payload["severity_level"] = level

    score = _first(payload, "severity_score", "severityScore")
    payload.pop("severityScore", None)
    if isinstance(score, (int, float)) and not isinstance(score, bool):
        score = max(1, min(10, int(score)))
    elif isinstance(level, SeverityLevel):
        score = level.score
    else:
        score = None
    payload["severity_score"] = score

    conditions = _first(payload, "possible_conditions", "possibleConditions")
    if isinstance(conditions, list):
        payload.pop("possibleConditions", None)
        payload["possible_conditions"] = [_normalize_condition(c) for c in conditions]

    # Служебные поля задаются только сервером
    for key in ("raw_text", "rawText", "provider_used", "providerUsed", "disclaimer"):
        payload.pop(key, None)
    return payload


def _normalize_condition(condition):
    if not isinstance(condition, dict):
        return condition
    normalized = dict(condition)
    probability = normalized.get("probability")
    if isinstance(probability, str):
        match = re.search(r'\d+', probability)
        probability = int(match.group()) if match else 0
    if isinstance(probability, float) and 0 < probability <= 1:
        probability = round(probability * 100)
    if isinstance(probability, (int, float)):
        normalized["probability"] = max(0, min(100, int(probability)))
    return normalized


def decode_structured(raw_text: str) -> AnalysisReport:
    """Строгий разбор JSON; при ошибке бросает ParsingFailed"""
    block = extract_json_block(raw_text)
    if block is None:
        raise ParsingFailed("JSON не найден в ответе")
    try:
        data = json.loads(block)
    except (ValueError, RecursionError) as e:
        # JSONDecodeError наследует ValueError; RecursionError при слишком глубокой вложенности
        raise ParsingFailed(f"Ошибка парсинга JSON: {type(e).__name__}") from e
    if not isinstance(data, dict):
        raise ParsingFailed("JSON не является объектом")

    try:
        report = AnalysisReport.model_validate({**_normalize_payload(data), "raw_text": raw_text})
    except ValidationError as e:
        raise ParsingFailed(f"JSON не соответствует схеме отчёта: {e.error_count()} ошибок") from e
    except (ValueError, TypeError, RecursionError) as e:
        raise ParsingFailed(f"Неожиданная структура JSON: {type(e).__name__}") from e
    return report


def build_structured(raw_text: str) -> AnalysisReport:
    """JSON путь с откатом на текстовый парсер"""
    try:
        report = decode_structured(raw_text)
        logger.info("✅ Успешно распарсен JSON из ответа")
        return report
    except ParsingFailed as e:
        logger.warning(f"⚠️ {e}, пытаемся парсить текст")
        return parse_report(raw_text)
