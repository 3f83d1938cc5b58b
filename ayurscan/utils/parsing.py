"""
Утилиты для парсинга текстового отчёта LLM в AnalysisReport

Формат текста задаётся ANALYSIS_PROMPT; таблица заголовков SECTION_PATTERNS
должна оставаться с ним согласованной.
"""
import re
import logging
from typing import Dict, List, Optional, Tuple

from ayurscan.schemas.report import AnalysisReport, AyurvedicRemedy, PossibleCondition, SeverityLevel
from ayurscan.utils.constants import REMEDY_NAME_MAX_LENGTH, SECTION_PATTERNS

logger = logging.getLogger(__name__)

_DIVIDER_RE = re.compile(r'^[\s━─═―_=~\-–—·.*]+$')
_BULLET_RE = re.compile(r'^(?:[•▸►▪●◦‣]|[-*]\s|\d{1,2}[.)]\s)')
_LEADING_MARKER_RE = re.compile(r'^(?:[•▸►▪●◦‣]\s*|[-*]\s+|\d{1,2}[.)]\s+)+')
_PERCENT_RE = re.compile(r'(\d+)\s?%')
_PERCENT_PHRASE_RE = re.compile(
    r'\(?\s*(?:likelihood|probability|confidence|chance)?\s*:?\s*\d+\s?%'
    r'\s*(?:likely|likelihood|probability|chance|match)?\s*\)?',
    re.IGNORECASE,
)
_SEPARATOR_RE = re.compile(r'\s+[-–—]\s+')
_REMEDY_FIELD_RE = re.compile(
    r'^(ingredients?|how to use|instructions?|usage|directions|method|benefits?)\s*:\s*(.*)$',
    re.IGNORECASE,
)
_LIST_SPLIT_RE = re.compile(r'\s*[,;+]\s*|\s+and\s+')


def is_divider(line: str) -> bool:
    """Декоративные разделители (━━━, ___, ---) пропускаются"""
    return '━━' in line or '___' in line or bool(_DIVIDER_RE.match(line))


def clean_line(line: str) -> str:
    """Убирает маркеры списков, жирный шрифт и нумерацию вида '1.'"""
    text = line.strip().replace('**', '')
    text = text.lstrip('#').strip()
    text = _LEADING_MARKER_RE.sub('', text)
    text = text.replace('*', '')
    return text.strip()


def match_section(line: str) -> Optional[str]:
    """Ключ секции, если строка является заголовком; первая запись таблицы побеждает"""
    if _BULLET_RE.match(line):
        return None
    upper = line.upper()
    for key, keywords in SECTION_PATTERNS:
        if any(keyword in upper for keyword in keywords):
            return key
    return None


def split_sections(text: str) -> Tuple[Dict[str, List[str]], Dict[str, str]]:
    """
    Делит отчёт на секции по заголовкам.

    Возвращает (содержимое секций, строка заголовка каждой секции).
    Строки до первого заголовка отбрасываются.
    """
    sections: Dict[str, List[str]] = {}
    headers: Dict[str, str] = {}
    current: Optional[str] = None

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or is_divider(line):
            continue

        key = match_section(line)
        if key is not None:
            current = key
            sections.setdefault(key, [])
            headers.setdefault(key, line)
            # Текст после двоеточия в заголовке ("SEVERITY: Moderate")
            tail = clean_line(line).partition(':')[2].strip()
            if len(tail) > 2 or (tail and key == 'severity'):
                sections[key].append(tail)
            continue

        if current is None:
            continue
        cleaned = clean_line(line)
        if len(cleaned) > 2:
            sections[current].append(cleaned)

    return sections, headers


def parse_severity(lines: List[str], header: str = "") -> Tuple[SeverityLevel, str]:
    """Уровень тяжести (по приоритету Healthy → Severe) и описание секции"""
    text = "\n".join(lines).lower()
    level = None
    for candidate in SeverityLevel:
        if candidate.value.lower() in text:
            level = candidate
            break
    if level is None and header:
        for candidate in SeverityLevel:
            if candidate.value.lower() in header.lower():
                level = candidate
                break
    if level is None:
        return SeverityLevel.from_text(None), " ".join(lines)

    description_parts = []
    level_line_seen = False
    pattern = re.compile(re.escape(level.value), re.IGNORECASE)
    for line in lines:
        if not level_line_seen and pattern.search(line):
            level_line_seen = True
            remainder = pattern.sub('', line, count=1).strip(' -–—:()[]/.,')
            if len(remainder) > 2:
                description_parts.append(remainder)
            continue
        description_parts.append(line)
    return level, " ".join(description_parts)


def _condition_name(line: str) -> Tuple[str, str]:
    """Имя заболевания из строки с процентом и остаток строки (описание)"""
    parts = [part.strip(' :()[]') for part in _SEPARATOR_RE.split(line)]
    if len(parts) > 1:
        for index, part in enumerate(parts):
            if part and not _PERCENT_RE.search(part):
                rest = [p for p in parts[index + 1:] if p and not _PERCENT_RE.search(p)]
                return part, " - ".join(rest)
        return "", ""
    name = _PERCENT_PHRASE_RE.sub('', line).strip(' -–—:()[]')
    return name, ""


def parse_conditions(lines: List[str]) -> List[PossibleCondition]:
    """
    Строка с процентом (\\d+%) начинает заболевание.
    Имя берётся до разделителя " - ", иначе из следующей строки без процента;
    описание из следующей строки без процента.
    """
    conditions = []
    i = 0
    while i < len(lines):
        line = lines[i]
        match = _PERCENT_RE.search(line)
        if not match:
            i += 1
            continue

        probability = min(int(match.group(1)), 100)
        name, description = _condition_name(line)
        j = i + 1
        if not name and j < len(lines) and not _PERCENT_RE.search(lines[j]):
            name = lines[j]
            j += 1
        if j < len(lines) and not _PERCENT_RE.search(lines[j]):
            description = lines[j]
            j += 1

        if name:
            conditions.append(PossibleCondition(name=name, probability=probability, description=description))
        else:
            logger.debug(f"Пропущена строка без названия заболевания: {line}")
        i = j
    return conditions


def _split_list(value: str) -> List[str]:
    return [item.strip(' .') for item in _LIST_SPLIT_RE.split(value) if item.strip(' .')]


def parse_remedies(lines: List[str]) -> List[AyurvedicRemedy]:
    """
    Короткая строка без двоеточия начинает новое средство,
    последующие строки (Ingredients / How to use / Benefits) относятся к нему.
    """
    remedies = []
    current = None

    def flush():
        if current is not None:
            remedies.append(AyurvedicRemedy(
                name=current["name"],
                ingredients=current["ingredients"],
                instructions=" ".join(current["instructions"]),
                benefits=" ".join(current["benefits"]),
            ))

    for line in lines:
        if ':' not in line and len(line) < REMEDY_NAME_MAX_LENGTH:
            flush()
            current = {"name": line, "ingredients": [], "instructions": [], "benefits": []}
            continue
        if current is None:
            continue

        field = _REMEDY_FIELD_RE.match(line)
        if not field:
            current["instructions"].append(line)
            continue
        name, value = field.group(1).lower(), field.group(2).strip()
        if name.startswith('ingredient'):
            current["ingredients"].extend(_split_list(value))
        elif name.startswith('benefit'):
            current["benefits"].append(value)
        elif value:
            current["instructions"].append(value)

    flush()
    return remedies


def parse_report(raw_text: str) -> AnalysisReport:
    """
    Разбирает текстовый отчёт в AnalysisReport.

    Чистая функция: не бросает исключений, отсутствующие секции дают пустые списки,
    текст без заголовков даёт отчёт только с raw_text.
    """
    text = raw_text or ""
    sections, headers = split_sections(text)
    if not sections:
        logger.debug("Заголовки секций не найдены, возвращаем только исходный текст")
        return AnalysisReport(raw_text=text)

    severity_level = None
    severity_description = ""
    if 'severity' in sections:
        severity_level, severity_description = parse_severity(sections['severity'], headers.get('severity', ""))

    return AnalysisReport(
        severity_level=severity_level,
        severity_score=severity_level.score if severity_level else None,
        severity_description=severity_description,
        observations=sections.get('observed', []),
        possible_conditions=parse_conditions(sections.get('conditions', [])),
        recommended_actions=sections.get('actions', []),
        remedies=parse_remedies(sections.get('remedies', [])),
        skincare_tips=sections.get('tips', []),
        raw_text=text,
    )
