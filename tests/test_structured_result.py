"""
Unit тесты для сборки отчёта из JSON ответа
"""
import json

import pytest

from ayurscan.schemas.report import SeverityLevel
from ayurscan.services.structured_result import ParsingFailed, build_structured, decode_structured, extract_json_block


class TestExtractJson:
    """Тесты извлечения JSON блока"""

    def test_code_fence(self):
        text = 'Here you go:\n```json\n{"severity_level": "Mild"}\n```'
        assert json.loads(extract_json_block(text)) == {"severity_level": "Mild"}

    def test_no_json(self):
        assert extract_json_block("plain text only") is None


class TestDecodeStructured:
    """Тесты строгого разбора JSON"""

    def test_flat_payload(self):
        text = json.dumps({
            "severity_level": "Moderate",
            "severity_score": 7,
            "severity_description": "Several active lesions",
            "observations": ["papules on cheeks"],
            "possible_conditions": [{"name": "Acne Vulgaris", "probability": 72, "description": "common"}],
            "recommended_actions": ["gentle cleanser"],
            "remedies": [{"name": "Neem Paste", "ingredients": ["Neem", "Haldi"], "instructions": "15 min"}],
            "skincare_tips": ["drink water"],
        })
        report = decode_structured(text)

        assert report.severity_level == SeverityLevel.MODERATE
        assert report.severity_score == 7
        assert report.possible_conditions[0].probability == 72
        assert report.remedies[0].ingredients == ["Neem", "Haldi"]
        assert report.raw_text == text

    def test_nested_camel_case_payload(self):
        """Вложенная форма и camelCase ключи"""
        text = json.dumps({
            "severity": {"level": "severe", "score": 15, "description": "Widespread inflammation"},
            "observedCondition": {"summary": "Cystic acne", "details": ["deep nodules"]},
            "possibleConditions": [{"name": "Cystic Acne", "probability": "85%"}],
            "recommendedActions": ["see a dermatologist"],
            "ayurvedicRemedies": [{"name": "Multani Mitti", "ingredients": ["clay"]}],
            "skincareTips": ["avoid picking"],
        })
        report = decode_structured(text)

        assert report.severity_level == SeverityLevel.SEVERE
        assert report.severity_score == 10
        assert report.severity_description == "Widespread inflammation"
        assert report.observations == ["Cystic acne", "deep nodules"]
        assert report.possible_conditions[0].probability == 85
        assert report.recommended_actions == ["see a dermatologist"]
        assert report.remedies[0].name == "Multani Mitti"
        assert report.skincare_tips == ["avoid picking"]

    def test_fractional_probability(self):
        text = json.dumps({"possible_conditions": [{"name": "Eczema", "probability": 0.4}]})
        assert decode_structured(text).possible_conditions[0].probability == 40

    def test_score_derived_from_level(self):
        report = decode_structured('{"severity_level": "Healthy"}')
        assert report.severity_score == 1

    def test_unknown_level_is_mild(self):
        report = decode_structured('{"severity_level": "unclear"}')
        assert report.severity_level == SeverityLevel.MILD

    def test_server_fields_ignored(self):
        report = decode_structured('{"provider_used": "openai", "raw_text": "fake"}')
        assert report.provider_used is None
        assert report.raw_text == '{"provider_used": "openai", "raw_text": "fake"}'

    @pytest.mark.parametrize("text", [
        "no json here",
        "{not valid json}",
        "[1, 2, 3]",
        '{"observations": "should be a list"}',
        '{"observedCondition": {"summary": 42}}',
    ])
    def test_invalid(self, text):
        with pytest.raises(ParsingFailed):
            decode_structured(text)

    def test_deep_nesting_is_parsing_failure(self):
        with pytest.raises(ParsingFailed):
            decode_structured('{"a": ' + "[" * 100000 + "]" * 100000 + "}")


class TestBuildStructured:
    """Тесты отката на текстовый парсер"""

    def test_falls_back_to_text_parser(self, sample_report_text):
        report = build_structured(sample_report_text)
        assert report.severity_level == SeverityLevel.MODERATE
        assert report.possible_conditions[0].name == "Acne Vulgaris"

    def test_never_raises(self):
        report = build_structured("{broken")
        assert report.raw_text == "{broken"

    def test_never_raises_on_bad_nested_shape(self):
        """Неитерируемые details не ломают разбор"""
        text = json.dumps({"observedCondition": {"details": 5}})
        report = build_structured(text)
        assert report.raw_text == text
        assert report.observations == []

    def test_never_raises_on_deep_nesting(self):
        """Слишком глубокая вложенность JSON -> текстовый парсер"""
        text = '{"a": ' + "[" * 100000 + "]" * 100000 + "}"
        report = build_structured(text)
        assert report.raw_text == text
        assert report.has_structured_content is False
