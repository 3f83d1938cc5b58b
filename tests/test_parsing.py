"""
Unit тесты для парсинга текстового отчёта
"""
import pytest

from ayurscan.schemas.report import AnalysisReport, AyurvedicRemedy, PossibleCondition, SeverityLevel
from ayurscan.utils.formatting import format_final_response
from ayurscan.utils.parsing import (
    clean_line,
    is_divider,
    match_section,
    parse_conditions,
    parse_remedies,
    parse_report,
    parse_severity,
)


KNOWN_REPORT = AnalysisReport(
    severity_level=SeverityLevel.MODERATE,
    severity_score=6,
    observations=[
        "Inflamed papules on both cheeks",
        "Uneven tone along the jawline",
        "Enlarged pores on the forehead",
    ],
    possible_conditions=[
        PossibleCondition(name="Acne Vulgaris", probability=72, description="Inflammatory lesions typical for oily skin"),
        PossibleCondition(name="Rosacea", probability=20, description="Persistent flushing of the central face"),
    ],
    recommended_actions=[
        "Wash face twice a day with a gentle cleanser",
        "Avoid touching or squeezing lesions",
        "Apply sunscreen every morning",
    ],
    remedies=[
        AyurvedicRemedy(
            name="Neem Paste",
            ingredients=["Neem leaves", "Haldi", "Rose water"],
            instructions="Apply for 15 minutes, rinse with cool water",
            benefits="Calms active breakouts",
        ),
        AyurvedicRemedy(
            name="Multani Mitti Mask",
            ingredients=["Multani Mitti", "Rose water"],
            instructions="Leave on until dry, twice a week",
            benefits="Absorbs excess oil",
        ),
    ],
    skincare_tips=[
        "Drink plenty of water",
        "Use a non-comedogenic moisturizer",
        "Change pillowcases twice a week",
    ],
)


def render_report(report: AnalysisReport) -> str:
    """Текст отчёта в раскладке ANALYSIS_PROMPT"""
    divider = "━" * 28
    lines = [divider, f"📊 SEVERITY: {report.severity_level.value}", divider, "", "🔍 WHAT I OBSERVED"]
    lines += [f"• {item}" for item in report.observations]
    lines += ["", "🩺 POSSIBLE CONDITIONS"]
    for index, condition in enumerate(report.possible_conditions, 1):
        lines += [f"{index}. {condition.name} - {condition.probability}%", f"   {condition.description}"]
    lines += ["", "💊 WHAT YOU SHOULD DO"]
    lines += [f"• {item}" for item in report.recommended_actions]
    lines += ["", "🌿 AYURVEDIC REMEDIES"]
    for remedy in report.remedies:
        lines += [
            "",
            f"▸ {remedy.name}",
            f"  Ingredients: {', '.join(remedy.ingredients)}",
            f"  How to use: {remedy.instructions}",
            f"  Benefits: {remedy.benefits}",
        ]
    lines += ["", "✨ DAILY SKINCARE TIPS"]
    lines += [f"• {item}" for item in report.skincare_tips]
    lines += ["", divider, "⚠️ Consult a dermatologist for proper diagnosis"]
    return "\n".join(lines)


class TestParseReport:
    """Тесты разбора полного отчёта"""

    def test_full_report(self, sample_report_text):
        report = parse_report(sample_report_text)

        assert report.severity_level == SeverityLevel.MODERATE
        assert report.severity_score == 6
        assert report.observations == [
            "Inflamed papules on both cheeks",
            "Mild redness around the nose",
            "Enlarged pores on the forehead",
        ]
        assert [(c.name, c.probability) for c in report.possible_conditions] == [
            ("Acne Vulgaris", 72),
            ("Rosacea", 20),
        ]
        assert report.possible_conditions[0].description == "Inflammatory lesions typical for oily skin"
        assert report.recommended_actions[1] == "Avoid touching or squeezing lesions"
        assert [r.name for r in report.remedies] == ["Neem Paste", "Aloe Vera Gel"]
        assert report.remedies[0].ingredients == ["Neem leaves", "Haldi", "Rose water"]
        assert report.remedies[0].instructions == "Apply for 15 minutes, rinse with cool water"
        assert report.skincare_tips == ["Drink plenty of water", "Use a non-comedogenic moisturizer"]
        assert report.raw_text == sample_report_text

    def test_minimal_example(self):
        text = "📊 SEVERITY: Moderate\n\n🩺 POSSIBLE CONDITIONS\nAcne Vulgaris - 72%\n"
        report = parse_report(text)
        assert report.severity_level == SeverityLevel.MODERATE
        assert report.severity_score == 6
        assert len(report.possible_conditions) == 1
        assert report.possible_conditions[0].name == "Acne Vulgaris"
        assert report.possible_conditions[0].probability == 72

    def test_empty_input(self):
        """Пустой текст -> отчёт без структурных полей"""
        report = parse_report("")
        assert report.raw_text == ""
        assert report.severity_level is None
        assert report.has_structured_content is False

    def test_prose_without_headers(self):
        """Текст без заголовков сохраняется в raw_text"""
        text = "I cannot analyze this image because it does not show skin."
        report = parse_report(text)
        assert report.raw_text == text
        assert report.possible_conditions == []
        assert report.has_structured_content is False

    def test_missing_severity_section(self):
        report = parse_report("🔍 WHAT I OBSERVED\n• dry patches\n")
        assert report.severity_level is None
        assert report.severity_score is None
        assert report.observations == ["dry patches"]

    def test_formatted_response_footer_not_leaking(self, sample_report_text):
        """Дисклеймер и подпись провайдера не попадают в советы"""
        report = parse_report(format_final_response(sample_report_text, "gemini"))
        assert report.skincare_tips == ["Drink plenty of water", "Use a non-comedogenic moisturizer"]
        assert report.severity_level == SeverityLevel.MODERATE

    @pytest.mark.parametrize("provider_id", ["gemini", "mistral"])
    def test_rendered_report_parsed_back(self, provider_id):
        """Отчёт в формате промпта после оформления разбирается без потерь"""
        text = format_final_response(render_report(KNOWN_REPORT), provider_id)
        report = parse_report(text)

        assert report.severity_level == KNOWN_REPORT.severity_level
        assert report.severity_score == KNOWN_REPORT.severity_score
        assert report.observations == KNOWN_REPORT.observations
        assert report.possible_conditions == KNOWN_REPORT.possible_conditions
        assert report.recommended_actions == KNOWN_REPORT.recommended_actions
        assert report.remedies == KNOWN_REPORT.remedies
        assert report.skincare_tips == KNOWN_REPORT.skincare_tips
        assert report.raw_text == text

    def test_bold_markdown_headers(self):
        text = "**📊 SEVERITY:** Severe\n\n**🔍 WHAT I OBSERVED**\n- deep cystic lesions\n"
        report = parse_report(text)
        assert report.severity_level == SeverityLevel.SEVERE
        assert report.severity_score == 9
        assert report.observations == ["deep cystic lesions"]


class TestSeverity:
    """Тесты уровня тяжести"""

    @pytest.mark.parametrize("text,level,score", [
        ("Healthy", SeverityLevel.HEALTHY, 1),
        ("mild", SeverityLevel.MILD, 3),
        ("MODERATE", SeverityLevel.MODERATE, 6),
        ("Severe", SeverityLevel.SEVERE, 9),
    ])
    def test_levels(self, text, level, score):
        parsed, _ = parse_severity([text])
        assert parsed == level
        assert parsed.score == score

    def test_unrecognized_defaults_to_mild(self):
        level, description = parse_severity(["Unclear from the photo"])
        assert level == SeverityLevel.MILD
        assert description == "Unclear from the photo"

    def test_description_after_level(self):
        level, description = parse_severity(["Moderate", "Active inflammation on cheeks"])
        assert level == SeverityLevel.MODERATE
        assert description == "Active inflammation on cheeks"

    def test_from_text(self):
        assert SeverityLevel.from_text(None) == SeverityLevel.MILD
        assert SeverityLevel.from_text("  severe acne ") == SeverityLevel.SEVERE


class TestConditions:
    """Тесты разбора заболеваний"""

    def test_name_on_next_line(self):
        conditions = parse_conditions(["85%", "Contact Dermatitis", "Reaction to an irritant"])
        assert conditions[0].name == "Contact Dermatitis"
        assert conditions[0].probability == 85
        assert conditions[0].description == "Reaction to an irritant"

    def test_percent_in_parentheses(self):
        conditions = parse_conditions(["Eczema (60% likely)"])
        assert conditions[0].name == "Eczema"
        assert conditions[0].probability == 60

    def test_lines_without_percent_ignored(self):
        assert parse_conditions(["No specific condition detected"]) == []

    def test_probability_clamped(self):
        conditions = parse_conditions(["Melasma - 150%"])
        assert conditions[0].probability == 100


class TestRemedies:
    """Тесты разбора аюрведических средств"""

    def test_remedy_fields(self):
        remedies = parse_remedies([
            "Turmeric Mask",
            "Ingredients: Haldi, Besan and Milk",
            "How to use: Apply twice a week",
            "Benefits: Reduces pigmentation",
        ])
        assert len(remedies) == 1
        assert remedies[0].ingredients == ["Haldi", "Besan", "Milk"]
        assert remedies[0].instructions == "Apply twice a week"
        assert remedies[0].benefits == "Reduces pigmentation"

    def test_details_before_first_name_dropped(self):
        remedies = parse_remedies(["Ingredients: Neem", "Neem Paste", "How to use: Apply daily"])
        assert [r.name for r in remedies] == ["Neem Paste"]
        assert remedies[0].ingredients == []


class TestLineHelpers:
    """Тесты вспомогательных функций"""

    def test_is_divider(self):
        assert is_divider("━━━━━━━━━━")
        assert is_divider("-----")
        assert not is_divider("Acne - 20%")

    def test_clean_line(self):
        assert clean_line("• **Redness** on cheeks") == "Redness on cheeks"
        assert clean_line("2. Rosacea - 20%") == "Rosacea - 20%"

    def test_match_section(self):
        assert match_section("📊 SEVERITY: Mild") == "severity"
        assert match_section("🌿 AYURVEDIC REMEDIES") == "remedies"
        assert match_section("💊 WHAT YOU SHOULD DO") == "actions"
        assert match_section("• Recommended daily SPF") is None
        assert match_section("⚠️ Consult a dermatologist for proper diagnosis") == "disclaimer"
