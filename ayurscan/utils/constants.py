"""
Константы проекта: промпты, таблица секций отчёта, шкала тяжести
"""

APP_NAME = "AyurScan"
APP_VERSION = "1.0"

# Отображаемые имена провайдеров (для подписи в конце отчёта)
PROVIDER_LABELS = {
    "mistral": "Mistral AI Pixtral",
    "gemini": "Google Gemini",
}

SYSTEM_PROMPT = "You are an expert dermatologist AI assistant specialized in skin analysis."

# Промпт задаёт формат ответа, который потом разбирает utils/parsing.py.
# Ключевые слова заголовков должны совпадать с SECTION_PATTERNS.
ANALYSIS_PROMPT = """You are an expert dermatologist AI. Analyze this skin image and provide a CONCISE, well-formatted report.

Format your response EXACTLY like this:

━━━━━━━━━━━━━━━━━━━━━━━━━━━━
📊 SEVERITY: [Healthy/Mild/Moderate/Severe]
━━━━━━━━━━━━━━━━━━━━━━━━━━━━

🔍 WHAT I OBSERVED
• [Observation 1]
• [Observation 2]
• [Observation 3]

🩺 POSSIBLE CONDITIONS
1. [Condition] - [Likelihood %]
   [Brief description]
2. [Condition] - [Likelihood %]
   [Brief description]

💊 WHAT YOU SHOULD DO
• [Action 1]
• [Action 2]
• [Action 3]

🌿 AYURVEDIC REMEDIES

▸ [Remedy 1 Name]
  Ingredients: [list]
  How to use: [instructions]

▸ [Remedy 2 Name]
  Ingredients: [list]
  How to use: [instructions]

✨ DAILY SKINCARE TIPS
• [Tip 1]
• [Tip 2]
• [Tip 3]

━━━━━━━━━━━━━━━━━━━━━━━━━━━━

Guidelines:
- Be CONCISE - no lengthy paragraphs
- Use Indian Ayurvedic ingredients (Neem, Haldi, Aloe Vera, Chandan, Multani Mitti, Tulsi)
- If skin is healthy, say so positively
- End with: "⚠️ Consult a dermatologist for proper diagnosis\""""

STRUCTURED_ANALYSIS_PROMPT = """You are an expert dermatologist AI. Analyze this skin image and answer ONLY with a JSON object, no prose.

Use exactly this shape:
{
  "severity_level": "Healthy" | "Mild" | "Moderate" | "Severe",
  "severity_score": integer 1-10,
  "severity_description": "one sentence",
  "observations": ["short observation", ...],
  "possible_conditions": [
    {"name": "condition", "probability": integer 0-100, "description": "one sentence"}
  ],
  "recommended_actions": ["action", ...],
  "remedies": [
    {"name": "remedy", "ingredients": ["ingredient", ...], "instructions": "how to use", "benefits": "why it helps"}
  ],
  "skincare_tips": ["tip", ...]
}

Guidelines:
- Order possible_conditions from most to least likely
- Use Indian Ayurvedic ingredients (Neem, Haldi, Aloe Vera, Chandan, Multani Mitti, Tulsi)
- If skin is healthy, say so positively"""

REPORT_HEADER = "🔬 **AYURSCAN SKIN ANALYSIS REPORT**"
REPORT_DIVIDER = "━" * 36

DISCLAIMER_TEXT = """⚕️ **IMPORTANT DISCLAIMER**
This AI analysis is for informational purposes only
and does NOT replace professional medical advice.
Always consult a board-certified dermatologist.

🏥 Use "Nearby Hospitals" to find dermatologists near you."""

# Уровни тяжести в порядке приоритета при поиске по тексту
SEVERITY_LEVELS = ["Healthy", "Mild", "Moderate", "Severe"]

# Фиксированное соответствие уровня и балла (1-10) для прогресс-бара
SEVERITY_SCORES = {
    "Healthy": 1,
    "Mild": 3,
    "Moderate": 6,
    "Severe": 9,
}

DEFAULT_SEVERITY = "Mild"

# Таблица заголовков секций: (ключ секции, ключевые слова).
# Порядок важен: побеждает первая подходящая запись.
SECTION_PATTERNS = [
    ("severity", ["SEVERITY", "📊"]),
    ("observed", ["OBSERVED", "🔍"]),
    ("conditions", ["POSSIBLE CONDITIONS", "🩺"]),
    ("actions", ["SHOULD DO", "RECOMMENDED", "💊"]),
    ("remedies", ["AYURVEDIC", "🌿"]),
    ("tips", ["SKINCARE", "TIPS", "✨"]),
    # Заключительная строка из ANALYSIS_PROMPT тоже закрывает отчёт
    ("disclaimer", ["DISCLAIMER", "POWERED BY", "CONSULT A DERMATOLOGIST FOR PROPER DIAGNOSIS"]),
]

# Короткая строка без двоеточия в секции средств считается названием средства
REMEDY_NAME_MAX_LENGTH = 40

# Настройки Gemini, которые не зависят от окружения
GEMINI_SAFETY_SETTINGS = [
    {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_HATE_SPEECH", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_SEXUALLY_EXPLICIT", "threshold": "BLOCK_NONE"},
    {"category": "HARM_CATEGORY_DANGEROUS_CONTENT", "threshold": "BLOCK_NONE"},
]
GEMINI_TOP_K = 32
GEMINI_TOP_P = 1

# Миниатюра для истории
THUMBNAIL_MAX_DIMENSION = 256
THUMBNAIL_JPEG_QUALITY = 50
