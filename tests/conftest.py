"""
Конфигурация pytest
"""
import io
import os

import pytest
from PIL import Image

# Устанавливаем тестовые переменные окружения до импорта ayurscan.config
os.environ.setdefault('MISTRAL_API_KEY', 'test_mistral_key')
os.environ.setdefault('GEMINI_API_KEY', 'test_gemini_key')


SAMPLE_REPORT = """━━━━━━━━━━━━━━━━━━━━━━━━━━━━
📊 SEVERITY: Moderate
━━━━━━━━━━━━━━━━━━━━━━━━━━━━

🔍 WHAT I OBSERVED
• Inflamed papules on both cheeks
• Mild redness around the nose
• Enlarged pores on the forehead

🩺 POSSIBLE CONDITIONS
1. Acne Vulgaris - 72%
   Inflammatory lesions typical for oily skin
2. Rosacea - 20%
   Persistent redness of the central face

💊 WHAT YOU SHOULD DO
• Wash face twice a day with a gentle cleanser
• Avoid touching or squeezing lesions

🌿 AYURVEDIC REMEDIES

▸ Neem Paste
  Ingredients: Neem leaves, Haldi, Rose water
  How to use: Apply for 15 minutes, rinse with cool water

▸ Aloe Vera Gel
  Ingredients: Fresh Aloe Vera
  How to use: Apply a thin layer before bed

✨ DAILY SKINCARE TIPS
• Drink plenty of water
• Use a non-comedogenic moisturizer

━━━━━━━━━━━━━━━━━━━━━━━━━━━━
⚠️ Consult a dermatologist for proper diagnosis"""


def make_image_bytes(size=(64, 48), color=(200, 120, 90), fmt='JPEG', mode='RGB', exif=None) -> bytes:
    """Генерирует изображение в памяти"""
    image = Image.new(mode, size, color)
    output = io.BytesIO()
    if exif is not None:
        image.save(output, format=fmt, exif=exif)
    else:
        image.save(output, format=fmt)
    return output.getvalue()


@pytest.fixture
def sample_report_text():
    return SAMPLE_REPORT


@pytest.fixture
def jpeg_bytes():
    return make_image_bytes()


@pytest.fixture
def image_factory():
    return make_image_bytes
