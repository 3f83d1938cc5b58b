"""
Конфигурация приложения с использованием Pydantic Settings
"""
import os
import logging
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# Загружаем переменные окружения из .env файла (если есть)
load_dotenv()

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Настройки приложения из переменных окружения"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Mistral (chat completions, Pixtral)
    mistral_api_key: Optional[str] = None
    mistral_api_url: str = "https://api.mistral.ai/v1/chat/completions"
    mistral_model: str = "pixtral-12b-2409"

    # Google Gemini (generateContent)
    gemini_api_key: Optional[str] = None
    gemini_api_url: str = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
    gemini_model: str = "gemini-2.0-flash"

    # Параметры анализа
    primary_provider: str = "gemini"
    request_timeout_seconds: int = 90
    max_output_tokens: int = 2048
    temperature: float = 0.4

    # Подготовка изображения
    image_max_dimension: int = 1024
    image_jpeg_quality: int = 80

    # История анализов
    history_path: str = "data/history.json"
    history_max_count: int = 100

    # Server
    port: int = int(os.getenv("PORT", 8000))
    host: str = os.getenv("HOST", "0.0.0.0")


# Создаём экземпляр настроек
settings = Settings()

# Ключи могут быть выставлены в системе, но не попасть в .env
if not settings.mistral_api_key:
    settings.mistral_api_key = os.getenv("MISTRAL_API_KEY")
if not settings.gemini_api_key:
    settings.gemini_api_key = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")

# Логируем статус API ключей (без показа самих ключей)
logger.info("=" * 80)
logger.info("🔑 Проверка API ключей:")
logger.info(f"   MISTRAL_API_KEY: {'✅ установлен' if settings.mistral_api_key else '❌ не найден'}")
logger.info(f"   GEMINI_API_KEY: {'✅ установлен' if settings.gemini_api_key else '❌ не найден'}")
logger.info(f"   Основной провайдер: {settings.primary_provider}")
logger.info("=" * 80)
