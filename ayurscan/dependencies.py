"""
Dependency injection для FastAPI
"""
import logging
from functools import lru_cache

from ayurscan.config import settings

logger = logging.getLogger(__name__)

# Проверка доступности модулей
try:
    from pillow_heif import register_heif_opener
    register_heif_opener()
    HEIC_SUPPORT = True
    logger.info("Поддержка HEIC включена")
except ImportError:
    HEIC_SUPPORT = False
    logger.warning("pillow-heif не установлен, поддержка HEIC будет ограничена")


@lru_cache
def get_orchestrator():
    """Общий оркестратор анализа для всех запросов"""
    from ayurscan.services.analysis_orchestrator import AnalysisOrchestrator
    return AnalysisOrchestrator.from_settings(settings)


@lru_cache
def get_history_store():
    """Хранилище истории анализов"""
    from ayurscan.services.history_store import HistoryStore
    return HistoryStore(settings.history_path, max_count=settings.history_max_count)


# Экспортируем доступность модулей и настройки
__all__ = [
    'HEIC_SUPPORT',
    'settings',
    'get_orchestrator',
    'get_history_store',
]
