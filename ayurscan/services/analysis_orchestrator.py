"""
Оркестратор анализа: подготовка изображения, основной провайдер, затем запасной

Состояние каждого запуска хранится в собственном AnalysisRun, поэтому
повторные и параллельные вызовы для разных сессий не делят общий флаг.
"""
import asyncio
import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional

from ayurscan.schemas.report import AnalysisReport
from ayurscan.services.image_service import ImagePreprocessor, ImageProcessingFailed
from ayurscan.services.provider_client import (
    ProviderClient,
    ProviderError,
    ProviderId,
    build_provider_configs,
    create_client,
)
from ayurscan.services.structured_result import build_structured
from ayurscan.utils.constants import ANALYSIS_PROMPT, STRUCTURED_ANALYSIS_PROMPT
from ayurscan.utils.formatting import format_final_response
from ayurscan.utils.parsing import parse_report

logger = logging.getLogger(__name__)

DEFAULT_SESSION = "default"


class AnalysisState(str, Enum):
    IDLE = "idle"
    PREPARING = "preparing"
    CALLING_PRIMARY = "calling_primary"
    CALLING_SECONDARY = "calling_secondary"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


class AnalysisInProgress(Exception):
    """Для этой сессии уже выполняется анализ"""

    kind = "analysis_in_progress"
    user_message = "⏳ An analysis is already running, please wait"

    def __init__(self, session_id: str):
        super().__init__(f"Анализ для сессии '{session_id}' уже выполняется")
        self.session_id = session_id


@dataclass
class AnalysisRun:
    """Состояние одного запуска анализа"""
    session_id: str
    provider_order: List[ProviderId]
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:8])
    state: AnalysisState = AnalysisState.IDLE
    provider_used: Optional[ProviderId] = None
    errors: List[ProviderError] = field(default_factory=list)
    started_at: float = field(default_factory=time.monotonic)

    @property
    def is_analyzing(self) -> bool:
        return self.state in (AnalysisState.CALLING_PRIMARY, AnalysisState.CALLING_SECONDARY)

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started_at

    def transition(self, state: AnalysisState):
        logger.debug(f"[{self.run_id}] {self.state.value} → {state.value}")
        self.state = state


class AnalysisOrchestrator:
    """Последовательно пробует провайдеров и возвращает один разобранный отчёт"""

    def __init__(
        self,
        clients: Iterable[ProviderClient],
        preprocessor: Optional[ImagePreprocessor] = None,
        primary_provider=ProviderId.GEMINI,
    ):
        self.clients: Dict[ProviderId, ProviderClient] = {c.provider_id: c for c in clients}
        if not self.clients:
            raise ValueError("Нужен хотя бы один провайдер")
        self.preprocessor = preprocessor or ImagePreprocessor()
        self.primary_provider = ProviderId(primary_provider)
        if self.primary_provider not in self.clients:
            raise ValueError(f"Провайдер {self.primary_provider.value} не настроен")
        self._runs: Dict[str, AnalysisRun] = {}

    @classmethod
    def from_settings(cls, settings) -> "AnalysisOrchestrator":
        configs = build_provider_configs(settings)
        return cls(
            clients=[create_client(config) for config in configs.values()],
            preprocessor=ImagePreprocessor.from_settings(settings),
            primary_provider=settings.primary_provider,
        )

    def switch_provider(self, provider_id) -> ProviderId:
        """Меняет основной провайдер для следующих запусков; текущие не затрагиваются"""
        provider = ProviderId(provider_id)
        if provider not in self.clients:
            raise ValueError(f"Провайдер {provider.value} не настроен")
        self.primary_provider = provider
        logger.info(f"🔄 Основной провайдер: {provider.label}")
        return provider

    def provider_order(self) -> List[ProviderId]:
        others = [pid for pid in self.clients if pid != self.primary_provider]
        return [self.primary_provider, *others]

    def active_run(self, session_id: str = DEFAULT_SESSION) -> Optional[AnalysisRun]:
        return self._runs.get(session_id)

    def is_analyzing(self, session_id: str = DEFAULT_SESSION) -> bool:
        run = self._runs.get(session_id)
        return bool(run and run.is_analyzing)

    async def run_analysis(
        self,
        image_bytes: bytes,
        *,
        session_id: str = DEFAULT_SESSION,
        structured: bool = False,
    ) -> AnalysisReport:
        """
        Полный цикл анализа одного изображения.

        Порядок провайдеров фиксируется в момент старта. Если оба провайдера
        не ответили, бросается ошибка запасного, а ошибка основного доступна
        в её previous_errors. Отмена задачи прерывает ожидание и fallback.
        """
        if session_id in self._runs:
            raise AnalysisInProgress(session_id)

        run = AnalysisRun(session_id=session_id, provider_order=self.provider_order())
        self._runs[session_id] = run
        try:
            return await self._execute(run, image_bytes, structured)
        except asyncio.CancelledError:
            logger.warning(f"[{run.run_id}] 🛑 Анализ отменён ({run.state.value})")
            run.transition(AnalysisState.CANCELLED)
            raise
        finally:
            self._runs.pop(session_id, None)

    async def _execute(self, run: AnalysisRun, image_bytes: bytes, structured: bool) -> AnalysisReport:
        run.transition(AnalysisState.PREPARING)
        try:
            prepared = await asyncio.to_thread(self.preprocessor.prepare, image_bytes)
        except ImageProcessingFailed:
            run.transition(AnalysisState.FAILED)
            raise

        prompt = STRUCTURED_ANALYSIS_PROMPT if structured else ANALYSIS_PROMPT

        for index, provider_id in enumerate(run.provider_order):
            client = self.clients[provider_id]
            run.transition(AnalysisState.CALLING_PRIMARY if index == 0 else AnalysisState.CALLING_SECONDARY)
            logger.info(f"[{run.run_id}] 🔮 Пробуем {client.label}...")
            try:
                text = await asyncio.to_thread(client.analyze, prepared, prompt, structured)
            except ProviderError as e:
                if e.provider_id is None:
                    e.provider_id = provider_id.value
                run.errors.append(e)
                logger.warning(f"[{run.run_id}] ⚠️ {client.label} не сработал: {e.kind} ({e})")
                continue

            run.provider_used = provider_id
            run.transition(AnalysisState.SUCCEEDED)
            logger.info(f"[{run.run_id}] ✅ Ответ от {client.label} за {run.elapsed:.1f}с")

            formatted = format_final_response(text, provider_id.value)
            report = build_structured(formatted) if structured else parse_report(formatted)
            return report.with_provider(provider_id.value)

        run.transition(AnalysisState.FAILED)
        error = run.errors[-1]
        error.previous_errors = run.errors[:-1]
        logger.error(
            f"[{run.run_id}] ❌ Все провайдеры недоступны: "
            + ", ".join(f"{e.provider_id}={e.kind}" for e in run.errors)
        )
        raise error
