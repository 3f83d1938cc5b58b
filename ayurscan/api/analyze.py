"""
API endpoint для анализа кожи
"""
import asyncio
import logging
import time
import uuid

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import Response

from ayurscan.dependencies import get_history_store, get_orchestrator
from ayurscan.schemas.analyze import AnalyzeErrorDetail, AnalyzeRequest, AnalyzeResponse
from ayurscan.schemas.history import HistoryEntry
from ayurscan.services.analysis_orchestrator import AnalysisInProgress
from ayurscan.services.image_service import ImageProcessingFailed, make_thumbnail
from ayurscan.services.provider_client import ProviderError
from ayurscan.utils.image_utils import decode_image_payload

logger = logging.getLogger(__name__)

router = APIRouter()

# Как часто проверять, что клиент ещё ждёт ответа
DISCONNECT_POLL_SECONDS = 0.25

# Нестандартный статус nginx: клиент закрыл соединение
CLIENT_CLOSED_REQUEST = 499


async def _cancel_on_disconnect(http_request: Request, task: asyncio.Task) -> bool:
    """Отменяет анализ, если клиент отключился; возвращает True при отмене"""
    while not task.done():
        if await http_request.is_disconnected():
            task.cancel()
            return True
        await asyncio.sleep(DISCONNECT_POLL_SECONDS)
    return False


@router.post(
    "/analyze",
    response_model=AnalyzeResponse,
    summary="Анализ состояния кожи",
    description="""
    Анализ фотографии кожи с помощью vision модели.

    Сначала вызывается основной провайдер (Gemini или Mistral Pixtral),
    при ошибке автоматически используется второй.

    Возвращает:
    - Разобранный отчёт (тяжесть, заболевания, рекомендации, аюрведические средства)
    - Исходный текст отчёта
    - Провайдер, который дал ответ
    - ID записи в истории (если сохранение включено)
    """,
    responses={
        400: {"description": "Некорректное изображение"},
        409: {"description": "Анализ для этой сессии уже выполняется"},
        499: {"description": "Клиент отключился, анализ отменён и не сохранён"},
        500: {"description": "Внутренняя ошибка сервера"},
        503: {"description": "Все провайдеры недоступны"},
    }
)
async def analyze_skin(
    request: AnalyzeRequest,
    http_request: Request,
    orchestrator=Depends(get_orchestrator),
    history=Depends(get_history_store),
):
    """
    Анализ состояния кожи по изображению

    **Пример запроса:**
    ```json
    {
        "image": "data:image/jpeg;base64,/9j/4AAQ...",
        "structured": false,
        "save_to_history": true
    }
    ```
    """
    start_time = time.time()
    logger.info("=" * 80)
    logger.info("📥 НОВЫЙ ЗАПРОС НА АНАЛИЗ КОЖИ")
    logger.info("=" * 80)
    # Без session_id запрос получает собственную сессию и не блокирует других клиентов
    session_id = request.session_id or uuid.uuid4().hex
    logger.info(f"📋 Сессия: {session_id}, structured: {request.structured}")

    try:
        image_bytes, mime_type = decode_image_payload(request.image)
    except ValueError as e:
        logger.error(f"❌ Не удалось декодировать изображение: {e}")
        raise HTTPException(status_code=400, detail=f"Некорректное изображение: {e}")

    logger.info(f"📷 Размер изображения: {len(image_bytes) / 1024:.2f} KB ({mime_type or 'тип не указан'})")

    analysis = asyncio.create_task(orchestrator.run_analysis(
        image_bytes,
        session_id=session_id,
        structured=request.structured,
    ))
    watcher = asyncio.create_task(_cancel_on_disconnect(http_request, analysis))
    try:
        report = await analysis
    except asyncio.CancelledError:
        if watcher.done() and not watcher.cancelled() and watcher.result():
            logger.warning(f"🛑 Клиент отключился, анализ сессии {session_id} отменён")
            return Response(status_code=CLIENT_CLOSED_REQUEST)
        raise
    except ImageProcessingFailed as e:
        raise HTTPException(status_code=400, detail=e.user_message)
    except AnalysisInProgress as e:
        raise HTTPException(status_code=409, detail=e.user_message)
    except ProviderError as e:
        attempts = [err.to_dict() for err in (*e.previous_errors, e)]
        raise HTTPException(
            status_code=503,
            detail=AnalyzeErrorDetail(message=e.user_message, kind=e.kind, attempts=attempts).model_dump(),
        )
    except Exception as e:
        logger.error(f"❌ Неожиданная ошибка анализа: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Внутренняя ошибка сервера: {e}")
    finally:
        watcher.cancel()

    if await http_request.is_disconnected():
        logger.warning("🛑 Клиент отключился до получения отчёта, анализ не сохраняется")
        return Response(status_code=CLIENT_CLOSED_REQUEST)

    history_id = None
    if request.save_to_history:
        try:
            thumbnail = await asyncio.to_thread(make_thumbnail, image_bytes)
        except ImageProcessingFailed:
            thumbnail = None
        try:
            entry = history.save(HistoryEntry.from_report(report, thumbnail))
            history_id = entry.id
        except OSError as e:
            logger.error(f"❌ Не удалось сохранить анализ в историю: {e}")

    logger.info(f"✅ Анализ завершён за {time.time() - start_time:.2f}с ({report.provider_used})")
    return AnalyzeResponse(
        success=True,
        report=report,
        history_id=history_id,
        provider=report.provider_used,
    )
