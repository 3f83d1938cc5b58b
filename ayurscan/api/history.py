"""
API endpoints для истории анализов
"""
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import Response

from ayurscan.dependencies import get_history_store
from ayurscan.schemas.history import HistoryEntry, HistoryImportResponse, HistoryListResponse
from ayurscan.schemas.report import AnalysisReport
from ayurscan.services.history_store import HistoryImportError, in_date_range
from ayurscan.utils.parsing import parse_report

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_or_404(history, entry_id: str) -> HistoryEntry:
    entry = history.get(entry_id)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"Анализ {entry_id} не найден")
    return entry


@router.get(
    "/history",
    response_model=HistoryListResponse,
    summary="Список анализов",
    description="Сохранённые анализы от новых к старым. Параметр q включает поиск по тексту отчёта, from и to ограничивают период."
)
async def list_history(
    limit: Optional[int] = Query(None, ge=1, le=1000),
    q: Optional[str] = Query(None, description="Поиск без учёта регистра"),
    date_from: Optional[datetime] = Query(None, alias="from", description="Начало периода (ISO 8601)"),
    date_to: Optional[datetime] = Query(None, alias="to", description="Конец периода (ISO 8601)"),
    history=Depends(get_history_store),
):
    items = history.search(q) if q else history.list()
    if date_from or date_to:
        items = [e for e in items if in_date_range(e, date_from, date_to)]
    total = len(items)
    if limit is not None:
        items = items[:limit]
    return HistoryListResponse(success=True, total=total, items=items)


# export объявлен до /history/{entry_id}, иначе путь перехватит параметр
@router.get(
    "/history/export",
    summary="Экспорт истории",
    description="Вся история одним JSON файлом"
)
async def export_history(history=Depends(get_history_store)):
    return Response(
        content=history.export(),
        media_type="application/json",
        headers={"Content-Disposition": 'attachment; filename="ayurscan_history.json"'},
    )


@router.post(
    "/history/import",
    response_model=HistoryImportResponse,
    summary="Импорт истории",
    description="Добавляет записи из ранее экспортированного файла. Записи с уже существующими ID пропускаются."
)
async def import_history(file: UploadFile = File(...), history=Depends(get_history_store)):
    data = await file.read()
    try:
        imported = history.import_entries(data)
    except HistoryImportError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return HistoryImportResponse(success=True, imported=imported, total=history.count())


@router.get("/history/{entry_id}", response_model=HistoryEntry, summary="Один анализ")
async def get_history_entry(entry_id: str, history=Depends(get_history_store)):
    return _get_or_404(history, entry_id)


@router.get(
    "/history/{entry_id}/report",
    response_model=AnalysisReport,
    summary="Разобранный отчёт",
    description="Повторный разбор сохранённого текста отчёта"
)
async def get_history_report(entry_id: str, history=Depends(get_history_store)):
    entry = _get_or_404(history, entry_id)
    report = parse_report(entry.raw_text)
    return report.with_provider(entry.provider_used) if entry.provider_used else report


@router.put(
    "/history/{entry_id}",
    response_model=HistoryEntry,
    summary="Обновить анализ",
    description="Заменяет сохранённую запись; id берётся из пути"
)
async def update_history_entry(entry_id: str, entry: HistoryEntry, history=Depends(get_history_store)):
    updated = entry.model_copy(update={"id": entry_id})
    if not history.update(updated):
        raise HTTPException(status_code=404, detail=f"Анализ {entry_id} не найден")
    return updated


@router.delete("/history/{entry_id}", summary="Удалить анализ")
async def delete_history_entry(entry_id: str, history=Depends(get_history_store)):
    if not history.delete(entry_id):
        raise HTTPException(status_code=404, detail=f"Анализ {entry_id} не найден")
    return {"success": True, "deleted": entry_id}


@router.delete("/history", summary="Очистить историю")
async def clear_history(history=Depends(get_history_store)):
    history.clear()
    return {"success": True}
