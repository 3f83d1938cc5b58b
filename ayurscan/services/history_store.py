"""
Хранилище истории анализов в JSON файле
"""
import logging
import os
import threading
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError

from ayurscan.schemas.history import HistoryEntry

logger = logging.getLogger(__name__)

_entries_adapter = TypeAdapter(List[HistoryEntry])


class HistoryImportError(Exception):
    """Импортируемые данные не являются списком записей истории"""


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def in_date_range(entry: HistoryEntry, start: Optional[datetime] = None, end: Optional[datetime] = None) -> bool:
    """Границы включительные; время без часового пояса считается UTC"""
    if start is not None and entry.timestamp < _as_utc(start):
        return False
    if end is not None and entry.timestamp > _as_utc(end):
        return False
    return True


class HistoryStore:
    """
    История хранится списком от новых к старым, не больше max_count записей.
    Повреждённый файл читается как пустая история.
    """

    def __init__(self, path: str, max_count: int = 100):
        self.path = path
        self.max_count = max_count
        self._lock = threading.Lock()

    def _read(self) -> List[HistoryEntry]:
        if not os.path.exists(self.path):
            return []
        try:
            with open(self.path, 'rb') as f:
                return _entries_adapter.validate_json(f.read())
        except (OSError, ValidationError) as e:
            logger.error(f"Не удалось прочитать историю {self.path}: {e}")
            return []

    def _write(self, entries: List[HistoryEntry]):
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, 'wb') as f:
            f.write(_entries_adapter.dump_json(entries, indent=2))
        os.replace(tmp_path, self.path)

    def save(self, entry: HistoryEntry) -> HistoryEntry:
        with self._lock:
            entries = self._read()
            entries.insert(0, entry)
            self._write(entries[:self.max_count])
        logger.info(f"💾 Анализ {entry.id} сохранён в историю")
        return entry

    def list(self, limit: Optional[int] = None) -> List[HistoryEntry]:
        with self._lock:
            entries = self._read()
        return entries[:limit] if limit is not None else entries

    def get(self, entry_id: str) -> Optional[HistoryEntry]:
        return next((e for e in self.list() if e.id == entry_id), None)

    def update(self, entry: HistoryEntry) -> bool:
        """Заменяет запись с тем же id, позиция в списке сохраняется"""
        with self._lock:
            entries = self._read()
            for index, existing in enumerate(entries):
                if existing.id == entry.id:
                    entries[index] = entry
                    break
            else:
                return False
            self._write(entries)
        logger.info(f"✏️ Анализ {entry.id} обновлён")
        return True

    def delete(self, entry_id: str) -> bool:
        with self._lock:
            entries = self._read()
            remaining = [e for e in entries if e.id != entry_id]
            if len(remaining) == len(entries):
                return False
            self._write(remaining)
        logger.info(f"🗑️ Анализ {entry_id} удалён из истории")
        return True

    def clear(self):
        with self._lock:
            if os.path.exists(self.path):
                os.remove(self.path)
        logger.info("🗑️ История очищена")

    def count(self) -> int:
        return len(self.list())

    def search(self, query: str) -> List[HistoryEntry]:
        """Поиск без учёта регистра по тексту отчёта и найденному заболеванию"""
        entries = self.list()
        needle = (query or "").strip().lower()
        if not needle:
            return entries
        return [
            e for e in entries
            if needle in e.raw_text.lower()
            or (e.condition_detected and needle in e.condition_detected.lower())
        ]

    def by_date_range(self, start: Optional[datetime] = None, end: Optional[datetime] = None) -> List[HistoryEntry]:
        return [e for e in self.list() if in_date_range(e, start, end)]

    def export(self) -> bytes:
        return _entries_adapter.dump_json(self.list(), indent=2)

    def import_entries(self, data: bytes) -> int:
        """Добавляет записи, которых ещё нет; возвращает число добавленных"""
        try:
            imported = _entries_adapter.validate_json(data)
        except ValidationError as e:
            raise HistoryImportError(f"Некорректные данные истории: {e.error_count()} ошибок") from e

        with self._lock:
            entries = self._read()
            seen_ids = {e.id for e in entries}
            new_entries = []
            # Повторы id внутри файла тоже пропускаются, остаётся первая запись
            for entry in imported:
                if entry.id not in seen_ids:
                    seen_ids.add(entry.id)
                    new_entries.append(entry)
            entries.extend(new_entries)
            entries.sort(key=lambda e: e.timestamp, reverse=True)
            self._write(entries[:self.max_count])
        logger.info(f"📥 Импортировано записей: {len(new_entries)}")
        return len(new_entries)
