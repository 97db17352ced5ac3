"""
micro-recognizer — мост между database API и распознавателем Laia.

Пакетная синхронизация:
    - выборка необработанных записей из БД (страницами по page_size)
    - распознавание строк в Laia daemon
    - запись транскрипций обратно в БД от имени синтетического аннотатора
"""

from recognizer.config import settings
from recognizer.schemas import LineImg, Picture, Suggestion, SyncRun, SyncState

__all__ = [
    "settings",
    "Picture",
    "LineImg",
    "Suggestion",
    "SyncRun",
    "SyncState",
]
