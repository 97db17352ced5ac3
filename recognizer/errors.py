"""
Ошибки пайплайна синхронизации.

Иерархия:
    SyncError
        Unauthorized         — гейт отклонил запрос или неверные креды
        UpstreamUnavailable  — транспортная ошибка (БД / Laia / auth)
        UpstreamRejected     — неуспешный HTTP статус от коллаборатора
        UpstreamMalformed    — тело ответа не декодируется в ожидаемую форму
        PartialResult        — Laia вернул не все идентификаторы (не прерывает run)
        NoProgress           — полная страница не дала ни одной записи в БД
"""

from typing import Optional


class SyncError(Exception):
    """
    Базовая ошибка пайплайна.

    Attributes:
        upstream: имя коллаборатора ("database", "laia", "auth") или None
    """

    def __init__(self, message: str, upstream: Optional[str] = None):
        super().__init__(message)
        self.upstream = upstream


class Unauthorized(SyncError):
    pass


class UpstreamUnavailable(SyncError):
    pass


class UpstreamRejected(SyncError):
    """Коллаборатор ответил неуспешным статусом."""

    def __init__(
        self,
        message: str,
        upstream: Optional[str] = None,
        status_code: int = 0,
        body: str = "",
    ):
        super().__init__(message, upstream)
        self.status_code = status_code
        self.body = body


class UpstreamMalformed(SyncError):
    pass


class NoProgress(SyncError):
    """
    Полная страница не дала ни одной транскрипции.

    Необработанные записи остаются без отметки, следующая выборка вернёт
    ту же страницу, поэтому запуск прерывается.
    """


class PartialResult(SyncError):
    """
    Предупреждение: в ответе Laia нет части запрошенных идентификаторов.

    Не выбрасывается — сохраняется в SyncRun.warnings, run продолжается.
    """

    def __init__(self, missing_ids: list[str], upstream: Optional[str] = "laia"):
        super().__init__(
            f"Laia не вернул {len(missing_ids)} идентификатор(ов): {missing_ids}",
            upstream,
        )
        self.missing_ids = missing_ids
