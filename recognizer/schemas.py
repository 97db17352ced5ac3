"""
Схемы данных micro-recognizer.

Включает:
    - Pydantic модели записей БД (Picture + документ PiFF)
    - Pydantic модели обмена с Laia daemon (LineImg, Suggestion)
    - Внутренние dataclass'ы состояния одного запуска синхронизации

JSON ключи у БД и Laia в PascalCase — поля объявлены через alias.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from recognizer.errors import PartialResult, SyncError


# =============================================================================
# Документ PiFF (хранится вместе с записью, для пайплайна непрозрачен)
# =============================================================================


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class PiFFMeta(_WireModel):
    type: str = Field(default="", alias="Type")
    url: str = Field(default="", alias="URL")


class PiFFLocation(_WireModel):
    type: str = Field(default="", alias="Type")
    polygon: Optional[list[tuple[int, int]]] = Field(default=None, alias="Polygon")
    id: str = Field(default="", alias="Id")


class PiFFData(_WireModel):
    type: str = Field(default="", alias="Type")
    location_id: str = Field(default="", alias="LocationId")
    value: str = Field(default="", alias="Value")
    id: str = Field(default="", alias="Id")


class PiFFStruct(_WireModel):
    """
    Документ аннотации PiFF.

    Attributes:
        meta: тип документа и URL изображения
        location: полигоны строк
        data: значения (транскрипции), привязанные к полигонам
        children: индексы дочерних элементов
        parent: индекс родителя
    """

    meta: PiFFMeta = Field(default_factory=PiFFMeta, alias="Meta")
    location: Optional[list[PiFFLocation]] = Field(default=None, alias="Location")
    data: Optional[list[PiFFData]] = Field(default=None, alias="Data")
    children: Optional[list[int]] = Field(default=None, alias="Children")
    parent: int = Field(default=0, alias="Parent")


# =============================================================================
# Запись БД
# =============================================================================


class Picture(_WireModel):
    """
    Запись БД — изображение строки, ожидающее транскрипции.

    Attributes:
        id: идентификатор в БД (бинарный id, сериализованный в base64)
        piff: документ аннотации
        url: путь на файловом сервере (или абсолютный URL)
        filename: исходное имя файла
        annotated: запись аннотирована человеком
        corrected: аннотация проверена
        sent_to_reco: запись уже отправлялась в распознаватель
        unreadable: помечена нечитаемой
        annotator: идентификатор аннотатора
    """

    id: str = Field(alias="Id")
    piff: PiFFStruct = Field(default_factory=PiFFStruct, alias="PiFF")
    url: str = Field(default="", alias="Url")
    filename: str = Field(default="", alias="Filename")
    annotated: bool = Field(default=False, alias="Annotated")
    corrected: bool = Field(default=False, alias="Corrected")
    sent_to_reco: bool = Field(default=False, alias="SentToReco")
    unreadable: bool = Field(default=False, alias="Unreadable")
    annotator: str = Field(default="", alias="Annotator")


# =============================================================================
# Обмен с Laia daemon
# =============================================================================


class LineImg(_WireModel):
    """Изображение строки, отправляемое в Laia: id + полный URL."""

    id: str = Field(alias="Id")
    url: str = Field(alias="Url")


class Suggestion(_WireModel):
    """Предложенная Laia транскрипция для одной записи."""

    id: str = Field(alias="Id")
    value: str = Field(default="", alias="Value")


@dataclass
class RecognitionOutcome:
    """
    Результат вызова Laia.

    Attributes:
        suggestions: транскрипции только для запрошенных идентификаторов
        partial: предупреждение о пропущенных идентификаторах (или None)
    """

    suggestions: list[Suggestion]
    partial: Optional[PartialResult] = None


# =============================================================================
# Состояние запуска синхронизации
# =============================================================================


class SyncState(str, Enum):
    IDLE = "idle"
    AUTHORIZING = "authorizing"
    FETCHING = "fetching"
    TRANSFORMING = "transforming"
    FORWARDING = "forwarding"
    COMMITTING = "committing"
    DRAINED = "drained"
    ABORTED = "aborted"


TERMINAL_STATES = frozenset({SyncState.DRAINED, SyncState.ABORTED})


@dataclass
class SyncRun:
    """
    Состояние одного запуска синхронизации (живёт только в памяти).

    Attributes:
        run_id: идентификатор запуска для логов
        state: текущее состояние автомата
        iterations: число выполненных запросов выборки из БД
        records_processed: число записей, записанных обратно в БД
        committed_ids: идентификаторы записанных записей (по порядку)
        warnings: предупреждения о неполных ответах Laia
        error: ошибка, завершившая запуск (для ABORTED)
        started_at: время начала
        finished_at: время перехода в терминальное состояние
    """

    run_id: str
    state: SyncState = SyncState.IDLE
    iterations: int = 0
    records_processed: int = 0
    committed_ids: list[str] = field(default_factory=list)
    warnings: list[PartialResult] = field(default_factory=list)
    error: Optional[SyncError] = None
    started_at: datetime = field(default_factory=datetime.now)
    finished_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    @property
    def outcome(self) -> Optional[str]:
        """Итог завершённого запуска: drained / aborted, иначе None."""
        return self.state.value if self.is_terminal else None
