"""
Драйвер синхронизации БД -> Laia -> БД.

Конечный автомат одного запуска:

    IDLE -> AUTHORIZING -> FETCHING -> TRANSFORMING -> FORWARDING
         -> COMMITTING -> (FETCHING | DRAINED | ABORTED)

Правила:
    - Авторизация выполняется ровно один раз, до первой выборки
    - Полная страница (== page_size) -> следующая итерация,
      неполная или пустая -> DRAINED
    - Любая ошибка коллаборатора -> ABORTED; уже записанные пакеты
      не откатываются, повторов внутри запуска нет
    - Записи выбираются по флагу необработанности в самой БД,
      поэтому повторный запуск безопасен
    - Полная страница без единой транскрипции -> ABORTED (NoProgress):
      пропущенные Laia записи остаются без отметки и вернутся
      следующей выборкой

Одновременные запуски не координируются: планировщик должен
инициировать не более одного запуска за раз.
"""

import logging
import uuid
from datetime import datetime
from typing import Mapping, Optional

from recognizer.config import Settings
from recognizer.errors import NoProgress, SyncError, Unauthorized
from recognizer.schemas import SyncRun, SyncState
from recognizer.services.auth import Gate
from recognizer.services.database_client import DatabaseClient
from recognizer.services.laia_client import LaiaClient
from recognizer.services.transformer import build_line_images

logger = logging.getLogger(__name__)


class SyncDriver:
    """
    Оркестратор пайплайна: fetch -> transform -> forward -> commit.

    Args:
        database: клиент БД (выборка и запись)
        laia: клиент распознавателя
        settings: конфигурация (page_size, fileserver_url, max_iterations)
    """

    def __init__(self, database: DatabaseClient, laia: LaiaClient, settings: Settings):
        self._database = database
        self._laia = laia
        self._settings = settings

    def start(self) -> SyncRun:
        """Создаёт новый запуск в состоянии IDLE."""
        run = SyncRun(run_id=uuid.uuid4().hex[:8])
        logger.info(f"[run {run.run_id}] Запуск синхронизации")
        return run

    async def run(
        self,
        gate: Optional[Gate] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> SyncRun:
        """
        Полный запуск: авторизация (если задан гейт) + цикл синхронизации.

        Returns:
            SyncRun: запуск в терминальном состоянии
        """
        run = self.start()
        await self.authorize(run, gate, headers or {})
        if run.is_terminal:
            return run
        return await self.drive(run)

    async def authorize(
        self,
        run: SyncRun,
        gate: Optional[Gate],
        headers: Mapping[str, str],
    ) -> SyncRun:
        """
        Однократная проверка прав перед циклом.

        Без гейта состояние AUTHORIZING пропускается.
        При отказе запуск переходит в ABORTED с Unauthorized.
        """
        if gate is None:
            return run

        self._transition(run, SyncState.AUTHORIZING)
        decision = await gate.authorize(headers)
        try:
            decision.raise_for_denial()
        except Unauthorized as e:
            self._abort(run, e)
        return run

    async def drive(self, run: SyncRun) -> SyncRun:
        """
        Цикл синхронизации до DRAINED или ABORTED.

        Ошибки коллабораторов не пробрасываются вызывающему —
        итог запуска виден только в SyncRun и в логах.
        """
        if run.is_terminal:
            return run

        while not run.is_terminal:
            try:
                await self._iterate(run)
            except SyncError as e:
                self._abort(run, e)

        logger.info(
            f"[run {run.run_id}] Синхронизация завершена: {run.outcome}, "
            f"итераций={run.iterations}, записей={run.records_processed}, "
            f"предупреждений={len(run.warnings)}"
        )
        return run

    async def _iterate(self, run: SyncRun) -> None:
        """Одна итерация: выборка, преобразование, распознавание, запись."""
        page_size = self._settings.page_size
        max_iterations = self._settings.max_iterations

        if max_iterations and run.iterations >= max_iterations:
            raise SyncError(f"Превышен лимит итераций: {max_iterations}")

        run.iterations += 1
        logger.info(f"[run {run.run_id}] ===== Итерация {run.iterations} =====")

        # 1. Выборка
        self._transition(run, SyncState.FETCHING)
        pictures = await self._database.fetch_pictures(page_size)
        if not pictures:
            logger.info(
                f"[run {run.run_id}] Больше нет изображений для распознавания "
                "(получено 0)"
            )
            self._transition(run, SyncState.DRAINED)
            return
        logger.info(f"[run {run.run_id}] Получено изображений: {len(pictures)}")

        # 2. Преобразование
        self._transition(run, SyncState.TRANSFORMING)
        line_imgs = build_line_images(pictures, self._settings.fileserver_url)

        # 3. Распознавание
        self._transition(run, SyncState.FORWARDING)
        outcome = await self._laia.recognize(line_imgs)
        if outcome.partial is not None:
            run.warnings.append(outcome.partial)
        logger.info(
            f"[run {run.run_id}] Получено предложений: {len(outcome.suggestions)}"
        )

        # 4. Запись
        self._transition(run, SyncState.COMMITTING)
        await self._database.update_pictures(outcome.suggestions)
        run.records_processed += len(outcome.suggestions)
        run.committed_ids.extend(s.id for s in outcome.suggestions)
        logger.info(f"[run {run.run_id}] Записи обновлены")

        # Неполная страница — очередь исчерпана
        if len(pictures) < page_size:
            self._transition(run, SyncState.DRAINED)
            return

        # Полная страница без единой транскрипции вернётся снова при выборке
        if not outcome.suggestions:
            raise NoProgress(
                f"Laia не вернул ни одной транскрипции для полной страницы "
                f"({len(pictures)} записей), повторная выборка вернёт те же записи"
            )

    def _transition(self, run: SyncRun, state: SyncState) -> None:
        logger.debug(f"[run {run.run_id}] {run.state.value} -> {state.value}")
        run.state = state
        if run.is_terminal:
            run.finished_at = datetime.now()

    def _abort(self, run: SyncRun, error: SyncError) -> None:
        logger.error(
            f"[run {run.run_id}] Прерван в состоянии {run.state.value}: "
            f"{type(error).__name__}: {error}"
        )
        run.error = error
        self._transition(run, SyncState.ABORTED)
