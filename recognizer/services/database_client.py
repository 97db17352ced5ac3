"""
Клиент database API.

Две операции пайплайна:
    - fetch_pictures: выборка необработанных записей (только чтение)
    - update_pictures: массовая запись транскрипций от имени
      синтетического аннотатора
"""

import logging

import httpx
from pydantic import TypeAdapter

from recognizer.config import Settings
from recognizer.errors import UpstreamRejected
from recognizer.schemas import Picture, Suggestion
from recognizer.services.upstream import decode_list, send

logger = logging.getLogger(__name__)

UPSTREAM = "database"

_pictures_adapter = TypeAdapter(list[Picture])


class DatabaseClient:
    """
    Клиент БД для одного запуска синхронизации.

    Args:
        client: общий HTTP клиент запуска
        settings: конфигурация сервиса
    """

    def __init__(self, client: httpx.AsyncClient, settings: Settings):
        self._client = client
        self._settings = settings

    @property
    def _headers(self) -> dict:
        return {"Authorization": self._settings.cluster_internal_password}

    async def fetch_pictures(self, page_size: int) -> list[Picture]:
        """
        Запрашивает до page_size необработанных записей.

        Меньше page_size записей БД возвращает только когда
        очередь распознавания исчерпана.

        Raises:
            UpstreamUnavailable: БД недоступна
            UpstreamRejected: статус ответа не 200
            UpstreamMalformed: тело не декодируется в список записей
        """
        url = f"{self._settings.database_api_url}/db/retrieve/recognizer/{page_size}"
        response = await send(
            self._client, UPSTREAM, "GET", url, headers=self._headers
        )

        if response.status_code != 200:
            logger.error(
                f"Ошибка GET запроса к БД: {response.status_code}, {response.text}"
            )
            raise UpstreamRejected(
                f"database: статус {response.status_code} при выборке",
                UPSTREAM,
                status_code=response.status_code,
                body=response.text,
            )

        pictures = decode_list(response, _pictures_adapter, UPSTREAM)
        logger.debug(f"Получено записей из БД: {len(pictures)}")
        return pictures

    async def update_pictures(self, suggestions: list[Suggestion]) -> None:
        """
        Записывает транскрипции одним PUT запросом.

        Ожидаемый статус — 204. Любой другой 2xx считается успехом
        и логируется как незначительное расхождение.

        Raises:
            UpstreamUnavailable: БД недоступна
            UpstreamRejected: статус ответа вне 2xx
        """
        if not suggestions:
            logger.info("Нет транскрипций для записи в БД")
            return

        url = (
            f"{self._settings.database_api_url}/db/update/value/"
            f"{self._settings.reco_annotator_id}"
        )
        body = [s.model_dump(by_alias=True) for s in suggestions]
        response = await send(
            self._client, UPSTREAM, "PUT", url, json=body, headers=self._headers
        )

        if response.status_code == 204:
            return

        if not 200 <= response.status_code < 300:
            logger.error(
                f"Ошибка PUT запроса к БД: {response.status_code}, {response.text}"
            )
            raise UpstreamRejected(
                f"database: статус {response.status_code} при записи",
                UPSTREAM,
                status_code=response.status_code,
                body=response.text,
            )

        logger.warning(
            f"Незначительное расхождение при PUT запросе к БД: "
            f"статус={response.status_code}, ожидался=204, тело={response.text}"
        )
