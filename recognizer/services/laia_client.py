"""
Клиент Laia daemon — распознавание строк рукописного текста.

Отправляет пакет изображений и получает предложенную транскрипцию
для каждого идентификатора.
"""

import logging

import httpx
from pydantic import TypeAdapter

from recognizer.config import Settings
from recognizer.errors import PartialResult, UpstreamRejected
from recognizer.schemas import LineImg, RecognitionOutcome, Suggestion
from recognizer.services.upstream import decode_list, send

logger = logging.getLogger(__name__)

UPSTREAM = "laia"

_suggestions_adapter = TypeAdapter(list[Suggestion])


class LaiaClient:
    """
    Клиент Laia daemon для одного запуска синхронизации.

    Args:
        client: общий HTTP клиент запуска
        settings: конфигурация сервиса
    """

    def __init__(self, client: httpx.AsyncClient, settings: Settings):
        self._client = client
        self._settings = settings

    async def recognize(self, line_imgs: list[LineImg]) -> RecognitionOutcome:
        """
        Отправляет изображения в Laia и возвращает транскрипции.

        Идентификаторы, отсутствующие в ответе, не подставляются —
        они попадают в PartialResult. Транскрипции для незапрошенных
        идентификаторов отбрасываются.

        Args:
            line_imgs: пакет изображений строк

        Returns:
            RecognitionOutcome: транскрипции + предупреждение о пропусках

        Raises:
            UpstreamUnavailable: Laia недоступен
            UpstreamRejected: статус ответа не 200
            UpstreamMalformed: тело не декодируется в список транскрипций
        """
        url = f"{self._settings.laia_daemon_url}/laiaDaemon/recognizeImgs"
        body = [img.model_dump(by_alias=True) for img in line_imgs]

        response = await send(
            self._client,
            UPSTREAM,
            self._settings.laia_request_method,
            url,
            json=body,
        )

        if response.status_code != 200:
            logger.error(
                f"Ошибка запроса к распознавателю: {response.status_code}, "
                f"{response.text}"
            )
            raise UpstreamRejected(
                f"laia: статус {response.status_code}",
                UPSTREAM,
                status_code=response.status_code,
                body=response.text,
            )

        received: list[Suggestion] = decode_list(
            response, _suggestions_adapter, UPSTREAM
        )
        return _match_suggestions(line_imgs, received)


def _match_suggestions(
    line_imgs: list[LineImg],
    received: list[Suggestion],
) -> RecognitionOutcome:
    """Сверяет ответ Laia с запрошенными идентификаторами."""
    requested = {img.id for img in line_imgs}

    suggestions = []
    seen = set()
    for suggestion in received:
        if suggestion.id not in requested:
            logger.warning(f"Laia вернул незапрошенный идентификатор: {suggestion.id}")
            continue
        if suggestion.id in seen:
            logger.warning(f"Laia вернул идентификатор дважды: {suggestion.id}")
            continue
        seen.add(suggestion.id)
        suggestions.append(suggestion)

    missing = [img.id for img in line_imgs if img.id not in seen]
    partial = None
    if missing:
        partial = PartialResult(missing)
        logger.warning(str(partial))

    return RecognitionOutcome(suggestions=suggestions, partial=partial)
