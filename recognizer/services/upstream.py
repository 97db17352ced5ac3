"""
Общие функции HTTP вызовов к коллабораторам (БД, Laia, auth).

Переводят исключения httpx и ответы в таксономию ошибок пайплайна.
"""

import logging
from typing import Any

import httpx
from pydantic import TypeAdapter

from recognizer.errors import UpstreamMalformed, UpstreamUnavailable

logger = logging.getLogger(__name__)


async def send(
    client: httpx.AsyncClient,
    upstream: str,
    method: str,
    url: str,
    **kwargs: Any,
) -> httpx.Response:
    """
    Выполняет запрос к коллаборатору.

    Args:
        client: HTTP клиент текущего запуска
        upstream: имя коллаборатора для логов и ошибок
        method: HTTP метод
        url: полный URL
        **kwargs: параметры httpx (json, headers, ...)

    Returns:
        httpx.Response: ответ с любым статусом

    Raises:
        UpstreamUnavailable: при транспортной ошибке, таймауте или редиректах
        UpstreamMalformed: если тело ответа не раскодировать (Content-Encoding)
    """
    try:
        return await client.request(method, url, **kwargs)
    except httpx.TimeoutException as e:
        logger.error(f"[{upstream}] Таймаут запроса {method} {url}: {e}")
        raise UpstreamUnavailable(f"{upstream}: таймаут запроса {url}", upstream) from e
    except httpx.TransportError as e:
        logger.error(f"[{upstream}] Ошибка выполнения {method} {url}: {e}")
        raise UpstreamUnavailable(f"{upstream}: недоступен ({e})", upstream) from e
    except httpx.DecodingError as e:
        logger.error(f"[{upstream}] Не удалось раскодировать ответ {method} {url}: {e}")
        raise UpstreamMalformed(f"{upstream}: некорректное тело ответа ({e})", upstream) from e
    except httpx.RequestError as e:
        logger.error(f"[{upstream}] Ошибка запроса {method} {url}: {e}")
        raise UpstreamUnavailable(f"{upstream}: ошибка запроса ({e})", upstream) from e


def decode_list(response: httpx.Response, adapter: TypeAdapter, upstream: str) -> list:
    """
    Декодирует JSON массив из тела ответа.

    Пустое тело и JSON null считаются пустым массивом.

    Raises:
        UpstreamMalformed: если тело не JSON или не соответствует схеме
    """
    if not response.content or response.content.strip() == b"null":
        return []

    try:
        return adapter.validate_python(response.json())
    except ValueError as e:
        logger.error(f"[{upstream}] Не удалось декодировать ответ: {e}")
        raise UpstreamMalformed(
            f"{upstream}: некорректное тело ответа ({e})", upstream
        ) from e
