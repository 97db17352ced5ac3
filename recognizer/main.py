"""
micro-recognizer — FastAPI сервис синхронизации БД с Laia daemon.

Забирает необработанные изображения строк из БД пакетами,
отправляет их в Laia для распознавания и записывает предложенные
транскрипции обратно от имени синтетического аннотатора.

Эндпоинты:
    GET  /recognizer — проверка доступности (home link)
    GET  /health — статус сервиса, БД и Laia
    POST /recognizer/sendImgs — запуск синхронизации (ответ 202 сразу,
         синхронизация идёт в фоне)

Предусловие развёртывания: не более одного запуска за раз
(cron не должен пересекаться сам с собой).

Запуск:
    uvicorn recognizer.main:app --host 0.0.0.0 --port 8080
"""

import logging
from typing import Optional

import httpx
from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException, Request
from fastapi.responses import PlainTextResponse

from recognizer.config import Settings, settings
from recognizer.schemas import SyncRun
from recognizer.services.auth import select_gate
from recognizer.services.database_client import DatabaseClient
from recognizer.services.laia_client import LaiaClient
from recognizer.services.sync_driver import SyncDriver

# Настройка логгера
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [MICRO-RECO] [%(levelname)s] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)

# FastAPI приложение
app = FastAPI(
    title="micro-recognizer",
    description="Синхронизация изображений из БД с распознавателем Laia",
    version="1.0.0",
)


def get_settings() -> Settings:
    return settings


def get_transport() -> Optional[httpx.AsyncBaseTransport]:
    """Транспорт httpx; None — обычный сетевой транспорт."""
    return None


def build_driver(client: httpx.AsyncClient, config: Settings) -> SyncDriver:
    """Собирает драйвер синхронизации поверх одного HTTP клиента."""
    return SyncDriver(
        database=DatabaseClient(client, config),
        laia=LaiaClient(client, config),
        settings=config,
    )


@app.get("/recognizer", response_class=PlainTextResponse)
async def home() -> str:
    logger.info("HomeLink joined")
    return "[MICRO-RECOGNIZER] HomeLink joined"


@app.get("/health")
async def health_check(
    config: Settings = Depends(get_settings),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
) -> dict:
    """
    Проверка работоспособности сервиса и коллабораторов.

    Returns:
        dict: статус API, доступность БД и Laia, конфигурация без секретов
    """
    async with httpx.AsyncClient(timeout=5.0, transport=transport) as client:
        database_status = await _probe(client, config.database_api_url)
        laia_status = await _probe(client, config.laia_daemon_url)

    return {
        "status": "ok",
        "service": "micro-recognizer",
        "database": {"url": config.database_api_url, "status": database_status},
        "laia": {"url": config.laia_daemon_url, "status": laia_status},
        "config": {
            "page_size": config.page_size,
            "fileserver_url": config.fileserver_url,
            "annotator_id": config.reco_annotator_id,
            "timeout_seconds": config.timeout_seconds,
        },
    }


@app.post("/recognizer/sendImgs", status_code=202)
async def send_imgs_to_recognizer(
    request: Request,
    background_tasks: BackgroundTasks,
    config: Settings = Depends(get_settings),
    transport: Optional[httpx.AsyncBaseTransport] = Depends(get_transport),
) -> dict:
    """
    Запускает синхронизацию БД -> Laia -> БД.

    Права проверяются один раз до начала работы. При успехе ответ 202
    отправляется сразу, чтобы не блокировать вызывающего, а цикл
    синхронизации выполняется в фоне. Итог запуска виден только в логах
    и во флагах записей в БД.

    Raises:
        HTTPException: 401 если гейт отклонил запрос
    """
    logger.info("sendImgs joined")

    client = httpx.AsyncClient(
        timeout=httpx.Timeout(config.timeout_seconds),
        transport=transport,
    )
    try:
        driver = build_driver(client, config)
        run = driver.start()
        gate = select_gate(request.headers, client, config)
        await driver.authorize(run, gate, request.headers)
    except Exception:
        await client.aclose()
        raise

    if run.is_terminal:
        await client.aclose()
        logger.info("Недостаточно прав для запуска синхронизации")
        raise HTTPException(
            status_code=401,
            detail={
                "error": "unauthorized",
                "message": f"[MICRO-RECO] {run.error}",
            },
        )

    background_tasks.add_task(_drive_and_close, driver, run, client)

    return {
        "status": "accepted",
        "message": "[MICRO-RECOGNIZER] Request accepted",
        "run_id": run.run_id,
    }


async def _drive_and_close(
    driver: SyncDriver,
    run: SyncRun,
    client: httpx.AsyncClient,
) -> SyncRun:
    """Фоновая часть запуска: цикл синхронизации, затем закрытие клиента."""
    try:
        return await driver.drive(run)
    finally:
        await client.aclose()


async def _probe(client: httpx.AsyncClient, url: str) -> str:
    try:
        response = await client.get(url)
    except httpx.TransportError:
        return "unavailable"

    if response.status_code >= 500:
        return f"error: {response.status_code}"
    return "ok"


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Запуск micro-recognizer на {settings.host}:{settings.port}")
    logger.info(f"Database API: {settings.database_api_url}")
    logger.info(f"Laia daemon: {settings.laia_daemon_url}")

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level="info",
    )
