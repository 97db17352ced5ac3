"""Общие фикстуры: фейковые БД, Laia и сервис авторизации на httpx.MockTransport."""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass, field
from typing import Optional

import httpx
import pytest

from recognizer.config import Settings

logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stderr,
    force=True,
)

DB_URL = "http://db.test"
LAIA_URL = "http://laia.test"
AUTH_URL = "http://auth.test"
FILESERVER_URL = "https://files.test"
SECRET = "cluster-secret"


@dataclass
class FakeDatabase:
    """
    БД в памяти.

    Выборка возвращает записи без флага SentToReco, запись транскрипций
    этот флаг ставит. Ошибки задаются номером запроса (с единицы).
    """

    records: list[dict] = field(default_factory=list)
    fetch_failures: dict[int, int] = field(default_factory=dict)
    commit_failures: dict[int, int] = field(default_factory=dict)
    commit_status: int = 204
    fetch_body: Optional[bytes] = None
    fetches: list[int] = field(default_factory=list)
    commits: list[list[dict]] = field(default_factory=list)
    annotators: list[str] = field(default_factory=list)
    auth_headers: list[str] = field(default_factory=list)

    @classmethod
    def with_ids(cls, *ids: str, **kwargs) -> "FakeDatabase":
        records = [
            {
                "Id": record_id,
                "Url": f"/images/{record_id}.png",
                "Filename": f"{record_id}.png",
                "Annotated": False,
                "Corrected": False,
                "SentToReco": False,
                "Unreadable": False,
                "Annotator": "",
            }
            for record_id in ids
        ]
        return cls(records=records, **kwargs)

    @property
    def committed_ids(self) -> list[str]:
        return [item["Id"] for batch in self.commits for item in batch]

    def value_of(self, record_id: str) -> Optional[str]:
        for record in self.records:
            if record["Id"] == record_id:
                return record.get("Value")
        return None

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.auth_headers.append(request.headers.get("Authorization", ""))
        parts = request.url.path.strip("/").split("/")

        if request.method == "GET" and parts[:3] == ["db", "retrieve", "recognizer"]:
            number = len(self.fetches) + 1
            page_size = int(parts[3])
            self.fetches.append(page_size)
            if number in self.fetch_failures:
                return httpx.Response(self.fetch_failures[number], text="db error")
            if self.fetch_body is not None:
                return httpx.Response(200, content=self.fetch_body)
            pending = [r for r in self.records if not r["SentToReco"]]
            return httpx.Response(200, json=pending[:page_size])

        if request.method == "PUT" and parts[:3] == ["db", "update", "value"]:
            number = len(self.commits) + 1
            if number in self.commit_failures:
                self.commits.append([])
                return httpx.Response(self.commit_failures[number], text="db error")
            batch = json.loads(request.content)
            self.commits.append(batch)
            self.annotators.append(parts[3])
            values = {item["Id"]: item["Value"] for item in batch}
            for record in self.records:
                if record["Id"] in values:
                    record["Value"] = values[record["Id"]]
                    record["SentToReco"] = True
                    record["Annotator"] = parts[3]
            return httpx.Response(self.commit_status)

        return httpx.Response(404)


@dataclass
class FakeLaia:
    """Распознаватель: транскрипция = "text-<Id>"; умеет терять идентификаторы."""

    drop_ids: set[str] = field(default_factory=set)
    extra: list[dict] = field(default_factory=list)
    status_code: int = 200
    body: Optional[bytes] = None
    requests: list[list[dict]] = field(default_factory=list)
    methods: list[str] = field(default_factory=list)

    def handle(self, request: httpx.Request) -> httpx.Response:
        if request.url.path != "/laiaDaemon/recognizeImgs":
            return httpx.Response(404)

        line_imgs = json.loads(request.content)
        self.requests.append(line_imgs)
        self.methods.append(request.method)

        if self.status_code != 200:
            return httpx.Response(self.status_code, text="laia error")
        if self.body is not None:
            return httpx.Response(200, content=self.body)

        suggestions = [
            {"Id": img["Id"], "Value": f"text-{img['Id']}"}
            for img in reversed(line_imgs)
            if img["Id"] not in self.drop_ids
        ]
        return httpx.Response(200, json=suggestions + self.extra)


@dataclass
class FakeAuth:
    """Сервис авторизации: токен -> роль."""

    tokens: dict[str, str] = field(default_factory=dict)
    calls: int = 0

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        role = self.tokens.get(request.headers.get("Authorization", ""))
        if role is None:
            return httpx.Response(401, text="invalid token")
        return httpx.Response(200, json={"Username": "user", "Role": role})


@dataclass
class Upstreams:
    database: FakeDatabase
    laia: FakeLaia
    auth: FakeAuth
    unreachable: set[str] = field(default_factory=set)

    def handle(self, request: httpx.Request) -> httpx.Response:
        host = request.url.host
        if host in self.unreachable:
            raise httpx.ConnectError("connection refused", request=request)
        if host == "db.test":
            return self.database.handle(request)
        if host == "laia.test":
            return self.laia.handle(request)
        if host == "auth.test":
            return self.auth.handle(request)
        return httpx.Response(404)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)


def make_settings(**overrides) -> Settings:
    values = {
        "database_api_url": DB_URL,
        "laia_daemon_url": LAIA_URL,
        "auth_api_url": AUTH_URL,
        "fileserver_url": FILESERVER_URL,
        "cluster_internal_password": SECRET,
        "page_size": 2,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def upstreams() -> Upstreams:
    return Upstreams(
        database=FakeDatabase(),
        laia=FakeLaia(),
        auth=FakeAuth(tokens={"admin-token": "admin", "user-token": "annotator"}),
    )


def run_driver(settings: Settings, upstreams: Upstreams, gate=None, headers=None):
    """Выполняет полный запуск драйвера поверх фейковых коллабораторов."""
    import asyncio

    from recognizer.services.database_client import DatabaseClient
    from recognizer.services.laia_client import LaiaClient
    from recognizer.services.sync_driver import SyncDriver

    async def _run():
        async with httpx.AsyncClient(transport=upstreams.transport) as client:
            driver = SyncDriver(
                DatabaseClient(client, settings),
                LaiaClient(client, settings),
                settings,
            )
            if callable(gate):
                return await driver.run(gate(client), headers)
            return await driver.run(gate, headers)

    return asyncio.run(_run())
