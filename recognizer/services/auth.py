"""
Проверка прав на запуск синхронизации.

Два варианта одного гейта:
    - SharedSecretGate: запрос от cron (заголовок ReqFromCron),
      Authorization должен совпадать с общим секретом кластера
    - UserRoleGate: запрос из GUI, токен пользователя проверяется
      сервисом авторизации, нужна роль администратора

select_gate выбирает вариант по заголовкам входящего запроса.
"""

import hmac
import logging
from dataclasses import dataclass
from typing import Mapping, Optional, Protocol

import httpx
from pydantic import BaseModel, Field

from recognizer.config import Settings
from recognizer.errors import SyncError, Unauthorized
from recognizer.services.upstream import send

logger = logging.getLogger(__name__)

CRON_HEADER = "ReqFromCron"


@dataclass
class AuthDecision:
    """
    Решение гейта.

    Attributes:
        allowed: разрешён ли запуск
        role: роль вызывающего ("cron" для планировщика)
        reason: причина отказа
    """

    allowed: bool
    role: Optional[str] = None
    reason: str = ""

    def raise_for_denial(self) -> None:
        if not self.allowed:
            raise Unauthorized(self.reason, "auth")


class Gate(Protocol):
    async def authorize(self, headers: Mapping[str, str]) -> AuthDecision: ...


class AuthUser(BaseModel):
    """Пользователь, возвращаемый сервисом авторизации."""

    username: str = Field(default="", alias="Username")
    role: str = Field(alias="Role")


class SharedSecretGate:
    """Гейт для планировщика: сравнение с общим секретом."""

    def __init__(self, settings: Settings):
        self._secret = settings.cluster_internal_password

    async def authorize(self, headers: Mapping[str, str]) -> AuthDecision:
        logger.info("Запрос от CRON")

        if not self._secret:
            logger.error("CLUSTER_INTERNAL_PASSWORD не задан, запросы от cron отклоняются")
            return AuthDecision(allowed=False, reason="Cluster secret is not configured")

        received = headers.get("Authorization", "")
        if hmac.compare_digest(received.encode(), self._secret.encode()):
            return AuthDecision(allowed=True, role="cron")

        logger.debug("CRON с неверным заголовком Authorization")
        return AuthDecision(
            allowed=False,
            reason="Incorrect authorization header received from cron",
        )


class UserRoleGate:
    """Гейт для пользователей GUI: нужна роль администратора."""

    def __init__(self, client: httpx.AsyncClient, settings: Settings):
        self._client = client
        self._settings = settings

    async def authorize(self, headers: Mapping[str, str]) -> AuthDecision:
        logger.info("Запрос от GUI")

        token = headers.get("Authorization")
        if not token:
            return AuthDecision(allowed=False, reason="Couldn't verify identity")

        try:
            user = await self._verify_token(token)
        except SyncError as e:
            logger.error(f"Ошибка проверки аутентификации: {e}")
            return AuthDecision(allowed=False, reason="Couldn't verify identity")

        if user.role != self._settings.admin_role:
            logger.error(
                f"Недостаточно прав: нужна роль {self._settings.admin_role}, "
                f"получена {user.role}"
            )
            return AuthDecision(
                allowed=False,
                role=user.role,
                reason="Insufficient permissions to call Laia",
            )

        return AuthDecision(allowed=True, role=user.role)

    async def _verify_token(self, token: str) -> AuthUser:
        url = f"{self._settings.auth_api_url}/auth/verifyToken"
        response = await send(
            self._client, "auth", "GET", url, headers={"Authorization": token}
        )

        if response.status_code != 200:
            raise Unauthorized(
                f"auth: статус {response.status_code}", "auth"
            )

        try:
            return AuthUser.model_validate(response.json())
        except ValueError as e:
            raise Unauthorized(f"auth: некорректный ответ ({e})", "auth") from e


def select_gate(
    headers: Mapping[str, str],
    client: httpx.AsyncClient,
    settings: Settings,
) -> Gate:
    """Выбирает вариант гейта по предъявленным креденшалам."""
    if headers.get(CRON_HEADER):
        return SharedSecretGate(settings)
    return UserRoleGate(client, settings)
