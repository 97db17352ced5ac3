"""
Сервисы micro-recognizer.

Модули:
    - database_client: выборка записей и запись транскрипций
    - transformer: преобразование записей в запрос к Laia
    - laia_client: вызов распознавателя
    - auth: гейт авторизации (cron / пользователь GUI)
    - sync_driver: цикл синхронизации (конечный автомат)
"""

from recognizer.services.auth import SharedSecretGate, UserRoleGate, select_gate
from recognizer.services.database_client import DatabaseClient
from recognizer.services.laia_client import LaiaClient
from recognizer.services.sync_driver import SyncDriver
from recognizer.services.transformer import build_line_images

__all__ = [
    "DatabaseClient",
    "LaiaClient",
    "SyncDriver",
    "build_line_images",
    "SharedSecretGate",
    "UserRoleGate",
    "select_gate",
]
