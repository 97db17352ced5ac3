"""
Конфигурация micro-recognizer.

Все значения читаются из переменных окружения (или .env файла).
У каждого параметра есть дефолт для стандартного развёртывания в кластере.

Экземпляр настроек неизменяем: создаётся один раз при старте процесса
и явно передаётся в клиенты и драйвер синхронизации.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Настройки micro-recognizer.

    Имена переменных окружения совпадают с именами полей
    (регистр не важен): DATABASE_API_URL, FILESERVER_URL, PAGE_SIZE и т.д.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # --- База данных ---
    database_api_url: str = (
        "http://database-api.gitlab-managed-apps.svc.cluster.local:8080"
    )
    # Общий секрет кластера: заголовок Authorization для БД и для cron
    cluster_internal_password: str = ""

    # --- Файловый сервер ---
    # Относительные пути изображений дополняются этим префиксом
    fileserver_url: str = "https://inky.local:9501"

    # --- Laia daemon ---
    laia_daemon_url: str = "http://raoh.educ.insa:12191"
    # Демон принимает JSON в теле GET запроса
    laia_request_method: str = "GET"

    # --- Синхронизация ---
    page_size: int = Field(default=25, ge=1)
    reco_annotator_id: str = "$taliesin_recognizer"
    # 0 — без ограничения числа итераций
    max_iterations: int = Field(default=0, ge=0)
    timeout_seconds: float = 60.0

    # --- Авторизация пользователей GUI ---
    auth_api_url: str = "http://auth-api.gitlab-managed-apps.svc.cluster.local:8080"
    admin_role: str = "admin"

    # --- Сервер ---
    host: str = "0.0.0.0"
    port: int = 8080


# Глобальный экземпляр настроек
settings = Settings()
