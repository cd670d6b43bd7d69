"""
Pydantic Settings — centralized configuration loaded from environment variables.
"""

from pydantic_settings import BaseSettings

from gatekeeper.core.constants import Environment


class Settings(BaseSettings):
    # ── Application ───────────────────────────
    APP_ENV: str = Environment.PRODUCTION.value
    APP_TITLE: str = "Gatekeeper API"
    APP_VERSION: str = "0.1.0"

    # ── Logging ───────────────────────────────
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"            # "json" or "console"
    LOG_TO_FILE: bool = True
    LOG_DIR: str = "Logs"
    LOG_FILE_NAME: str = "log.txt"
    LOG_RETENTION_DAYS: int = 31

    # ── HTTP access log ───────────────────────
    HTTP_LOG_REQUEST_BODY_LIMIT: int = 4096
    HTTP_LOG_RESPONSE_BODY_LIMIT: int = 4096

    # ── Gates ─────────────────────────────────
    MUTATING_METHODS: list[str] = ["PUT", "POST"]

    # ── API documentation (development only) ──
    OPENAPI_URL: str = "/swagger/v1/swagger.json"
    DOCS_URL: str = "/swagger"

    # ── Serialization ─────────────────────────
    JSON_INDENT: int = 2

    model_config = {"env_file": ["../.env", ".env"], "extra": "ignore"}

    @property
    def IS_DEVELOPMENT(self) -> bool:
        """True when running in the development environment."""
        return self.APP_ENV.lower() == Environment.DEVELOPMENT


settings = Settings()
