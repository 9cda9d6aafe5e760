import sys

from pydantic_settings import BaseSettings

_ENV_FILE = None if "pytest" in sys.modules else ".env"


class Settings(BaseSettings):
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    STORAGE_BACKEND: str = "memory"

    LARGE_HIERARCHY_THRESHOLD: int = 500
    MAX_CHILDREN_PER_ROW: int = 5
    VIEWPORT_BUFFER: float = 300.0

    DEFAULT_EMPLOYEE_TITLE: str = "Unknown Title"

    model_config = {
        "env_file": _ENV_FILE,
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
    }


settings = Settings()
