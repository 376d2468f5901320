import os
from pathlib import Path
from typing import List
from pydantic import BaseModel, ConfigDict
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

DEFAULT_MAX_FILE_SIZE = 1 << 30  # 1 GiB
DEFAULT_MAX_JSON_SIZE = 1 << 20  # 1 MiB

class Settings(BaseSettings):
    PROJECT_NAME: str = "Request Toolkit"
    API_PREFIX: str = "/api"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Storage settings
    UPLOAD_DIR: Path = Path("uploads")
    STATIC_DIR: Path = Path("static")
    RENAME_UPLOADS: bool = True

    # Request limits
    MAX_FILE_SIZE: int = DEFAULT_MAX_FILE_SIZE
    ALLOWED_FILE_TYPES: List[str] = []
    MAX_JSON_SIZE: int = DEFAULT_MAX_JSON_SIZE
    ALLOW_UNKNOWN_FIELDS: bool = False

    # Outbound requests
    PUSH_TIMEOUT_SECONDS: float = 30.0
    PUSH_ALLOWED_HOSTS: List[str] = []


class ToolkitConfig(BaseModel):
    """
    Limits and policies shared by every Tools operation.

    A size of 0 falls back to the package default.
    """
    model_config = ConfigDict(validate_assignment=True)

    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    allowed_file_types: List[str] = []
    max_json_size: int = DEFAULT_MAX_JSON_SIZE
    allow_unknown_fields: bool = False
    push_timeout: float = 30.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "ToolkitConfig":
        return cls(
            max_file_size=settings.MAX_FILE_SIZE,
            allowed_file_types=list(settings.ALLOWED_FILE_TYPES),
            max_json_size=settings.MAX_JSON_SIZE,
            allow_unknown_fields=settings.ALLOW_UNKNOWN_FIELDS,
            push_timeout=settings.PUSH_TIMEOUT_SECONDS,
        )

    @property
    def file_size_limit(self) -> int:
        return self.max_file_size or DEFAULT_MAX_FILE_SIZE

    @property
    def json_size_limit(self) -> int:
        return self.max_json_size or DEFAULT_MAX_JSON_SIZE

# Global settings instance
settings = Settings()
