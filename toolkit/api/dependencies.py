from pathlib import Path
from typing import AsyncGenerator, List
import httpx
from toolkit.core.config import ToolkitConfig, settings
from toolkit.services.tools import Tools

# Dependency to get a Tools instance configured from the environment
def get_tools() -> Tools:
    """
    Dependency to get Tools with limits taken from settings.
    """
    return Tools(ToolkitConfig.from_settings(settings))

def get_upload_dir() -> Path:
    return settings.UPLOAD_DIR

def get_static_dir() -> Path:
    return settings.STATIC_DIR

async def get_http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """
    Dependency yielding the client used to forward JSON to remote services.
    """
    async with httpx.AsyncClient(timeout=settings.PUSH_TIMEOUT_SECONDS) as client:
        yield client

def get_push_allowed_hosts() -> List[str]:
    return settings.PUSH_ALLOWED_HOSTS
