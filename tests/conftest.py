import pytest
from fastapi.testclient import TestClient
from main import app
from toolkit.api.dependencies import get_static_dir, get_tools, get_upload_dir
from toolkit.core.config import ToolkitConfig
from toolkit.services.tools import Tools

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00\x00\x00\rIHDR" + bytes(range(256)) * 4
JPEG_BYTES = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00" + bytes(range(256)) * 2

@pytest.fixture
def toolkit_config():
    """Configuration shared by the tools fixture and the test app."""
    return ToolkitConfig()

@pytest.fixture
def tools(toolkit_config):
    return Tools(toolkit_config)

@pytest.fixture
def upload_dir(tmp_path):
    return tmp_path / "uploads"

@pytest.fixture
def static_dir(tmp_path):
    """Static directory holding a small image to download."""
    directory = tmp_path / "static"
    directory.mkdir()
    (directory / "pic.png").write_bytes(PNG_BYTES)
    return directory

@pytest.fixture
def test_client(tools, upload_dir, static_dir):
    """Create a test client whose dependencies point at temporary directories."""
    app.dependency_overrides[get_tools] = lambda: tools
    app.dependency_overrides[get_upload_dir] = lambda: upload_dir
    app.dependency_overrides[get_static_dir] = lambda: static_dir

    yield TestClient(app)

    app.dependency_overrides.clear()

@pytest.fixture
def png_bytes():
    return PNG_BYTES

@pytest.fixture
def jpeg_bytes():
    return JPEG_BYTES
