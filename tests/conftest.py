from pathlib import Path
import sys

import httpx
import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from fake_backend import FakeBackend  # noqa: E402
from transcode_console.auth import MemoryCredentialStore  # noqa: E402
from transcode_console.config import Settings  # noqa: E402
from transcode_console.models import User  # noqa: E402
from transcode_console.services.api_client import ApiClient  # noqa: E402


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def cfg():
    return Settings(api_base="http://test/api", page_size=10, recent_tasks_limit=5)


@pytest.fixture
def credentials():
    return MemoryCredentialStore(token="admin-token", user=User(username="admin", role="admin"))


@pytest.fixture
def transport(backend):
    return httpx.ASGITransport(app=backend.app)


@pytest.fixture
async def client(cfg, credentials, transport):
    api = ApiClient(cfg, credentials, transport=transport)
    yield api
    await api.aclose()
