import httpx
import pytest
from fastapi.testclient import TestClient

from onemin2api.config import Settings
from onemin2api.main import create_app
from tests.helpers import Upstream

ENV_VARS = (
    "ONEMIN_API_KEY",
    "ONEMIN_BASE_URL",
    "ONEMIN_ASSET_BASE_URL",
    "ENVIRONMENT",
    "RATE_LIMIT_MAX",
    "RATE_LIMIT_WINDOW_SECONDS",
    "CORS_ORIGINS",
    "UPSTREAM_HTTP2",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def make_settings():
    def factory(**overrides) -> Settings:
        values = {"rate_limit_max": 0}
        values.update(overrides)
        return Settings(_env_file=None, **values)
    return factory


@pytest.fixture
def settings(make_settings):
    return make_settings()


@pytest.fixture
def upstream():
    return Upstream()


@pytest.fixture
def make_client(upstream):
    clients = []

    def factory(settings: Settings) -> TestClient:
        app = create_app(settings, transport=httpx.MockTransport(upstream))
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield factory
    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client, settings):
    return make_client(settings)


@pytest.fixture
def auth_headers():
    return {"Authorization": "Bearer test-key"}
