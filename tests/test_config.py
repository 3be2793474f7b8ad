import httpx
import pytest

from onemin2api.config import Settings
from onemin2api.services.rate_limiter import FixedWindowRateLimiter
from onemin2api.utils import http_client
from onemin2api.utils.file_utils import resolve_upload_meta


def test_defaults():
    settings = Settings(_env_file=None)
    assert settings.onemin_base_url == "https://api.1min.ai"
    assert settings.asset_base_url == "https://asset.1min.ai"
    assert settings.port == 3456
    assert settings.rate_limit_window_seconds == 900
    assert settings.rate_limit_max == 100
    assert settings.cors_origins == ["*"]
    assert settings.get_config_errors() == []


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("ONEMIN_API_KEY", "from-env")
    monkeypatch.setenv("CORS_ORIGINS", "https://a.com, https://b.com")
    monkeypatch.setenv("PORT", "8080")

    settings = Settings(_env_file=None)

    assert settings.onemin_api_key == "from-env"
    assert settings.cors_origins == ["https://a.com", "https://b.com"]
    assert settings.port == 8080


def test_cors_origins_json_list(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", '["https://a.com"]')
    assert Settings(_env_file=None).cors_origins == ["https://a.com"]


def test_config_errors(make_settings):
    settings = make_settings(environment="production", port=70000, rate_limit_window_seconds=0)
    errors = settings.get_config_errors()
    assert "ONEMIN_API_KEY is required in production mode" in errors
    assert "PORT must be between 1 and 65535" in errors
    assert "RATE_LIMIT_WINDOW_SECONDS must be > 0" in errors


def test_fixed_window_rate_limiter():
    now = [1000.0]
    limiter = FixedWindowRateLimiter(limit=2, window_seconds=60, clock=lambda: now[0])

    assert limiter.hit("1.2.3.4").allowed
    assert limiter.hit("1.2.3.4").allowed
    blocked = limiter.hit("1.2.3.4")
    assert not blocked.allowed
    assert blocked.remaining == 0
    assert limiter.hit("5.6.7.8").allowed

    now[0] += 60
    assert limiter.hit("1.2.3.4").allowed


def test_rate_limiter_drops_stale_keys_from_other_clients():
    now = [0.0]
    limiter = FixedWindowRateLimiter(limit=5, window_seconds=60, clock=lambda: now[0])

    for window in range(5):
        for i in range(100):
            limiter.hit(f"10.0.{window}.{i}")
        now[0] += 60

    assert len(limiter._buckets) == 100
    assert all(key.startswith("10.0.4.") for key in limiter._buckets)


def test_rate_limiter_disabled():
    limiter = FixedWindowRateLimiter(limit=0, window_seconds=60)
    assert all(limiter.hit("ip").allowed for _ in range(500))


def test_resolve_upload_meta():
    assert resolve_upload_meta("voice.wav", None, "audio.mp3") == ("voice.wav", "audio/wav")
    assert resolve_upload_meta(None, "image/png", "image.jpg") == ("image.png", "image/png")
    assert resolve_upload_meta(None, None, "audio.mp3") == ("audio.mp3", "audio/mpeg")
    assert resolve_upload_meta("blob", "application/octet-stream", "upload") == ("blob", "application/octet-stream")


def test_http2_setting(monkeypatch):
    assert Settings(_env_file=None).upstream_http2 is True
    monkeypatch.setenv("UPSTREAM_HTTP2", "false")
    assert Settings(_env_file=None).upstream_http2 is False


@pytest.mark.parametrize("enabled", [True, False])
def test_async_client_http2_follows_setting(monkeypatch, make_settings, enabled):
    captured = {}

    class RecordingClient:
        def __init__(self, **kwargs):
            captured.update(kwargs)

    monkeypatch.setattr(http_client.httpx, "AsyncClient", RecordingClient)
    transport = httpx.MockTransport(lambda request: httpx.Response(200))

    http_client.create_async_client(make_settings(upstream_http2=enabled), transport=transport)

    assert captured["http2"] is enabled
    assert captured["transport"] is transport
