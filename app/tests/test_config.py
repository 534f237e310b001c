from app.config import Config


def test_config_defaults(monkeypatch):
    for name in ("VEEQO_STORE", "VEEQO_ACCESS_TOKEN", "REQUEST_TIMEOUT", "CACHE_TTL_MINUTES",
                 "STALE_CHECK_INTERVAL", "CORS_ORIGINS", "SENTRY_DSN", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)

    config = Config()

    assert config.has_veeqo is False
    assert config.has_sentry is False
    assert config.REQUEST_TIMEOUT == 0
    assert config.CACHE_TTL_MINUTES == 240
    assert config.STALE_CHECK_INTERVAL == 60
    assert config.CORS_ORIGINS == ["http://localhost:3000"]
    assert config.LOG_LEVEL == "INFO"


def test_config_from_environment(monkeypatch):
    monkeypatch.setenv("VEEQO_STORE", "https://api.veeqo.com/")
    monkeypatch.setenv("VEEQO_ACCESS_TOKEN", "token")
    monkeypatch.setenv("CORS_ORIGINS", "http://localhost:3000, https://dashboard.example.com")
    monkeypatch.setenv("REQUEST_TIMEOUT", "30")

    config = Config()

    assert config.has_veeqo is True
    assert config.VEEQO_STORE == "https://api.veeqo.com"
    assert config.REQUEST_TIMEOUT == 30
    assert config.CORS_ORIGINS == ["http://localhost:3000", "https://dashboard.example.com"]
