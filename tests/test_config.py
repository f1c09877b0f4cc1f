import pytest

from fqdnFeed.config import FeedServiceConfig, load_settings


def test_defaults():
    cfg = FeedServiceConfig()
    assert cfg.feed.default_span_seconds == 86400
    assert cfg.feed.default_ttl_seconds == 60
    assert cfg.store.backend == "postgres"
    assert cfg.api.secret is None


def test_load_yaml(tmp_path):
    path = tmp_path / "fqdnfeed.yaml"
    path.write_text(
        "feed:\n"
        "  default_span_seconds: 3600\n"
        "store:\n"
        "  backend: redis\n"
        "  redis_url: redis://cache:6379/2\n"
        "api:\n"
        "  secret: abc\n"
    )
    cfg = FeedServiceConfig.load(str(path))
    assert cfg.feed.default_span_seconds == 3600
    assert cfg.store.backend == "redis"
    assert cfg.store.redis_url == "redis://cache:6379/2"
    assert cfg.api.secret == "abc"


def test_load_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        FeedServiceConfig.load(str(tmp_path / "absent.yaml"))


def test_load_invalid_values(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("store:\n  backend: sqlite\n")
    with pytest.raises(ValueError):
        FeedServiceConfig.load(str(path))


def test_env_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("FQDNFEED_SECRET", '"quoted"')
    monkeypatch.setenv("FQDNFEED_STORE_BACKEND", "Memory")
    monkeypatch.setenv("FQDNFEED_PG_DSN", "postgresql://u:p@db:5432/feeds")
    cfg = load_settings(str(tmp_path / "absent.yaml"))
    assert cfg.api.secret == "quoted"
    assert cfg.store.backend == "memory"
    assert cfg.store.pg_dsn == "postgresql://u:p@db:5432/feeds"
