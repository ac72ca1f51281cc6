import importlib
import os

import pytest

import app.core.config as config


def _restore_env(env_snapshot):
    """Restore a snapshot of specific env vars and reload settings."""
    for key, value in env_snapshot.items():
        if value is None:
            os.environ.pop(key, None)
        else:
            os.environ[key] = value
    importlib.reload(config)


def test_s3_bucket_and_region_aliases(monkeypatch):
    """S3 env aliases are honored and override defaults."""
    keys = ["S3_BUCKET", "S3_BUCKET_NAME", "S3_REGION", "AWS_REGION"]
    snapshot = {k: os.environ.get(k) for k in keys}

    try:
        monkeypatch.delenv("S3_BUCKET", raising=False)
        monkeypatch.setenv("S3_BUCKET_NAME", "alias-bucket")

        monkeypatch.delenv("S3_REGION", raising=False)
        monkeypatch.setenv("AWS_REGION", "eu-west-1")

        importlib.reload(config)

        assert config.settings.S3_BUCKET == "alias-bucket"
        assert config.settings.S3_REGION == "eu-west-1"
    finally:
        _restore_env(snapshot)


def test_cors_origins_accept_json_array(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", '["https://a.example"]')
    settings = config.Settings()
    assert settings.CORS_ORIGINS == ["https://a.example"]


def test_production_rejects_debug_and_weak_secret(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.setenv("DEBUG", "true")
    monkeypatch.setenv("SECRET_KEY", "changeme")
    monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://db.internal/courier")

    with pytest.raises(ValueError) as exc:
        config.Settings()

    assert "DEBUG=True is forbidden" in str(exc.value)
    assert "Insecure SECRET_KEY" in str(exc.value)
