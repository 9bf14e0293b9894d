import pytest
from pydantic import ValidationError

from invoice_sync.infrastructure.config.settings import Settings


@pytest.fixture
def env(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql+asyncpg://localhost/invoices")
    monkeypatch.setenv("S3_BUCKET", "invoices")
    return monkeypatch


class TestSettings:
    def test_defaults(self, env):
        settings = Settings(_env_file=None)

        assert settings.invoice_keyword == "invoice"
        assert settings.token_refresh_leeway_seconds == 60
        assert settings.sync_interval_seconds == 300
        assert settings.outlook_mark_read is False

    def test_database_url_is_required(self, env):
        env.setenv("DATABASE_URL", "")

        with pytest.raises(ValidationError, match="DATABASE_URL is required"):
            Settings(_env_file=None)

    def test_bucket_is_required_for_s3(self, env):
        env.delenv("S3_BUCKET")

        with pytest.raises(ValidationError, match="s3_bucket is required"):
            Settings(_env_file=None)

    def test_unsupported_storage_backend(self, env):
        env.setenv("STORAGE_BACKEND", "local")

        with pytest.raises(ValidationError, match="Invalid storage_backend"):
            Settings(_env_file=None)

    def test_interval_must_be_positive(self, env):
        env.setenv("SYNC_INTERVAL_SECONDS", "0")

        with pytest.raises(ValidationError):
            Settings(_env_file=None)
