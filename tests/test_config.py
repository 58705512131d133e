"""Tests for environment driven settings."""

from app.core.config import Settings


class TestCorsOrigins:

    def test_comma_separated(self, monkeypatch):
        monkeypatch.setenv("CORS_ORIGINS", "https://a.example.com, https://b.example.com")
        settings = Settings(_env_file=None)
        assert settings.cors_origins == ["https://a.example.com", "https://b.example.com"]

    def test_json_list(self, monkeypatch):
        monkeypatch.setenv("CORS_ORIGINS", '["https://a.example.com"]')
        settings = Settings(_env_file=None)
        assert settings.cors_origins == ["https://a.example.com"]

    def test_default(self, monkeypatch):
        monkeypatch.delenv("CORS_ORIGINS", raising=False)
        settings = Settings(_env_file=None)
        assert "http://localhost:3000" in settings.cors_origins
