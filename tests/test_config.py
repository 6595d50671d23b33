import logging

import pytest
from pydantic import ValidationError

from wasabi.config import DEFAULT_FRONTEND_ORIGIN, Settings


def _settings(**overrides) -> Settings:
    values = {
        "discord_client_id": "client-id",
        "discord_client_secret": "client-secret",
        "discord_redirect_uri": "http://localhost:8080/api/v1/auth/callback",
        "discord_required_guild_id": "G1",
        "jwt_secret": "secret",
        "database_url": "postgresql+asyncpg://wasabi@localhost/wasabi",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestOrigins:
    """Tests for CORS origin handling."""

    def test_default_frontend(self):
        settings = _settings(frontend_origin="")
        assert settings.frontend_redirect_origin == DEFAULT_FRONTEND_ORIGIN
        assert settings.cors_origins == [DEFAULT_FRONTEND_ORIGIN]

    def test_merge_normalizes_and_dedupes(self):
        """Test that both variables are split, trimmed, stripped of slashes and merged."""
        settings = _settings(
            frontend_origin=" https://wasabi.example.com/ , http://localhost:5173",
            allowed_origins="http://localhost:5173/,https://admin.example.com,,",
        )
        assert settings.cors_origins == [
            "https://wasabi.example.com",
            "http://localhost:5173",
            "https://admin.example.com",
        ]

    def test_redirect_uses_first_frontend_origin(self):
        settings = _settings(frontend_origin="https://wasabi.example.com/,http://localhost:5173")
        assert settings.frontend_redirect_origin == "https://wasabi.example.com"

    def test_origins_read_from_environment(self, monkeypatch):
        monkeypatch.setenv("FRONTEND_ORIGIN", "https://wasabi.example.com")
        monkeypatch.setenv("ALLOWED_ORIGINS", "https://admin.example.com")
        settings = Settings(_env_file=None)
        assert settings.cors_origins == ["https://wasabi.example.com", "https://admin.example.com"]


class TestValidateConfig:
    """Tests for startup configuration checks."""

    def test_complete_configuration(self):
        _settings().validate_config()

    def test_missing_values_listed(self):
        settings = _settings(discord_client_secret="", jwt_secret="  ")
        with pytest.raises(RuntimeError) as exc_info:
            settings.validate_config()
        message = str(exc_info.value)
        assert "DISCORD_CLIENT_SECRET" in message
        assert "JWT_SECRET" in message
        assert "DISCORD_CLIENT_ID" not in message

    def test_guild_required_outside_debug(self):
        settings = _settings(discord_required_guild_id="", debug=False)
        with pytest.raises(RuntimeError, match="DISCORD_REQUIRED_GUILD_ID"):
            settings.validate_config()

    def test_debug_allows_open_guild(self, caplog):
        """Test that debug mode starts without a guild but says so."""
        settings = _settings(discord_required_guild_id="", debug=True)
        with caplog.at_level(logging.WARNING, logger="wasabi.config"):
            settings.validate_config()
        assert "not enforced" in caplog.text

    def test_settings_are_immutable(self):
        settings = _settings()
        with pytest.raises(ValidationError):
            settings.jwt_secret = "changed"

    def test_upload_limit_in_bytes(self):
        assert _settings(max_upload_size_mb=2).max_upload_bytes == 2 * 1024 * 1024


class TestWhitespace:
    """Tests for trimming configuration values."""

    def test_values_are_trimmed(self):
        settings = _settings(discord_required_guild_id=" G1 ", jwt_secret="\tsecret\n")
        assert settings.discord_required_guild_id == "G1"
        assert settings.jwt_secret == "secret"

    def test_environment_values_are_trimmed(self, monkeypatch):
        """Test that padded environment values match the ids Discord returns."""
        monkeypatch.setenv("DISCORD_REQUIRED_GUILD_ID", "  G1  ")
        monkeypatch.setenv("DISCORD_CLIENT_ID", " client-id")
        settings = Settings(_env_file=None)
        assert settings.discord_required_guild_id == "G1"
        assert settings.discord_client_id == "client-id"

    def test_whitespace_only_value_is_missing(self):
        settings = _settings(discord_redirect_uri="   ")
        assert settings.discord_redirect_uri == ""
        with pytest.raises(RuntimeError, match="DISCORD_REDIRECT_URI"):
            settings.validate_config()
