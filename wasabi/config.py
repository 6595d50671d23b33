import logging
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_FRONTEND_ORIGIN = "http://localhost:5173"


def _split_origins(raw: str) -> list[str]:
    origins = []
    for part in raw.split(","):
        origin = part.strip().rstrip("/")
        if origin:
            origins.append(origin)
    return origins


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Application
    app_name: str = "Wasabi Uploader"
    debug: bool = False
    log_level: str = Field(default="INFO")

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080)

    # CORS - FRONTEND_ORIGIN may hold several comma separated origins;
    # the first one is where logins are redirected back to.
    frontend_origin: str = Field(default=DEFAULT_FRONTEND_ORIGIN)
    allowed_origins: str = Field(default="")

    # Authentication - Discord OAuth2
    discord_client_id: str = Field(default="")
    discord_client_secret: str = Field(default="")
    discord_redirect_uri: str = Field(default="")
    discord_required_guild_id: str = Field(default="")
    discord_api_base: str = Field(default="https://discord.com/api")
    discord_authorize_url: str = Field(default="https://discord.com/oauth2/authorize")
    discord_timeout: float = Field(default=10.0)

    # Session tokens
    jwt_secret: str = Field(default="")
    cookie_secure: bool = False

    # Database
    database_url: str = Field(default="")
    database_echo: bool = False
    persistence_timeout: float = Field(default=5.0)

    # Storage
    upload_dir: str = Field(default="uploads")
    max_upload_size_mb: int = Field(default=32)
    ffmpeg_path: str = Field(default="ffmpeg")

    @field_validator("*", mode="before")
    @classmethod
    def strip_whitespace(cls, value):
        if isinstance(value, str):
            return value.strip()
        return value

    @property
    def frontend_redirect_origin(self) -> str:
        origins = _split_origins(self.frontend_origin)
        return origins[0] if origins else DEFAULT_FRONTEND_ORIGIN

    @property
    def cors_origins(self) -> list[str]:
        frontend = _split_origins(self.frontend_origin) or [DEFAULT_FRONTEND_ORIGIN]
        merged: list[str] = []
        for origin in frontend + _split_origins(self.allowed_origins):
            if origin not in merged:
                merged.append(origin)
        return merged

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024

    def validate_config(self) -> None:
        required = {
            "DISCORD_CLIENT_ID": self.discord_client_id,
            "DISCORD_CLIENT_SECRET": self.discord_client_secret,
            "DISCORD_REDIRECT_URI": self.discord_redirect_uri,
            "JWT_SECRET": self.jwt_secret,
            "DATABASE_URL": self.database_url,
        }
        # Without a required guild every Discord account is let in, which is
        # only acceptable for local development.
        if not self.debug:
            required["DISCORD_REQUIRED_GUILD_ID"] = self.discord_required_guild_id

        missing = [name for name, value in required.items() if not value]
        if missing:
            raise RuntimeError(f"Missing required configuration: {', '.join(missing)}")

        if not self.discord_required_guild_id:
            logger.warning("DISCORD_REQUIRED_GUILD_ID is not set; guild membership is not enforced")


@lru_cache
def get_settings() -> Settings:
    return Settings()
