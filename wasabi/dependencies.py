from typing import Annotated

from fastapi import Depends, Request

from wasabi.config import Settings
from wasabi.services.auth_service import AuthorizationGate
from wasabi.services.file_store import FfmpegEncoder, FileStore
from wasabi.utils.discord import DiscordClient
from wasabi.utils.tokens import SessionTokenCodec


def get_app_settings(request: Request) -> Settings:
    """Settings the running application was built with."""
    return request.app.state.settings


SettingsDep = Annotated[Settings, Depends(get_app_settings)]


def get_session_codec(settings: SettingsDep) -> SessionTokenCodec:
    return SessionTokenCodec(settings.jwt_secret)


def get_identity_provider(settings: SettingsDep) -> DiscordClient:
    return DiscordClient(settings)


def get_authorization_gate(
    settings: SettingsDep,
    provider: Annotated[DiscordClient, Depends(get_identity_provider)],
    codec: Annotated[SessionTokenCodec, Depends(get_session_codec)],
) -> AuthorizationGate:
    return AuthorizationGate(
        provider=provider,
        codec=codec,
        frontend_origin=settings.frontend_redirect_origin,
        required_guild_id=settings.discord_required_guild_id,
    )


def get_file_store(settings: SettingsDep) -> FileStore:
    return FileStore(
        settings.upload_dir,
        encoder=FfmpegEncoder(settings.ffmpeg_path),
        max_upload_bytes=settings.max_upload_bytes,
    )
