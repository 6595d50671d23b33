import os

# Set test environment
os.environ["DEBUG"] = "true"
os.environ["JWT_SECRET"] = "test-secret-key"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["UPLOAD_DIR"] = "/tmp/wasabi_test_uploads"

from collections.abc import AsyncGenerator
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from wasabi.config import Settings
from wasabi.database import Base
from wasabi.dependencies import get_identity_provider
from wasabi.main import create_app
from wasabi.models import IntroPreference  # noqa: F401
from wasabi.schemas.auth import Identity
from wasabi.services.file_store import ConversionError, FileStore
from wasabi.utils.discord import DiscordClient
from wasabi.utils.tokens import SessionTokenCodec

REQUIRED_GUILD = "G1"
FRONTEND_ORIGIN = "http://localhost:5173"


class FakeDiscord:
    """Stand-in for the Discord API, served through httpx.MockTransport."""

    def __init__(self):
        self.profile = {"id": "42", "username": "bob", "discriminator": "0001", "avatar": "a1b2"}
        self.guilds = [{"id": "123"}, {"id": REQUIRED_GUILD}]
        self.token_status = 200
        self.profile_status = 200
        self.guilds_status = 200
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.endswith("/oauth2/token"):
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"error": "invalid_grant"})
            return httpx.Response(200, json={"access_token": "access-123", "token_type": "Bearer"})
        if path.endswith("/users/@me/guilds"):
            return httpx.Response(self.guilds_status, json=self.guilds)
        if path.endswith("/users/@me"):
            return httpx.Response(self.profile_status, json=self.profile)
        return httpx.Response(404)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


class FakeEncoder:
    """Encoder double that records its input and writes fixed bytes."""

    def __init__(self, output: bytes = b"converted-mp3", fail: bool = False):
        self.output = output
        self.fail = fail
        self.calls: list[tuple[Path, Path]] = []

    def convert(self, src: Path, dst: Path) -> None:
        self.calls.append((src, dst))
        dst.write_bytes(self.output[:4] if self.fail else self.output)
        if self.fail:
            raise ConversionError("ffmpeg failed (exit 1): invalid data")


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings pointing at a throwaway upload directory and database."""
    return Settings(
        _env_file=None,
        debug=True,
        discord_client_id="client-id",
        discord_client_secret="client-secret",
        discord_redirect_uri="http://test/api/v1/auth/callback",
        discord_required_guild_id=REQUIRED_GUILD,
        jwt_secret="test-secret-key",
        frontend_origin=FRONTEND_ORIGIN,
        allowed_origins="http://admin.example.com",
        database_url=os.getenv("TEST_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'test.db'}"),
        upload_dir=str(tmp_path / "uploads"),
    )


@pytest.fixture
def fake_discord() -> FakeDiscord:
    return FakeDiscord()


@pytest_asyncio.fixture
async def app(settings: Settings, fake_discord: FakeDiscord) -> AsyncGenerator[FastAPI, None]:
    """Create an app wired to the fake Discord API with its tables created."""
    application = create_app(settings)
    application.dependency_overrides[get_identity_provider] = lambda: DiscordClient(
        settings, transport=fake_discord.transport()
    )

    async with application.state.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield application

    await application.state.engine.dispose()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client for the app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def codec(settings: Settings) -> SessionTokenCodec:
    return SessionTokenCodec(settings.jwt_secret)


@pytest.fixture
def identity() -> Identity:
    return Identity(
        user_id="42",
        username="bob",
        discriminator="0001",
        avatar="a1b2",
        guild_id=REQUIRED_GUILD,
    )


@pytest.fixture
def session_headers(codec: SessionTokenCodec, identity: Identity) -> dict[str, str]:
    """Cookie header carrying a valid session for the test identity."""
    return {"Cookie": f"session={codec.issue(identity)}"}


@pytest.fixture
def encoder() -> FakeEncoder:
    return FakeEncoder()


@pytest.fixture
def failing_encoder() -> FakeEncoder:
    return FakeEncoder(fail=True)


@pytest.fixture
def store(settings: Settings, encoder: FakeEncoder) -> FileStore:
    return FileStore(settings.upload_dir, encoder=encoder)
