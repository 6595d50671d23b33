from pydantic import BaseModel, ConfigDict


class TokenPayload(BaseModel):
    sub: str  # Subject (Discord user id)
    exp: int  # Expiration timestamp
    iat: int  # Issued at timestamp
    username: str
    discriminator: str = ""
    avatar: str | None = None
    guild_id: str = ""  # Required guild at issuance time


class Identity(BaseModel):
    """Authenticated principal, re-derived from the session token on every request."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    username: str
    discriminator: str = ""
    avatar: str | None = None
    guild_id: str = ""


class MeResponse(BaseModel):
    user_id: str
    username: str
    discriminator: str
    avatar: str | None = None


class MessageResponse(BaseModel):
    message: str
