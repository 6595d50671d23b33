import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from wasabi.dependencies import SettingsDep, get_session_codec
from wasabi.schemas.auth import Identity
from wasabi.utils.tokens import SessionTokenCodec, SessionTokenError

logger = logging.getLogger(__name__)

SESSION_COOKIE = "session"
STATE_COOKIE = "oauth_state"
SESSION_MAX_AGE = 24 * 60 * 60
STATE_MAX_AGE = 300


def get_current_identity(
    request: Request,
    settings: SettingsDep,
    codec: Annotated[SessionTokenCodec, Depends(get_session_codec)],
) -> Identity:
    """
    Resolve the caller from the session cookie.

    The guild claim is compared against the configured guild rather than
    re-queried from Discord, so a user removed from the guild keeps access
    until the token expires.
    """
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    try:
        identity = codec.verify(token)
    except SessionTokenError as e:
        logger.debug("Rejected session token: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session",
        ) from None

    required_guild = settings.discord_required_guild_id
    if required_guild and identity.guild_id != required_guild:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You must be a member of the Discord server to use Wasabi",
        )

    return identity


# Type alias for dependency injection
CurrentIdentity = Annotated[Identity, Depends(get_current_identity)]
