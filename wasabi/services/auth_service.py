import enum
import logging
import secrets
from dataclasses import dataclass

from fastapi import status

from wasabi.schemas.auth import Identity
from wasabi.utils.discord import DiscordClient, IdentityProviderError
from wasabi.utils.tokens import SessionTokenCodec, SigningError, generate_state_token

logger = logging.getLogger(__name__)


class LoginState(str, enum.Enum):
    ANONYMOUS = "anonymous"
    STATE_ISSUED = "state_issued"
    CALLBACK_RECEIVED = "callback_received"
    AUTHENTICATED = "authenticated"
    REJECTED = "rejected"


@dataclass(frozen=True)
class LoginRedirect:
    state: str
    url: str


@dataclass(frozen=True)
class LoginOutcome:
    login_state: LoginState
    status_code: int
    detail: str | None = None
    redirect_url: str | None = None
    session_token: str | None = None
    # State the attempt was in when it ended
    from_state: LoginState = LoginState.ANONYMOUS

    @property
    def authenticated(self) -> bool:
        return self.login_state == LoginState.AUTHENTICATED

    @property
    def consume_state(self) -> bool:
        """The state cookie is single use once it has matched."""
        return self.from_state == LoginState.CALLBACK_RECEIVED


def _states_match(expected: str | None, received: str | None) -> bool:
    if not expected or not received:
        return False
    return secrets.compare_digest(expected.encode(), received.encode())


class AuthorizationGate:
    """Drives one OAuth2 login from the redirect to the provider up to a minted session."""

    def __init__(
        self,
        provider: DiscordClient,
        codec: SessionTokenCodec,
        frontend_origin: str,
        required_guild_id: str = "",
    ):
        self.provider = provider
        self.codec = codec
        self.frontend_origin = frontend_origin
        self.required_guild_id = required_guild_id

    def begin_login(self) -> LoginRedirect:
        state = generate_state_token()
        return LoginRedirect(state=state, url=self.provider.authorization_url(state))

    def _reject(self, status_code: int, detail: str, from_state: LoginState) -> LoginOutcome:
        return LoginOutcome(
            login_state=LoginState.REJECTED,
            status_code=status_code,
            detail=detail,
            from_state=from_state,
        )

    async def complete_login(
        self,
        code: str | None,
        state: str | None,
        state_cookie: str | None,
        error: str | None = None,
    ) -> LoginOutcome:
        """
        Finish the login started by begin_login.

        The state comparison runs before any call to the provider; once it has
        matched the attempt is CALLBACK_RECEIVED and every outcome consumes the
        state cookie.
        """
        current = LoginState.STATE_ISSUED if state_cookie else LoginState.ANONYMOUS

        if error:
            logger.info("Provider denied authorization: %s", error)
            return LoginOutcome(
                login_state=LoginState.REJECTED,
                status_code=status.HTTP_307_TEMPORARY_REDIRECT,
                redirect_url=f"{self.frontend_origin}?error=access_denied",
                from_state=current,
            )

        if not code:
            return self._reject(
                status.HTTP_400_BAD_REQUEST, "Authorization code is required", current
            )

        if not _states_match(state_cookie, state):
            logger.debug("OAuth state mismatch on callback")
            return self._reject(
                status.HTTP_400_BAD_REQUEST, "Invalid state - possible CSRF attack", current
            )

        current = LoginState.CALLBACK_RECEIVED

        try:
            access_token = await self.provider.exchange_code(code)
        except IdentityProviderError as e:
            logger.error("Failed to exchange authorization code: %s", e)
            return self._reject(
                status.HTTP_401_UNAUTHORIZED, "Could not authenticate with Discord", current
            )

        try:
            profile = await self.provider.fetch_profile(access_token)
        except IdentityProviderError as e:
            logger.error("Failed to fetch Discord profile: %s", e)
            return self._reject(
                status.HTTP_500_INTERNAL_SERVER_ERROR, "Could not load user profile", current
            )

        try:
            is_member = await self.provider.fetch_membership(access_token)
        except IdentityProviderError as e:
            logger.error("Failed to verify guild membership for %s: %s", profile.id, e)
            return self._reject(
                status.HTTP_401_UNAUTHORIZED,
                "Could not verify Discord server membership",
                current,
            )

        if not is_member:
            logger.info("User %s is not a member of guild %s", profile.id, self.required_guild_id)
            return self._reject(
                status.HTTP_403_FORBIDDEN,
                "You must be a member of the Discord server to use Wasabi",
                current,
            )

        identity = Identity(
            user_id=profile.id,
            username=profile.username,
            discriminator=profile.discriminator,
            avatar=profile.avatar,
            guild_id=self.required_guild_id,
        )
        try:
            token = self.codec.issue(identity)
        except SigningError as e:
            logger.error("Failed to sign session token for %s: %s", profile.id, e)
            return self._reject(
                status.HTTP_500_INTERNAL_SERVER_ERROR, "Could not create session", current
            )

        logger.info("User %s (%s) logged in", profile.id, profile.username)
        return LoginOutcome(
            login_state=LoginState.AUTHENTICATED,
            status_code=status.HTTP_307_TEMPORARY_REDIRECT,
            redirect_url=self.frontend_origin,
            session_token=token,
            from_state=current,
        )
