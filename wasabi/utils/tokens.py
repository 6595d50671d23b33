import logging
import secrets
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jws, jwt
from jose.exceptions import JWSError, JWSSignatureError
from pydantic import ValidationError

from wasabi.schemas.auth import Identity, TokenPayload

logger = logging.getLogger(__name__)

SESSION_ALGORITHM = "HS256"
# Any HMAC variant is accepted on verification; everything else (RS*, ES*,
# "none") is treated as an algorithm substitution attempt.
HMAC_ALGORITHMS = ["HS256", "HS384", "HS512"]
SESSION_LIFETIME = timedelta(hours=24)

STATE_TOKEN_BYTES = 32


class StateTokenError(Exception):
    """Raised when no unpredictable CSRF state could be generated."""

    pass


class SigningError(Exception):
    """Raised when a session token cannot be signed."""

    pass


class SessionTokenError(Exception):
    """Base class for session token verification failures."""

    pass


class MalformedTokenError(SessionTokenError):
    pass


class SignatureInvalidError(SessionTokenError):
    pass


class TokenExpiredError(SessionTokenError):
    pass


class AlgorithmMismatchError(SessionTokenError):
    pass


def generate_state_token() -> str:
    """Return a URL-safe anti-CSRF nonce with 256 bits of entropy."""
    try:
        return secrets.token_urlsafe(STATE_TOKEN_BYTES)
    except (NotImplementedError, OSError) as e:
        logger.error("Entropy source unavailable, refusing to issue OAuth state: %s", e)
        raise StateTokenError("Could not generate login state") from e


class SessionTokenCodec:
    """Issues and verifies the self-contained session tokens kept in the session cookie."""

    def __init__(self, secret: str, lifetime: timedelta = SESSION_LIFETIME):
        self._secret = secret
        self.lifetime = lifetime

    def issue(self, identity: Identity, now: datetime | None = None) -> str:
        if not self._secret:
            raise SigningError("Signing secret is not configured")

        issued_at = now or datetime.now(timezone.utc)
        claims = {
            "sub": identity.user_id,
            "username": identity.username,
            "discriminator": identity.discriminator,
            "avatar": identity.avatar,
            "guild_id": identity.guild_id,
            "iat": issued_at,
            "exp": issued_at + self.lifetime,
        }
        try:
            return jwt.encode(claims, self._secret, algorithm=SESSION_ALGORITHM)
        except (JWTError, JWSError) as e:
            raise SigningError(f"Could not sign session token: {e}") from e

    def verify(self, token: str) -> Identity:
        try:
            header = jwt.get_unverified_header(token)
        except JWTError as e:
            raise MalformedTokenError(str(e)) from None

        if header.get("alg") not in HMAC_ALGORITHMS:
            raise AlgorithmMismatchError(f"Unexpected signing algorithm: {header.get('alg')}")

        try:
            jws.verify(token, self._secret, algorithms=HMAC_ALGORITHMS)
        except JWSSignatureError:
            raise SignatureInvalidError("Signature verification failed") from None
        except JWSError as e:
            # jose reports a signature mismatch as a plain JWSError.
            if "Signature verification failed" in str(e):
                raise SignatureInvalidError("Signature verification failed") from None
            raise MalformedTokenError(str(e)) from None

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=HMAC_ALGORITHMS,
                options={"verify_exp": True},
            )
        except ExpiredSignatureError:
            raise TokenExpiredError("Session token has expired") from None
        except JWTError as e:
            raise MalformedTokenError(str(e)) from None

        try:
            claims = TokenPayload(**payload)
        except ValidationError as e:
            raise MalformedTokenError(f"Unexpected token claims: {e}") from None

        return Identity(
            user_id=claims.sub,
            username=claims.username,
            discriminator=claims.discriminator,
            avatar=claims.avatar,
            guild_id=claims.guild_id,
        )
