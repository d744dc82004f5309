"""
Admin authentication: credential check and signed bearer tokens.

Tokens are stateless HS256 JWTs carrying their own expiry. Nothing is kept
server-side, so a token cannot be revoked before it expires: logout only
discards it on the client.
"""

import hmac
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from errors import AuthenticationError

logger = logging.getLogger("portfolio.auth")

ALGORITHM = "HS256"
ADMIN_ROLE = "admin"
DEFAULT_TOKEN_TTL = timedelta(hours=24)

# pbkdf2_sha256 avoids the external bcrypt backend
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Pull the credential out of an ``Authorization: Bearer <token>`` header."""
    if not authorization or not authorization.lower().startswith("bearer "):
        return None
    token = authorization.split(" ", 1)[1].strip()
    return token or None


class TokenService:
    def __init__(
        self,
        secret: str,
        subject: str,
        ttl: timedelta = DEFAULT_TOKEN_TTL,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._secret = secret
        self._subject = subject
        self._ttl = ttl
        self._clock = clock

    def issue(self) -> str:
        now = self._clock()
        claims = {
            "sub": self._subject,
            "role": ADMIN_ROLE,
            "iat": int(now.timestamp()),
            "exp": int((now + self._ttl).timestamp()),
        }
        return jwt.encode(claims, self._secret, algorithm=ALGORITHM)

    def validate(self, token: Optional[str]) -> bool:
        """True iff the token is signed by us, names the admin and is unexpired.

        Never raises: anything malformed is simply invalid.
        """
        if not token or not isinstance(token, str):
            return False
        try:
            # Expiry is checked below against our own clock
            payload = jwt.decode(
                token, self._secret, algorithms=[ALGORITHM], options={"verify_exp": False}
            )
        except JWTError:
            return False

        exp = payload.get("exp")
        if not isinstance(exp, (int, float)):
            return False
        if payload.get("sub") != self._subject or payload.get("role") != ADMIN_ROLE:
            return False
        return self._clock().timestamp() < exp

    def revoke(self, token: Optional[str]) -> None:
        # Stateless tokens stay valid until they expire.
        return None


class AdminCredentials:
    """The single configured admin identity."""

    def __init__(self, username: str, password: Optional[str] = None, password_hash: Optional[str] = None):
        if not password_hash and password is None:
            raise ValueError("either password or password_hash is required")
        self.username = username
        self._password_hash = password_hash or pwd_context.hash(password)

    def verify(self, username: str, password: str) -> bool:
        # Always run the hash check so timing does not reveal which field was wrong
        user_ok = hmac.compare_digest(username.encode(), self.username.encode())
        try:
            password_ok = pwd_context.verify(password, self._password_hash)
        except ValueError:
            password_ok = False
        return user_ok and password_ok


class Authenticator:
    def __init__(self, credentials: AdminCredentials, tokens: TokenService):
        self.credentials = credentials
        self.tokens = tokens

    def login(self, username: str, password: str) -> str:
        if not self.credentials.verify(username, password):
            logger.warning("Rejected admin login attempt")
            raise AuthenticationError("Invalid credentials")
        logger.info("Admin logged in")
        return self.tokens.issue()

    def logout(self, token: Optional[str]) -> None:
        self.tokens.revoke(token)
        logger.info("Admin logged out")

    def is_authenticated(self, authorization: Optional[str]) -> bool:
        return self.tokens.validate(bearer_token(authorization))
