from dataclasses import dataclass
from typing import Optional, Union
import datetime
import logging

import bcrypt
import jwt
from bson import ObjectId

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
ISSUER = "blog"
# bcrypt only looks at the first 72 bytes of a password
MAX_PASSWORD_BYTES = 72


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def check_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # malformed stored hash or over-long password
        return False


@dataclass(frozen=True)
class Verified:
    user_id: str
    username: str
    issued_at: int


@dataclass(frozen=True)
class Invalid:
    reason: str


VerifyResult = Union[Verified, Invalid]


class TokenService:
    """
    Issues and verifies signed session tokens.

    The token carries the user's id (``sub``) and username. There is no
    server-side revocation: logging out only drops the client's copy.
    """

    def __init__(self, secret: str, expires: datetime.timedelta = datetime.timedelta(days=15)):
        if not secret:
            raise ValueError("A signing secret is required")
        self._secret = secret
        self._expires = expires

    def issue(self, user_id: str, username: str) -> str:
        now = datetime.datetime.now(datetime.timezone.utc)
        payload = {
            "iss": ISSUER,
            "sub": str(user_id),
            "username": username,
            "iat": now,
            "exp": now + self._expires,
            "jti": str(ObjectId()),
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)

    def verify(self, token: Optional[Union[str, bytes]]) -> VerifyResult:
        """
        Return ``Verified`` for a well-formed, correctly signed, unexpired
        token and ``Invalid`` for anything else. Never raises.
        """
        if not token:
            return Invalid("missing")
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                issuer=ISSUER,
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            return Invalid("expired")
        except jwt.PyJWTError as exc:
            logger.debug("Rejected session token: %s", exc)
            return Invalid("malformed")

        username = payload.get("username")
        if not isinstance(username, str):
            return Invalid("malformed")
        return Verified(
            user_id=payload["sub"],
            username=username,
            issued_at=int(payload["iat"]),
        )
