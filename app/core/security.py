import logging
from dataclasses import dataclass, asdict

from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired
from passlib.hash import bcrypt

from app.config import settings

logger = logging.getLogger(__name__)

TOKEN_SALT = "ledgerline-session"


class InvalidToken(Exception):
    pass


@dataclass(frozen=True)
class SessionIdentity:
    id: int
    name: str
    email: str
    role: str

    def to_dict(self) -> dict:
        return asdict(self)


def _serializer(secret_key: str | None = None) -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(secret_key or settings.SECRET_KEY, salt=TOKEN_SALT)


def hash_password(password: str) -> str:
    return bcrypt.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.verify(password, hashed)
    except ValueError:
        return False


def issue_token(identity: SessionIdentity, secret_key: str | None = None) -> str:
    return _serializer(secret_key).dumps(identity.to_dict())


def verify_token(token: str, max_age: int | None = None, secret_key: str | None = None) -> SessionIdentity:
    """Decode a session token; raises InvalidToken when expired, tampered or malformed."""
    if not token:
        raise InvalidToken("missing token")

    age = settings.session_max_age_seconds if max_age is None else max_age
    try:
        data = _serializer(secret_key).loads(token, max_age=age)
    except SignatureExpired as e:
        raise InvalidToken("token expired") from e
    except BadSignature as e:
        raise InvalidToken("bad signature") from e

    try:
        return SessionIdentity(
            id=int(data["id"]),
            name=str(data["name"]),
            email=str(data["email"]),
            role=str(data["role"]),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidToken("malformed payload") from e
