"""Identity collaborator: JWT bearer tokens carrying the actor id and role.

Tokens are issued by the platform's auth service; this app only decodes them
and trusts the claims. create_access_token exists for scripts and tests."""
import enum
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

from app.config import get_settings

settings = get_settings()


class ActorRole(str, enum.Enum):
    tenant = "tenant"
    owner = "owner"
    admin = "admin"


MANAGER_ROLES = frozenset({ActorRole.owner, ActorRole.admin})


@dataclass(frozen=True)
class Actor:
    id: int
    role: ActorRole
    email: str | None = None

    @property
    def is_manager(self) -> bool:
        return self.role in MANAGER_ROLES


def create_access_token(user_id: int, role: ActorRole, email: str | None = None) -> str:
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_access_token_expire_minutes)
    # PyJWT expects "sub" to be a string
    payload = {"sub": str(user_id), "role": ActorRole(role).value, "exp": expire}
    if email:
        payload["email"] = email
    raw = jwt.encode(
        payload,
        settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return raw if isinstance(raw, str) else raw.decode("utf-8")


def decode_token_with_error(token: str) -> tuple[dict | None, str | None]:
    """Decode JWT; returns (payload, error_message)."""
    if not token or not isinstance(token, str):
        return None, "empty token"
    token = token.strip()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
        return payload, None
    except jwt.ExpiredSignatureError as e:
        return None, str(e)
    except jwt.PyJWTError as e:
        return None, str(e)


def actor_from_payload(payload: dict) -> Actor | None:
    try:
        user_id = int(payload.get("sub"))
        role = ActorRole(payload.get("role"))
    except (TypeError, ValueError):
        return None
    return Actor(id=user_id, role=role, email=payload.get("email"))
