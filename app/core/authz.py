"""Role authorization, applied in two layers.

The edge layer (``allow``) is a pure function of the request path and the
caller's role, evaluated by the HTTP middleware before a handler runs. It only
lists routes that are role-exclusive as a whole.

The resource layer (``authorize``/``ensure``) runs inside the services, where
the record being touched is known: a caller passes when their role holds the
capability, or when they own the record.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from app.config import settings
from app.core.errors import AuthenticationRequired, Forbidden, error_response
from app.core.security import InvalidToken, SessionIdentity, verify_token
from app.models.user import Role

logger = logging.getLogger(__name__)

ELEVATED = frozenset({Role.ADMIN.value, Role.OWNER.value})
OWNER_ONLY = frozenset({Role.OWNER.value})

# route prefix -> roles allowed through the edge
ROUTE_POLICY: dict[str, frozenset] = {
    f"{settings.API_PREFIX}/users": ELEVATED,
}

CAPABILITIES: dict[str, frozenset] = {
    "transactions:view_all": ELEVATED,
    "transactions:modify_any": ELEVATED,
    "users:manage": ELEVATED,
    "users:delete": OWNER_ONLY,
    "activity:view_all": OWNER_ONLY,
    "dashboard:global": ELEVATED,
}

PUBLIC_PATHS = (
    f"{settings.API_PREFIX}/auth/register",
    f"{settings.API_PREFIX}/auth/login",
    "/health",
    "/docs",
    "/redoc",
    "/openapi.json",
)


@dataclass(frozen=True)
class RequestContext:
    """Identity of the caller for a single request."""

    user_id: int
    name: str
    email: str
    role: str

    @classmethod
    def from_identity(cls, identity: SessionIdentity) -> "RequestContext":
        return cls(user_id=identity.id, name=identity.name, email=identity.email, role=identity.role)

    def can(self, capability: str) -> bool:
        return self.role in CAPABILITIES.get(capability, frozenset())


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.allowed


def _matches(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix.rstrip("/") + "/")


def allow(path: str, role: str) -> bool:
    for prefix, roles in ROUTE_POLICY.items():
        if _matches(path, prefix) and role not in roles:
            return False
    return True


def is_public(path: str) -> bool:
    return any(_matches(path, p) for p in PUBLIC_PATHS)


def authorize(ctx: RequestContext, capability: str, owner_id: Optional[int] = None) -> Decision:
    if ctx.can(capability):
        return Decision(True, "role")
    if owner_id is not None and owner_id == ctx.user_id:
        return Decision(True, "owner")
    return Decision(False, f"role {ctx.role} lacks {capability}")


def ensure(ctx: RequestContext, capability: str, owner_id: Optional[int] = None,
           message: str = "Forbidden: Insufficient permissions") -> None:
    decision = authorize(ctx, capability, owner_id)
    if not decision:
        logger.warning("Denied user=%s: %s", ctx.user_id, decision.reason)
        raise Forbidden(message)


async def session_guard(request: Request, call_next):
    """HTTP middleware: decode the session cookie and apply the edge policy."""
    path = request.url.path
    if request.method == "OPTIONS" or is_public(path):
        return await call_next(request)

    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not token:
        return error_response(401, AuthenticationRequired().message)

    try:
        identity = verify_token(token)
    except InvalidToken as e:
        logger.warning("Rejected session token on %s: %s", path, e)
        return error_response(401, "Invalid or expired token")

    if not allow(path, identity.role):
        logger.warning("Edge denied %s for user=%s role=%s", path, identity.id, identity.role)
        return error_response(403, Forbidden().message)

    request.state.identity = identity
    return await call_next(request)


def get_context(request: Request) -> RequestContext:
    identity = getattr(request.state, "identity", None)
    if identity is None:
        raise AuthenticationRequired()
    return RequestContext.from_identity(identity)
