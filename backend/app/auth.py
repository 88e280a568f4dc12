"""Authorization gate — resolves bearer tokens to principals and checks roles.

``authenticate`` and ``require_role`` are pure functions of the header and the
credential service; the FastAPI dependencies below wire them to a request.
"""
import logging
from typing import Iterable, Optional

from fastapi import Depends, Header, Request

from app.errors import Forbidden, Unauthenticated
from app.models.event import Event
from app.models.user import UserRole
from app.schemas.user import Principal
from app.services.connection_registry import ConnectionRegistry
from app.services.credentials import CredentialService
from app.services.notifications import EmailNotifier

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def extract_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        return None
    token = authorization[len(BEARER_PREFIX):].strip()
    return token or None


def authenticate(authorization: Optional[str], credentials: CredentialService) -> Principal:
    token = extract_token(authorization)
    if token is None:
        raise Unauthenticated("No authentication token provided")
    principal = credentials.verify_token(token)
    if principal is None:
        raise Unauthenticated("Invalid or expired token")
    return principal


def require_role(
    allowed_roles: Iterable[UserRole],
    authorization: Optional[str],
    credentials: CredentialService,
) -> Principal:
    allowed = list(allowed_roles)
    principal = authenticate(authorization, credentials)
    if principal.role not in allowed:
        logger.info("User %s (%s) denied; requires %s", principal.user_id, principal.role.value,
                    [r.value for r in allowed])
        raise Forbidden(f"Access denied. Required role: {' or '.join(r.value for r in allowed)}")
    return principal


def can_modify(principal: Principal, event: Event) -> bool:
    """Organizer of the event or any ADMIN may update/delete it."""
    return principal.role == UserRole.admin or event.organizer_id == principal.user_id


# ── Request dependencies ───────────────────────────────────────────
def get_credentials(request: Request) -> CredentialService:
    return request.app.state.credentials


def get_registry(request: Request) -> ConnectionRegistry:
    return request.app.state.registry


def get_notifier(request: Request) -> EmailNotifier:
    return request.app.state.notifier


def get_current_principal(
    authorization: Optional[str] = Header(None),
    credentials: CredentialService = Depends(get_credentials),
) -> Principal:
    return authenticate(authorization, credentials)


def require_roles(*roles: UserRole):
    """Dependency factory: authenticated principal whose role is in ``roles``."""

    def _dependency(
        authorization: Optional[str] = Header(None),
        credentials: CredentialService = Depends(get_credentials),
    ) -> Principal:
        return require_role(roles, authorization, credentials)

    return _dependency


require_admin = require_roles(UserRole.admin)
require_organizer_or_admin = require_roles(UserRole.organizer, UserRole.admin)
