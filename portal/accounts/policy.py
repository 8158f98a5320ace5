"""Role and ownership rules for every state-changing or private endpoint."""
from __future__ import annotations

from dataclasses import dataclass

from portal.errors import AuthenticationRequired, InsufficientPrivilege

AUTHENTICATION_REQUIRED = "authentication required"
INSUFFICIENT_PRIVILEGE = "insufficient privilege"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str = ""
    status: int = 200

    def __bool__(self):
        return self.allowed


ALLOW = Decision(True)


def _is_authenticated(principal) -> bool:
    return principal is not None and getattr(principal, "is_authenticated", False)


def authorize(principal, role: str | None = None, owner_id: int | None = None) -> Decision:
    """Decide whether ``principal`` may act.

    ``role`` restricts the action to one role; ``owner_id`` scopes it to the
    principal owning the resource. Admins bypass owner scoping but never role
    scoping.
    """
    if not _is_authenticated(principal):
        return Decision(False, AUTHENTICATION_REQUIRED, 401)
    if role is not None and principal.role != role:
        return Decision(False, INSUFFICIENT_PRIVILEGE, 403)
    if owner_id is not None and principal.role != "admin" and principal.pk != owner_id:
        return Decision(False, INSUFFICIENT_PRIVILEGE, 403)
    return ALLOW


def enforce(principal, role: str | None = None, owner_id: int | None = None) -> None:
    """Like ``authorize`` but raises the matching portal error on denial."""
    decision = authorize(principal, role=role, owner_id=owner_id)
    if decision:
        return
    if decision.status == 401:
        raise AuthenticationRequired()
    raise InsufficientPrivilege()
