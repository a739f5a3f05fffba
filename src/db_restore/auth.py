"""Authorization policy for administrative entry points.

A single ``AuthorizationPolicy`` is injected into the request handler and
evaluated once per invocation.  The restore engine itself never checks
permissions.

Usage:
    from db_restore.auth import AdminPolicy, Principal

    policy = AdminPolicy.from_settings(get_settings())
    policy.authorize(Principal(user_id="u1", email="ops@example.com", role="owner"))
"""

from typing import Protocol

from pydantic import BaseModel

from db_restore.config.models import RestoreSettings
from db_restore.exceptions import AuthorizationError

DEFAULT_ADMIN_ROLES = frozenset({"super_admin", "owner"})


class Principal(BaseModel):
    """Authenticated caller as supplied by the authorization service."""

    user_id: str
    email: str | None = None
    role: str | None = None  # None when the caller has no profile row


class AuthorizationPolicy(Protocol):
    """Decides whether a principal may run administrative operations."""

    def authorize(self, principal: Principal | None) -> Principal:
        """Return the principal if allowed.

        Raises:
            AuthorizationError: ``status=401`` without a principal,
                ``status=403`` when the principal is not an administrator.
        """
        ...


class AdminPolicy:
    """Admin if the role is an admin role or the email is allowlisted.

    Args:
        admin_roles: Roles granting admin capability.
        allowlist: Emails granted admin capability regardless of role.
    """

    def __init__(
        self,
        admin_roles: frozenset[str] | set[str] = DEFAULT_ADMIN_ROLES,
        allowlist: list[str] | None = None,
    ) -> None:
        self.admin_roles = frozenset(admin_roles)
        self.allowlist = frozenset(e.strip().lower() for e in (allowlist or []) if e.strip())

    @classmethod
    def from_settings(cls, settings: RestoreSettings) -> "AdminPolicy":
        return cls(allowlist=settings.admin_emails)

    def is_admin(self, principal: Principal) -> bool:
        if principal.role in self.admin_roles:
            return True
        if not principal.email:
            return False
        return principal.email.lower() in self.allowlist

    def authorize(self, principal: Principal | None) -> Principal:
        if principal is None:
            raise AuthorizationError("Unauthorized", status=401)
        if not self.is_admin(principal):
            raise AuthorizationError("Forbidden - Admin access required", status=403)
        return principal
