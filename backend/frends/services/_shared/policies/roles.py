"""
Role Check policy.

Roles are opaque capability tags. A user holds a flat set of them and a
resource admits a set of allowed tags; access is granted on any overlap.
There is no hierarchy: ``level3`` does not imply ``level1``.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Final

from frends.services._shared.errors import AuthorizationError, ValidationFailedError

LEVEL1: Final[str] = "level1"
LEVEL2: Final[str] = "level2"
LEVEL3: Final[str] = "level3"

KNOWN_ROLES: Final[frozenset[str]] = frozenset({LEVEL1, LEVEL2, LEVEL3})

# Account types offered at registration and the tags they grant.
ACCOUNT_TYPE_ROLES: Final[dict[str, frozenset[str]]] = {
    "individual": frozenset({LEVEL1}),
    "enterprise": frozenset({LEVEL2}),
    "admin": frozenset({LEVEL1, LEVEL2, LEVEL3}),
}

ADMIN_ROLES: Final[frozenset[str]] = frozenset({LEVEL3})

# Account types open to self-service registration.
SELF_SERVICE_ACCOUNT_TYPES: Final[frozenset[str]] = frozenset({"individual", "enterprise"})


def has_any_role(held: Iterable[str], allowed: Iterable[str]) -> bool:
    """Return ``True`` when ``held`` and ``allowed`` share at least one tag."""
    return not frozenset(held).isdisjoint(allowed)


def check_roles(held: Iterable[str], allowed: Iterable[str]) -> None:
    """
    Authorize a caller against a resource's allowed tags.

    :param held: Tags carried by the caller's access token.
    :param allowed: Tags admitted by the resource.
    :raises AuthorizationError: When the sets are disjoint.
    """
    if not has_any_role(held, allowed):
        raise AuthorizationError("Insufficient role")


def roles_for_account_type(account_type: str) -> frozenset[str]:
    """
    Resolve the preset tags of an account type.

    :raises ValidationFailedError: For unknown account types.
    """
    try:
        return ACCOUNT_TYPE_ROLES[account_type]
    except KeyError:
        raise ValidationFailedError(
            f"Unknown account type: {account_type}", field="account_type"
        ) from None


def normalize_roles(tags: Iterable[str]) -> frozenset[str]:
    """
    Validate a role assignment.

    :raises ValidationFailedError: When a tag is unknown or the set is empty.
    """
    roles = frozenset(str(t).strip() for t in tags)
    unknown = sorted(roles - KNOWN_ROLES)
    if unknown:
        raise ValidationFailedError(f"Unknown roles: {', '.join(unknown)}", field="roles")
    if not roles:
        raise ValidationFailedError("At least one role is required", field="roles")
    return roles
