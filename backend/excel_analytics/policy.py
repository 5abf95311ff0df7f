# backend/excel_analytics/policy.py
from enum import Enum
from typing import Any


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"


class Decision(str, Enum):
    ALLOW = "allow"
    DENY = "deny"


def parse_role(value: Any) -> Role | None:
    if isinstance(value, Role):
        return value
    if isinstance(value, str):
        try:
            return Role(value)
        except ValueError:
            return None
    return None


def authorize(actor_role: Any, required_role: Any) -> Decision:
    """Allow/deny for a caller with ``actor_role`` on an endpoint needing ``required_role``.

    ``user`` endpoints only need an authenticated caller with a known role;
    ``admin`` endpoints need ``admin`` exactly. Anything unrecognised is denied.
    """
    actor = parse_role(actor_role)
    required = parse_role(required_role)
    if actor is None or required is None:
        return Decision.DENY
    if required is Role.USER:
        return Decision.ALLOW
    return Decision.ALLOW if actor is Role.ADMIN else Decision.DENY
