"""
Permission key grammar.

Keys have the form ``<module>:<action>``. Granted values may use wildcards:

    *                 every permission
    <module>:*        every action of one module
    *:<action>        one action across every module
"""
from collections.abc import Iterable
from typing import NamedTuple


WILDCARD = "*"


class ParsedPermission(NamedTuple):
    module: str
    action: str


def parse_permission_key(value: str) -> ParsedPermission | None:
    """
    Split a permission key into module and action.

    Returns None for malformed input (no colon, more than one colon, or an
    empty segment) so callers can discard bad catalog entries.

    Examples:
        parse_permission_key("driver:update") -> ParsedPermission("driver", "update")
        parse_permission_key("driver") -> None
        parse_permission_key("a:b:c") -> None
    """
    if not isinstance(value, str):
        return None
    raw = value.strip()
    if raw.count(":") != 1:
        return None
    module, action = (part.strip() for part in raw.split(":"))
    if not module or not action:
        return None
    return ParsedPermission(module, action)


def is_valid_grant(value: str) -> bool:
    """True for ``*`` or any well-formed key (wildcard segments included)."""
    return value.strip() == WILDCARD or parse_permission_key(value) is not None


def permission_matches(required: str, granted: str) -> bool:
    """
    Check whether one granted pattern satisfies one required key.

    Examples:
        permission_matches("driver:read", "driver:read") -> True
        permission_matches("driver:read", "driver:*") -> True
        permission_matches("driver:read", "*:read") -> True
        permission_matches("driver:read", "*") -> True
        permission_matches("passenger:manage", "driver:*") -> False
    """
    granted = granted.strip()
    if granted == WILDCARD:
        return True
    if required.strip() == granted:
        return True
    if required.strip() == WILDCARD:
        return False

    req = parse_permission_key(required)
    grant = parse_permission_key(granted)
    if req is None or grant is None:
        return False

    module_ok = grant.module in (WILDCARD, req.module)
    action_ok = grant.action in (WILDCARD, req.action)
    return module_ok and action_ok


def is_allowed(required_any_of: Iterable[str], granted: Iterable[str]) -> bool:
    """
    Any-of check: allowed when some required key matches some granted pattern.

    An empty requirement never allows anything.
    """
    granted = list(granted)
    for required in required_any_of:
        for pattern in granted:
            if permission_matches(required, pattern):
                return True
    return False
