import pytest

from admin_iam.features.rbac.grammar import (
    ParsedPermission,
    is_allowed,
    is_valid_grant,
    parse_permission_key,
    permission_matches,
)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("driver:update", ParsedPermission("driver", "update")),
        ("  driver : update  ", ParsedPermission("driver", "update")),
        ("driver:*", ParsedPermission("driver", "*")),
        ("*:read", ParsedPermission("*", "read")),
    ],
)
def test_parse_permission_key_valid(value: str, expected: ParsedPermission) -> None:
    assert parse_permission_key(value) == expected


@pytest.mark.parametrize("value", ["", "   ", "driver", ":read", "driver:", "a:b:c", "*", " : "])
def test_parse_permission_key_rejects_malformed(value: str) -> None:
    assert parse_permission_key(value) is None


def test_is_valid_grant() -> None:
    assert is_valid_grant("*")
    assert is_valid_grant("role:create")
    assert not is_valid_grant("role")
    assert not is_valid_grant("a:b:c")


@pytest.mark.parametrize(
    ("required", "granted", "expected"),
    [
        ("driver:read", "driver:read", True),
        ("driver:read", "driver:*", True),
        ("driver:read", "*:read", True),
        ("driver:read", "*", True),
        ("driver:read", "*:*", True),
        ("passenger:manage", "driver:*", False),
        ("driver:read", "driver:update", False),
        ("driver:read", "*:update", False),
        ("*", "driver:*", False),
        ("*", "*", True),
        ("bad", "bad:*", False),
        ("driver:read", "bad", False),
    ],
)
def test_permission_matches(required: str, granted: str, expected: bool) -> None:
    assert permission_matches(required, granted) is expected


def test_is_allowed_any_of() -> None:
    granted = ["role:create", "role:view"]

    assert is_allowed(["permission:delete", "role:view"], granted)
    assert not is_allowed(["permission:delete"], granted)


def test_is_allowed_empty_requirement_never_allows() -> None:
    assert not is_allowed([], ["*"])


def test_is_allowed_with_no_grants() -> None:
    assert not is_allowed(["role:view"], [])
