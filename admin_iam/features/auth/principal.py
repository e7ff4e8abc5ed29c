"""
Verified caller identity.
"""
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Annotated, Any, Protocol
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from admin_iam.features.auth.system_groups import SystemGroup, parse_system_group
from admin_iam.utils import get_logger


log = get_logger(__name__)

GROUPS_CLAIM = "cognito:groups"


@dataclass(frozen=True)
class Principal:
    """An already verified caller: subject id plus coarse system groups."""
    subject_id: str
    groups: frozenset[SystemGroup] = frozenset()
    email: str = ""
    claims: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)


class IdentityVerifier(Protocol):
    """
    Collaborator that verifies a raw bearer token.

    Implementations check signature, issuer, audience and expiry and return
    None for anything they reject.
    """

    async def verify(self, token: str) -> Principal | None:
        ...


def _non_empty(value: object) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def principal_from_claims(claims: Mapping[str, Any]) -> Principal | None:
    """
    Build a Principal from verified token claims.

    Groups are trimmed, upper-cased, restricted to known system groups and
    deduplicated. Returns None when the subject claim is missing.
    """
    subject_id = _non_empty(claims.get("sub"))
    if subject_id is None:
        return None

    raw_groups = claims.get(GROUPS_CLAIM)
    groups = set()
    if isinstance(raw_groups, (list, tuple)):
        for entry in raw_groups:
            group = parse_system_group(entry)
            if group is not None:
                groups.add(group)

    return Principal(
        subject_id=subject_id,
        groups=frozenset(groups),
        email=_non_empty(claims.get("email")) or "",
        claims=dict(claims),
    )


security = HTTPBearer(auto_error=False)


async def get_principal(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> Principal | None:
    """
    Resolve the verified principal for the request, or None.

    Never raises: the gate and guard turn a missing principal into
    Unauthenticated.
    """
    cached = getattr(request.state, "principal", None)
    if cached is not None:
        return cached

    if credentials is None or not credentials.credentials.strip():
        return None

    verifier: IdentityVerifier | None = getattr(request.app.state, "identity_verifier", None)
    if verifier is None:
        log.warning("No identity verifier configured; treating request as anonymous")
        return None

    principal = await verifier.verify(credentials.credentials.strip())
    request.state.principal = principal
    return principal


def get_authorization_header(request) -> str:
    """
    Extract authorization header for rate limiting.
    Used with slowapi Limiter.
    """
    auth = request.headers.get("Authorization", "")
    return auth or "anonymous"
