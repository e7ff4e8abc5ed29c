"""
System groups: coarse tags on a principal that gate whole API surfaces,
independent of fine-grained permissions.
"""
import enum
from collections.abc import Iterable
from typing import Annotated, TYPE_CHECKING
from fastapi import Depends

from admin_iam.core.errors import Forbidden, Unauthenticated
from admin_iam.utils import get_logger

if TYPE_CHECKING:
    from admin_iam.features.auth.principal import Principal


log = get_logger(__name__)


class SystemGroup(str, enum.Enum):
    ADMIN = "ADMIN"
    DRIVER = "DRIVER"
    PASSENGER = "PASSENGER"


def parse_system_group(value: object) -> SystemGroup | None:
    """Normalise a raw group name; None for anything unrecognised."""
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return SystemGroup(value.strip().upper())
    except ValueError:
        return None


def check_system_groups(
    principal: "Principal | None",
    required_groups: Iterable[SystemGroup] | None,
) -> "Principal":
    """
    Allow when the principal belongs to any of ``required_groups``.

    Raises:
        Unauthenticated: no principal
        Forbidden: no requirement declared, or no overlap
    """
    if principal is None:
        raise Unauthenticated("No principal on request")

    required = frozenset(required_groups or ())
    if not required:
        log.debug("Route declares no system group requirement, denying %s", principal.subject_id)
        raise Forbidden("No system group requirement declared")

    if principal.groups.isdisjoint(required):
        log.debug("Subject %s not in any of %s", principal.subject_id, sorted(g.value for g in required))
        raise Forbidden("System group mismatch")

    return principal


def require_system_groups(*groups: SystemGroup):
    """
    FastAPI dependency factory gating a route or router on system groups.

    Usage:
        router = APIRouter(dependencies=[Depends(require_system_groups(SystemGroup.ADMIN))])
    """
    from admin_iam.features.auth.principal import Principal, get_principal

    required = frozenset(groups)

    async def system_group_dependency(
        principal: Annotated[Principal | None, Depends(get_principal)],
    ) -> Principal:
        return check_system_groups(principal, required)

    return system_group_dependency
