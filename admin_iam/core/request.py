"""
Per-request correlation data consumed by the audit trail.
"""
from dataclasses import dataclass
from uuid import uuid4
from fastapi import Request


REQUEST_ID_HEADER = "x-request-id"


@dataclass(frozen=True)
class RequestContext:
    request_id: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None


def resolve_request_id(request: Request) -> str:
    """Reuse the caller's x-request-id when present, otherwise generate one."""
    incoming = request.headers.get(REQUEST_ID_HEADER, "").strip()
    return incoming or str(uuid4())


async def get_request_context(request: Request) -> RequestContext:
    """
    Dependency returning the audit context of the current request.

    Usage:
        @router.delete("/{role_id}")
        async def delete_role(role_id: str, ctx: RequestContext = Depends(get_request_context)):
            ...
    """
    user_agent = request.headers.get("user-agent")
    return RequestContext(
        request_id=getattr(request.state, "request_id", None),
        ip_address=request.client.host if request.client else None,
        user_agent=user_agent[:255] if user_agent else None,
    )
