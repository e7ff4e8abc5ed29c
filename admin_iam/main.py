from datetime import datetime, timezone
from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from timing_asgi import TimingMiddleware, TimingClient  # type: ignore
from timing_asgi.integrations import StarletteScopeToName  # type: ignore

from admin_iam import __version__
from admin_iam.core import config
from admin_iam.core.database.engine import init_db
from admin_iam.core.errors import IamError, InternalError
from admin_iam.core.request import REQUEST_ID_HEADER, resolve_request_id
from admin_iam.features.access_context.routes import router as access_context_router
from admin_iam.features.admin_users.routes import router as admin_user_router
from admin_iam.features.audit.routes import router as audit_router
from admin_iam.features.auth.principal import get_authorization_header
from admin_iam.features.permissions.routes import router as permission_router
from admin_iam.features.roles.routes import router as role_router
from admin_iam.utils import get_logger


log = get_logger(__name__)
log.info("Initializing server")
app = FastAPI(
    title="Admin IAM",
    description="Role-based access control for the administrative API",
    version=__version__,
    docs_url="/docs" if config.ENABLE_DOCS else None,
    redoc_url="/redoc" if config.ENABLE_DOCS else None,
    openapi_url="/openapi.json" if config.ENABLE_DOCS else None
)
limiter = Limiter(
    key_func=get_authorization_header,
    default_limits=[config.RATE_LIMIT] if config.RATE_LIMIT else [],
    enabled=bool(config.RATE_LIMIT),
)
app.state.limiter = limiter
# Replaced at deployment with a verifier for the identity provider's tokens
app.state.identity_verifier = None


class PrintTimings(TimingClient):
    def timing(self, metric_name, timing, tags):
        log.debug(dict(route=metric_name.removeprefix("iam.admin_iam.features."), timing=timing, tags=tags))


app.add_middleware(TimingMiddleware, client=PrintTimings(), metric_namer=StarletteScopeToName("iam", app))
app.add_middleware(SlowAPIMiddleware)

if config.ENABLE_DOCS:
    log.warning("Docs enabled")
if config.ALLOW_ORIGIN:
    log.warning("Setting allow origin to %s", config.ALLOW_ORIGIN)
    origins = [config.ALLOW_ORIGIN]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request.state.request_id = resolve_request_id(request)
    response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = request.state.request_id
    return response


def error_response(request: Request, exc: IamError) -> JSONResponse:
    """Stable error body; never carries internal detail."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "statusCode": exc.status_code,
            "errorCode": exc.error_code,
            "message": exc.public_message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "path": request.url.path,
            "requestId": getattr(request.state, "request_id", None),
        },
    )


@app.exception_handler(IamError)
async def iam_error_handler(request: Request, exc: IamError):
    if exc.status_code >= 500:
        log.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        log.info("%s %s -> %s (%s)", request.method, request.url.path, exc.error_code, exc.message)
    return error_response(request, exc)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    log.exception("Database error on %s %s", request.method, request.url.path, exc_info=exc)
    return error_response(request, InternalError())


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    log.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return error_response(request, InternalError())


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_request: Request, exc: RequestValidationError):
    errors = dict()
    for error in exc.errors():
        if "loc" not in error or "msg" not in error:
            continue
        key = error["loc"][-1]
        if key == "__root__":
            key = "root"
        errors[key] = error["msg"]
    log.info("Request validation error %s", errors)
    return JSONResponse(status_code=400, content=jsonable_encoder(errors))


@app.exception_handler(RateLimitExceeded)
def rate_limit_exceeded_handler(_request: Request, _exc: RateLimitExceeded) -> Response:
    return JSONResponse({"error": "You are going too fast"}, status_code=429)


@app.on_event("startup")
async def startup():
    """Initialize database on application startup."""
    log.info("Initializing database...")
    await init_db()
    if app.state.identity_verifier is None:
        log.warning("No identity verifier configured; every admin route will answer 401")
    log.info("Database initialized successfully")


@app.get("/")
async def root():
    """Root endpoint - API health check."""
    return {
        "message": "Admin IAM API",
        "version": __version__,
        "status": "online",
        "docs": "/docs" if config.ENABLE_DOCS else None,
        "authentication": {
            "info": "Admin endpoints require a Bearer token of a principal in the ADMIN system group",
            "protected_endpoints": [
                "/admin/me", "/admin/admin-users/*", "/admin/roles/*",
                "/admin/permissions/*", "/admin/audit-logs",
            ],
            "public_endpoints": ["/", "/health"]
        },
    }


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


# Include routers
app.include_router(access_context_router, prefix="/admin", tags=["access-context"])
app.include_router(admin_user_router, prefix="/admin/admin-users", tags=["admin-users"])
app.include_router(role_router, prefix="/admin/roles", tags=["roles"])
app.include_router(permission_router, prefix="/admin/permissions", tags=["permissions"])
app.include_router(audit_router, prefix="/admin/audit-logs", tags=["audit"])
