import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from planforge.config import settings
from planforge.database.supabase_client import SupabaseClient
from planforge.modules.auth import routes as auth_routes
from planforge.modules.ai import routes as ai_routes
from planforge.modules.projects import routes as projects_routes
from planforge.modules.workflow_data import routes as workflow_data_routes
from planforge.modules.rag import routes as rag_routes
from planforge.modules.conversations import routes as conversations_routes
from planforge.modules.chat_context import routes as chat_context_routes
from planforge.modules.bots import routes as bots_routes
from planforge.modules.images import routes as images_routes
from planforge.modules.code_execution import routes as code_execution_routes
from planforge.modules.code_execution import process_registry
from planforge.modules.proposals import routes as proposals_routes
from planforge.modules.health import routes as health_routes

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address, default_limits=[settings.rate_limit])
app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    redirect_slashes=False,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


def error_response(status_code: int, error, headers=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": error}, headers=headers)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, exc.detail, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    return error_response(400, "; ".join(messages) or "Invalid request")


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception: %s", exc)
    if settings.is_production:
        return error_response(500, "Internal server error")
    return error_response(500, str(exc))


class SecurityHeadersMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def send_with_headers(message):
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"].extend([
                    (b"X-Content-Type-Options", b"nosniff"),
                    (b"X-Frame-Options", b"DENY"),
                    (b"X-XSS-Protection", b"1; mode=block"),
                ])
            await send(message)

        await self.app(scope, receive, send_with_headers)


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_routes.router, prefix="/api")
app.include_router(ai_routes.router, prefix="/api")
app.include_router(projects_routes.router, prefix="/api")
app.include_router(workflow_data_routes.router, prefix="/api")
app.include_router(rag_routes.router, prefix="/api")
app.include_router(conversations_routes.router, prefix="/api")
app.include_router(chat_context_routes.router, prefix="/api")
app.include_router(bots_routes.router, prefix="/api")
app.include_router(images_routes.router, prefix="/api")
app.include_router(code_execution_routes.router, prefix="/api")
app.include_router(proposals_routes.router, prefix="/api")
app.include_router(health_routes.router, prefix="/api")


@app.on_event("startup")
async def startup_event():
    logger.info(f"Application startup ({settings.environment})")
    if not settings.supabase_configured:
        logger.warning("Supabase is not configured; database-backed endpoints will return 503")


@app.on_event("shutdown")
async def shutdown_event():
    process_registry.terminate_all()
    logger.info("Application shutdown")


@app.get("/")
async def root():
    return {"message": f"Welcome to {settings.app_name}", "status": "healthy"}


@app.get("/health")
@limiter.exempt
async def health():
    return {"status": "healthy"}


@app.get("/ready")
@limiter.exempt
async def ready():
    """Readiness check: Supabase must be configured and answer a trivial query"""
    ready = settings.supabase_configured and SupabaseClient.ping()
    return {"status": "ready" if ready else "degraded"}
