import logging
from contextlib import asynccontextmanager

import anyio
from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from portfolio.api import api_router
from portfolio.config import get_settings
from portfolio.services.seed import load_seed
from portfolio.storage import StorageUnavailableError, build_storage

settings = get_settings()

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        response: Response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


class RequestTimeoutMiddleware:
    """Cancel the request handler once it runs past the timeout.

    A plain ASGI middleware, so the route itself runs inside the cancel scope.
    The 504 is only sent when the handler has not started its response.
    """

    def __init__(self, app: ASGIApp, timeout: float):
        self.app = app
        self.timeout = timeout

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_tracking_start(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            with anyio.fail_after(self.timeout):
                await self.app(scope, receive, send_tracking_start)
        except TimeoutError:
            if response_started:
                raise
            logger.warning(f"Request timed out after {self.timeout}s: {scope['method']} {scope['path']}")
            response = JSONResponse(
                status_code=status.HTTP_504_GATEWAY_TIMEOUT,
                content={"message": "Tempo limite da requisição excedido"},
            )
            await response(scope, receive, send)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    storage = build_storage(settings)
    await storage.init()
    logger.info(f"Storage backend: {storage.name}")
    if settings.dev_auth_bypass:
        logger.warning(
            f"DEV_AUTH_BYPASS is enabled: every request is authenticated as {settings.dev_user_email}. "
            "Never enable this in production."
        )
    if not settings.admin_email:
        logger.warning("ADMIN_EMAIL is not set: no account will be provisioned as admin")
    if settings.seed_file:
        await load_seed(storage, settings.seed_file)
    app.state.storage = storage
    yield
    # Shutdown
    await storage.close()


app = FastAPI(
    title="Portfolio API",
    description="API for the portfolio site: projects, achievements, experiences and contact",
    version="1.0.0",
    lifespan=lifespan,
)

# Security headers
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestTimeoutMiddleware, timeout=settings.request_timeout_seconds)

# CORS middleware: origins configurable via CORS_ORIGINS env var (comma-separated)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type"],
)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in err["loc"] if part != "body"),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"message": "Dados inválidos", "errors": errors},
    )


@app.exception_handler(StorageUnavailableError)
async def storage_unavailable_handler(request: Request, exc: StorageUnavailableError):
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"message": "Serviço temporariamente indisponível"},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": "Erro interno do servidor"},
    )


# Include API routes
app.include_router(api_router, prefix="/api")


@app.get("/")
async def root():
    return {"message": "Portfolio API", "version": "1.0.0"}


@app.get("/health")
async def health(request: Request):
    storage = getattr(request.app.state, "storage", None)
    return {"status": "healthy", "storage": storage.name if storage else None}
