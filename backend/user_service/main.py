import logging
import sys
from contextlib import asynccontextmanager

from starlette.middleware.base import BaseHTTPMiddleware
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from user_service.api import accounts, mail, tokens

# Ensure app loggers print to stdout so you see them in the terminal
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stdout,
)
logging.getLogger("user_service").setLevel(logging.DEBUG)
from user_service.config import settings
from user_service.core.auth import TokenProvider
from user_service.core.errors import UserServiceError
from user_service.core.rate_limit import limiter
from user_service.db.session import init_db
from user_service.schemas.envelope import ResponseEnvelope
from user_service.services.mail import SmtpMailGateway
from user_service.services.redis_store import close_redis, open_redis
from user_service.services.refresh_tokens import RefreshTokenStore
from user_service.services.verification_codes import VerificationCodeStore
from prometheus_client import make_asgi_app

logger = logging.getLogger("user_service.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings.validate_jwt_config()
    await init_db()
    redis_client = open_redis(settings.redis_url)
    app.state.token_provider = TokenProvider.from_settings(settings)
    app.state.refresh_token_store = RefreshTokenStore(redis_client, settings.refresh_token_ttl_seconds)
    app.state.verification_store = VerificationCodeStore(
        redis_client,
        code_ttl_seconds=settings.verification_code_ttl_seconds,
        completion_ttl_seconds=settings.verification_completion_ttl_seconds,
    )
    app.state.mail_gateway = SmtpMailGateway.from_settings(settings)
    yield
    await close_redis(redis_client)


app = FastAPI(
    title="User Service API",
    description="Accounts, JWT login/refresh/logout and email verification",
    version="0.1.0",
    lifespan=lifespan,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(GZipMiddleware, minimum_size=500)


@app.exception_handler(UserServiceError)
async def user_service_error_handler(request: Request, exc: UserServiceError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ResponseEnvelope(error=exc.message).model_dump(),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.debug("Rejected request body on %s: %s", request.url.path, exc.errors())
    return JSONResponse(
        status_code=400,
        content=ResponseEnvelope(error="invalid request body").model_dump(),
    )


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Cache-Control"] = "no-store"
        if getattr(settings, "enable_hsts", False):
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


_origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()] if settings.cors_origins else ["*"]
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(tokens.router, prefix="/user-service")
app.include_router(mail.router, prefix="/user-service")
app.include_router(accounts.router, prefix="/user-service")

metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)


@app.get("/health")
@limiter.exempt
def health(request: Request):
    return {"status": "ok"}
