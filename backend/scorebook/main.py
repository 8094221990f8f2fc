import logging

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from .config import API_PREFIX, allowed_origins
from .exceptions import DomainException, ProblemDetail
from .routers import auth, matches, rotations, teams
from .utils.sentry import init_sentry

logger = logging.getLogger(__name__)

init_sentry()

# Fail fast on a missing or weak JWT_SECRET and on unsafe CORS settings
auth.get_jwt_secret()
ALLOWED_ORIGINS = allowed_origins()

app = FastAPI(
    title="Volleyball Scorebook API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)
app.state.limiter = auth.limiter
app.add_exception_handler(RateLimitExceeded, auth.rate_limit_handler)
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger.info("API_PREFIX=%r origins=%s", API_PREFIX, ",".join(ALLOWED_ORIGINS))


def _problem(problem: ProblemDetail, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=problem.status,
        content=problem.model_dump(),
        media_type="application/problem+json",
        headers=headers,
    )


@app.exception_handler(DomainException)
async def domain_exception_handler(request: Request, exc: DomainException) -> JSONResponse:
    problem = ProblemDetail(
        type=exc.type,
        title=exc.title,
        detail=exc.detail,
        status=exc.status_code,
        code=exc.code,
    )
    # Conflicts come from a lost race; the same command may be resent at once.
    return _problem(problem, {"Retry-After": "0"} if exc.retryable else None)


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    problem = ProblemDetail(
        title=detail,
        detail=detail,
        status=exc.status_code,
        code=getattr(exc, "code", f"http_{exc.status_code}"),
    )
    return _problem(problem, getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled exception", exc_info=(type(exc), exc, exc.__traceback__))
    return _problem(
        ProblemDetail(
            title="Internal Server Error",
            status=500,
            detail=str(exc),
            code="internal_server_error",
        )
    )


@app.get("/healthz", tags=["health"])  # Unprefixed for reverse proxy / uptime checks
def root_healthz():
    return {"status": "ok"}


api_router = APIRouter(prefix=API_PREFIX, tags=["meta"])


@api_router.get("/healthz", tags=["health"])
def api_healthz():
    return {"status": "ok"}


v0_router = APIRouter(prefix="/v0")
for module in (teams, matches, rotations):
    v0_router.include_router(module.router)

api_router.include_router(v0_router)
app.include_router(api_router)
