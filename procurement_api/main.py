from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException
import structlog

from procurement_api.config import settings
from procurement_api.database import close_db, get_db, init_db
from procurement_api.logging_config import setup_logging
from procurement_api.middleware.correlation import CorrelationIdMiddleware
from procurement_api.services.email_service import close_http_client

# Import models so they are registered with Base.metadata
import procurement_api.models  # noqa: F401

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("starting_procurement_api", env=settings.ENVIRONMENT)
    await init_db()
    yield
    await close_http_client()
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
    lifespan=lifespan,
)


# ---------------------------------------------------------------------------
# Global exception handlers: every error leaves as
# {"success": false, "error": {"code": "...", "message": "..."}}
# ---------------------------------------------------------------------------

STATUS_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    409: "CONFLICT",
    500: "INTERNAL_ERROR",
}


def error_envelope(status_code: int, detail) -> dict:
    if isinstance(detail, dict):
        error = detail.get("error", detail)
        error = {
            "code": error.get("code") or STATUS_CODES.get(status_code, "HTTP_ERROR"),
            "message": error.get("message") or "",
            **{k: v for k, v in error.items() if k not in ("code", "message")},
        }
    else:
        error = {
            "code": STATUS_CODES.get(status_code, "HTTP_ERROR"),
            "message": str(detail) if detail is not None else "",
        }
    return {"success": False, "error": error}


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope(exc.status_code, exc.detail),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content=error_envelope(
            422,
            {
                "code": "VALIDATION_ERROR",
                "message": "Request validation failed",
                "details": jsonable_errors(exc),
            },
        ),
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    # ctx may carry exception instances that JSONResponse cannot encode
    return [
        {k: v for k, v in err.items() if k in ("type", "loc", "msg")}
        for err in exc.errors()
    ]


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", path=request.url.path)
    message = str(exc) if settings.is_development else "Server error"
    return JSONResponse(status_code=500, content=error_envelope(500, message))


app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "X-Requested-With", "X-Request-ID"],
)


@app.get("/health", tags=["System"])
async def health(response: Response, db: AsyncSession = Depends(get_db)):
    health_status = {"status": "healthy", "version": settings.APP_VERSION, "checks": {}}

    try:
        await db.execute(text("SELECT 1"))
        health_status["checks"]["db"] = "ok"
    except Exception as e:
        logger.error("health_check_db_failed", error=str(e))
        health_status["checks"]["db"] = "error"
        health_status["status"] = "unhealthy"
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return health_status


# --- Routers ---
from procurement_api.routes.auth import router as auth_router  # noqa: E402
from procurement_api.routes.brfqs import router as brfqs_router  # noqa: E402
from procurement_api.routes.admin import router as admin_router  # noqa: E402
from procurement_api.routes.quotes import router as quotes_router  # noqa: E402
from procurement_api.routes.suppliers import router as suppliers_router  # noqa: E402
from procurement_api.routes.awards import router as awards_router  # noqa: E402
from procurement_api.routes.reference import router as reference_router  # noqa: E402
from procurement_api.routes.uploads import router as uploads_router  # noqa: E402

app.include_router(auth_router, prefix="/auth", tags=["Auth"])
app.include_router(brfqs_router, prefix="/api/brfq", tags=["BRFQs"])
app.include_router(admin_router, prefix="/api/admin", tags=["Admin"])
# Registered before the supplier routes so /api/suppliers/quote is not read as an id
app.include_router(quotes_router, prefix="/api", tags=["Quotes"])
app.include_router(suppliers_router, prefix="/api", tags=["Suppliers"])
app.include_router(awards_router, prefix="/api/awards", tags=["Awards"])
app.include_router(reference_router, prefix="/api/administration/fields", tags=["Reference Data"])
app.include_router(uploads_router, prefix="/api/uploads", tags=["Uploads"])
