"""
VentureLink Core API - Main Application

FastAPI backend with:
- MongoDB for users, interactions, nudges, connections, notifications
- JWT authentication (tokens verified, not issued)
- One response envelope for every endpoint: {success, data, message}

Run: uvicorn venturelink.main:app --reload
"""

import logging

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.database import Database
from starlette.exceptions import HTTPException as StarletteHTTPException

from venturelink.api.routes import api_router
from venturelink.core.config import get_settings
from venturelink.core.errors import AppError
from venturelink.db.mongodb import get_database, init_mongo_indexes, test_mongo_connection
from venturelink.schemas.schemas import fail
from venturelink.utils.logging_config import RequestLoggingMiddleware, setup_logging

settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="VentureLink Core API",
    description="""
    Investor <-> startup marketplace.

    ## Features
    - **Interactions**: requests between investors and startups, expiring after 7 days
    - **Nudges**: quota-metered startup outreach, paired with connections
    - **Connections**: investor-initiated connection requests
    - **Matching**: relaxed matching and strict search in both directions
    - **Notifications**: inbox entries for every lifecycle event
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS middleware (allow all for development)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

# Include API routes
app.include_router(api_router, prefix="/api")


# ============================================================
# ERROR HANDLERS
# ============================================================

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    logger.warning(
        f"{type(exc).__name__}: {exc.message}",
        extra={"extra_fields": {"path": request.url.path, "status_code": exc.status_code}},
    )
    return JSONResponse(status_code=exc.status_code, content=fail(exc.message))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first["loc"] if p != "body")
        message = f"Invalid {field}: {first['msg']}" if field else first["msg"]
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content=fail(message))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=fail(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content=fail("Internal server error"))


# Startup event
@app.on_event("startup")
async def startup_event():
    """Initialize MongoDB indexes on startup."""
    try:
        init_mongo_indexes()
        logger.info("MongoDB indexes initialized")
    except Exception as e:
        logger.error(f"MongoDB index initialization failed: {e}", exc_info=True)


@app.get("/health", tags=["Health"])
async def health_check(db: Database = Depends(get_database)):
    """Detailed health check."""
    connected = test_mongo_connection(db)
    return {
        "status": "healthy" if connected else "degraded",
        "mongodb": "connected" if connected else "disconnected",
    }
