# servicehub/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from servicehub.core.config import APP_ENV, CORS_ORIGINS, DB_AUTO_CREATE, LOG_LEVEL
from servicehub.core.database import create_all
from servicehub.services.realtime import RealtimeNotifier

#Import Routers
from servicehub.api.v1 import auth
from servicehub.api.v1 import bookings
from servicehub.api.v1 import realtime
from servicehub.api.v1 import search

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if DB_AUTO_CREATE:
        await create_all()
        logger.info("✅ Database tables ensured")
    # One notifier per process, handed to handlers through app.state
    app.state.notifier = RealtimeNotifier()
    yield


# Create FastAPI app
app = FastAPI(
    title="ServiceHub API",
    description="Services marketplace: search, bookings and realtime chat",
    version="1.0.0",
    lifespan=lifespan,
)

allow_any_origin = len(CORS_ORIGINS) == 1 and CORS_ORIGINS[0] == "*"

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    # Browsers reject wildcard CORS with credentials enabled.
    allow_credentials=not allow_any_origin,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg"),
            "type": error.get("type"),
        }
        for error in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"errors": errors})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"❌ Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


#Include routers
app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
app.include_router(search.router, prefix="/api")
app.include_router(bookings.router, prefix="/api/bookings")
app.include_router(realtime.router, tags=["realtime"])
app.include_router(realtime.router, prefix="/api", tags=["realtime"])


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "ServiceHub API",
        "version": "1.0.0",
        "status": "running"
    }

@app.get("/health")
async def health():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "environment": APP_ENV
    }

@app.get("/api/health")
async def api_health():
    return {"message": "Server is running!"}

if __name__ == "__main__":
    import uvicorn
    from servicehub.core.config import API_HOST, API_PORT
    uvicorn.run(
        "servicehub.main:app",
        host=API_HOST,
        port=API_PORT,
        reload=True
    )
