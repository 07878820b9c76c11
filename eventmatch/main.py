from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from eventmatch.base.config import settings
from eventmatch.base.database import init_db
from eventmatch.base.error_handlers import register_exception_handlers
from eventmatch.base.logging_config import app_logger as logger
from eventmatch.base.security import verify_api_key
from eventmatch.routers import intent, meetings

APP_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.AUTO_CREATE_TABLES:
        init_db()
    logger.info(f"🚀 {settings.PROJECT_NAME} started (env={settings.ENVIRONMENT})")
    yield


# --- FastAPI app instance ---
app = FastAPI(
    title="EventMatch Scheduling API",
    version=APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# --- CORS config ---
origins = [
    "http://localhost:3000",     # Local dashboard dev
]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Prometheus metrics ---
Instrumentator().instrument(app).expose(app)


# --- Logging middleware ---
@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info(f"📥 {request.method} request to {request.url.path}")
    response = await call_next(request)
    logger.info(f"📤 Response: {response.status_code} for {request.url.path}")
    return response


# --- Exception handlers ---
register_exception_handlers(app)

# --- API Routers ---
api_key = [Depends(verify_api_key)]
app.include_router(meetings.router, prefix="/meetings", dependencies=api_key)
app.include_router(intent.router, prefix="/intent", dependencies=api_key)


# --- System endpoints ---
@app.get("/health", tags=["System"])
def health_check():
    return {"status": "ok"}


@app.get("/version", tags=["System"])
def version_check():
    return {
        "version": APP_VERSION,
        "environment": settings.ENVIRONMENT,
    }
