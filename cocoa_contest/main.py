import logging

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

from cocoa_contest.config import settings
from cocoa_contest.core.exceptions import (
    ContestEngineError,
    DuplicateEntityException,
    EntityNotFoundException,
)
from cocoa_contest.core.logging_config import configure_logging

# IMPORT ROUTERS
from cocoa_contest.routers.health import router as health_router
from cocoa_contest.routers.contests import router as contests_router
from cocoa_contest.routers.samples import router as samples_router
from cocoa_contest.routers.judges import router as judges_router
from cocoa_contest.routers.evaluations import router as evaluations_router
from cocoa_contest.routers.notifications import router as notifications_router
from cocoa_contest.routers.errors import (
    duplicate_exception_handler,
    engine_exception_handler,
    not_found_exception_handler,
    validation_exception_handler,
    value_error_handler,
)

configure_logging()
logger = logging.getLogger(__name__)


# SWAGGER UI: tag display order
_OPENAPI_TAGS = [
    {"name": "Root"},
    {"name": "Health"},
    {"name": "Contests"},
    {"name": "Samples"},
    {"name": "Judges"},
    {"name": "Evaluations"},
    {"name": "Notifications"},
]

# FASTAPI APPLICATION CONFIGURATION
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    openapi_tags=_OPENAPI_TAGS,
)

app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

# REGISTER EXCEPTION HANDLERS
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(ContestEngineError, engine_exception_handler)
app.add_exception_handler(EntityNotFoundException, not_found_exception_handler)
app.add_exception_handler(DuplicateEntityException, duplicate_exception_handler)
app.add_exception_handler(ValueError, value_error_handler)

# REGISTER ROUTERS (order matches _OPENAPI_TAGS / Swagger UI display order)
app.include_router(health_router)           # Health
app.include_router(contests_router)         # Contests / results
app.include_router(samples_router)          # Samples
app.include_router(judges_router)           # Judges / assignments
app.include_router(evaluations_router)      # Sensory + final evaluations
app.include_router(notifications_router)    # Notifications


# ROOT ENDPOINT
@app.get("/", tags=["Root"], summary="Root endpoint")
async def root():
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": {
            "swagger": "/docs",
            "redoc": "/redoc"
        },
        "status": "running"
    }


# STARTUP EVENT
@app.on_event("startup")
async def startup_event():
    logger.info("Starting %s (%s)", settings.APP_NAME, settings.APP_ENV)
    if settings.CACHE_ENABLED:
        logger.info("Ranking cache enabled at %s", settings.REDIS_URL)


# RUN WITH UVICORN
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "cocoa_contest.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
