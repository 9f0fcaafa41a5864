import signal
import asyncio
import logging
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

load_dotenv()

# IMPORT ROUTERS
from feedback_insights.config import settings
from feedback_insights.core.dependencies import get_analysis_registry
from feedback_insights.core.log_config import configure_logging
from feedback_insights.routers.health import router as health_router
from feedback_insights.routers.feedback import router as feedback_router
from feedback_insights.routers.analysis import router as analysis_router
from feedback_insights.shutdown import set_shutdown, reset_shutdown

logger = logging.getLogger(__name__)


# SWAGGER UI: tag display order
_OPENAPI_TAGS = [
    {"name": "Root"},
    {"name": "Health"},
    {"name": "Feedback"},
    {"name": "Analysis"},
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

# REGISTER ROUTERS (order matches _OPENAPI_TAGS / Swagger UI display order)
app.include_router(health_router)     # Health
app.include_router(feedback_router)   # Feedback
app.include_router(analysis_router)   # Analysis


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
    configure_logging()
    reset_shutdown()
    logger.info("startup", extra={"app": settings.APP_NAME, "env": settings.APP_ENV})

    # Register signal handlers for graceful shutdown (Ctrl+C / kill)
    loop = asyncio.get_running_loop()

    def _signal_handler(sig):
        logger.warning("signal_received", extra={"signal": sig.name})
        set_shutdown()

    try:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _signal_handler, sig)
    except (NotImplementedError, RuntimeError):
        # Not supported on Windows or outside the main thread
        logger.info("signal_handlers_unavailable")


# SHUTDOWN EVENT
@app.on_event("shutdown")
async def shutdown_event():
    logger.info("shutdown", extra={"app": settings.APP_NAME})
    set_shutdown()  # Ensure flag is set even if signal handler didn't fire
    get_analysis_registry().teardown_all()


# RUN WITH UVICORN
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "feedback_insights.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
