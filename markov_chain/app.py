"""
Markov Chain HTTP Service
Main application entry point
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from markov_chain.config import settings
from markov_chain.utils.logger import setup_logger

# Setup logging
logger = setup_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for service initialization"""
    logger.info("[BOOT] Starting Markov Chain Service...")
    logger.info(f"[BOOT] Default order: {settings.CHAIN_ORDER}")
    logger.info("[BOOT] Markov Chain Service ready!")
    yield
    logger.info("[SHUTDOWN] Markov Chain Service stopped")


# Create FastAPI app
app = FastAPI(
    title="Markov Chain Service",
    description="Train order-N Markov chains on text and generate sentences",
    version=settings.SERVICE_VERSION,
    lifespan=lifespan,
)


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"[ERR] Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "ok": False,
            "error": {
                "code": "CHAIN_SERVICE_ERROR",
                "message": "Internal server error occurred",
                "details": {"type": type(exc).__name__},
            },
        },
    )


# Health check
@app.get("/health")
async def health_check():
    """Health check endpoint"""
    from markov_chain.api.routers.chain_router import MODEL_CACHE

    return {
        "ok": True,
        "data": {
            "status": "healthy",
            "service": settings.SERVICE_NAME,
            "version": settings.SERVICE_VERSION,
            "models": sorted(MODEL_CACHE),
        },
    }


from markov_chain.api.routers import chain_router

app.include_router(chain_router.router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "markov_chain.app:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
