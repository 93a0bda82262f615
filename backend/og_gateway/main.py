"""Main FastAPI application entry point"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from og_gateway import __version__
from og_gateway.api.v1 import api_router
from og_gateway.core.config import settings
from og_gateway.core.logging import log_request, setup_logging
from og_gateway.services.inference.exceptions import SetupFailure
from og_gateway.services.inference.gateway import InferenceGateway

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler
    """
    logger.info(f"Starting {settings.APP_NAME}...")

    gateway = InferenceGateway(settings)
    try:
        await gateway.open()
    except SetupFailure as e:
        # Requests will retry setup and surface the failure as a 500
        logger.warning(f"Inference gateway not ready: {e}")
    app.state.gateway = gateway

    yield

    logger.info("Shutting down...")
    await gateway.close()


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description="Verified inference gateway for a decentralized AI marketplace",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    start_time = time.time()
    response = await call_next(request)
    log_request(
        request.method,
        request.url.path,
        response.status_code,
        round((time.time() - start_time) * 1000, 2),
        request_id=request.headers.get("X-Request-ID"),
    )
    return response


# Exception handlers
@app.exception_handler(SetupFailure)
async def setup_failure_handler(request, exc: SetupFailure):
    logger.error(f"Gateway setup failure: {exc.message}")
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": exc.message},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request, exc: RequestValidationError):
    """
    Handle validation errors without echoing user input.
    """
    errors = []
    for error in exc.errors():
        errors.append(
            {
                "type": error.get("type", ""),
                "location": list(error.get("loc", [])),
                "message": error.get("msg", ""),
            }
        )

    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "error": "Invalid request data",
            "details": errors,
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "An unexpected error occurred"},
    )


app.include_router(api_router, prefix="/api/og")


# Health check endpoint
@app.get("/health")
async def health_check(request: Request):
    """Health check endpoint"""
    gateway = getattr(request.app.state, "gateway", None)
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": __version__,
        "gateway": gateway.status() if gateway else {"open": False},
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "og_gateway.main:app",
        host=settings.APP_HOST,
        port=settings.APP_PORT,
        reload=settings.APP_DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
