"""
Rebalancer Automation Service

Serves the automation control surface and the advisory recommendation
endpoint, and runs the fixed-interval rebalance scheduler.
"""
import logging
import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app_config import get_config, load_config
from .container import ServiceContainer
from .logger import configure_logging
from .routes import advisor_router, automation_router, trades_router, wallets_router

logger = logging.getLogger(__name__)

# Get version from environment variable (set by Docker)
VERSION = os.getenv('SERVICE_VERSION', '1.0.0')


@asynccontextmanager
async def lifespan(app: FastAPI):
    container: ServiceContainer = app.state.container
    config = container.config()
    scheduler = container.scheduler_service()
    automation = container.automation_service()

    logger.info("Starting Rebalancer Automation Service...")
    await scheduler.start()

    if config.automation.autostart:
        automation.start()

    try:
        yield
    finally:
        logger.info("Stopping Rebalancer Automation Service...")
        await scheduler.stop()
        try:
            await container.chain_client().close()
        except Exception as e:
            logger.error(f"Error closing chain client: {e}")


def create_app(container: Optional[ServiceContainer] = None) -> FastAPI:
    """Build the FastAPI app around an explicit service container"""
    if container is None:
        container = ServiceContainer(config=get_config())

    app = FastAPI(
        title="Cross-Chain Stablecoin Rebalancer",
        description="Automation control and AI allocation advice for a two-chain stablecoin portfolio",
        version=VERSION,
        lifespan=lifespan
    )
    app.state.container = container

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(automation_router)
    app.include_router(advisor_router)
    app.include_router(trades_router)
    app.include_router(wallets_router)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        """Report malformed bodies and query parameters as 400"""
        errors = [
            f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg')}"
            for error in exc.errors()
        ]
        logger.warning(f"Rejected {request.method} {request.url.path}: {errors}")
        return JSONResponse(status_code=400, content={"detail": "Invalid request", "errors": errors})

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        try:
            automation = app.state.container.automation_service()
            return {
                "status": "healthy",
                "version": VERSION,
                "automation": automation.status(),
            }
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return JSONResponse(
                status_code=503,
                content={
                    "status": "unhealthy",
                    "error": str(e),
                    "version": VERSION
                }
            )

    return app


def main():
    configure_logging()

    try:
        config_path = Path(os.getenv('CONFIG_PATH', 'config.yaml'))
        config = load_config(config_path)
    except Exception as e:
        logger.error(f"Failed to load configuration: {e}")
        sys.exit(1)

    import uvicorn
    uvicorn.run(create_app(ServiceContainer(config=config)), host=config.api.host, port=config.api.port)


if __name__ == "__main__":
    main()
