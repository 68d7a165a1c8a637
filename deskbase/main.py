"""Main FastAPI application for Deskbase."""

import os
import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI
from fastapi.concurrency import run_in_threadpool
from dotenv import load_dotenv

from deskbase.bridge import Bridge, register_database_handlers
from deskbase.database import seed_sample_user
from deskbase.errors import ConnectionFailureError
from deskbase.routers import ipc
from deskbase.service import DatabaseService

# Load environment variables
load_dotenv()

# Get configuration from environment
NAME_APP = os.getenv("NAME_APP", "Deskbase")
LOG_FILE = os.getenv("LOG_FILE", "deskbase.log")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", "8000"))
SEED_SAMPLE_USER = os.getenv("SEED_SAMPLE_USER", "false").lower() == "true"

VERSION = "1.0.0"

# Configure logging
handlers = [logging.StreamHandler()]
if LOG_FILE:
    handlers.append(logging.FileHandler(LOG_FILE))

logging.basicConfig(
    level=LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=handlers
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize the database on startup and close it on shutdown."""
    service: DatabaseService = app.state.service
    logger.info(f"Starting {NAME_APP}")

    try:
        await service.initialize()
        logger.info("Database initialized successfully")
    except ConnectionFailureError as e:
        # Keep serving; every data channel reports "not initialized"
        logger.error(f"Failed to initialize database: {e}")

    if service.initialized and app.state.seed_sample_user:
        await run_in_threadpool(seed_sample_user, service.session_factory)
        logger.info("Sample user seed completed")

    yield

    await service.close()
    logger.info(f"Stopped {NAME_APP}")


def create_app(
    service: Optional[DatabaseService] = None,
    seed: bool = SEED_SAMPLE_USER,
) -> FastAPI:
    """
    Build the application around a data-access service.

    Args:
        service: Service to expose; a service for the configured database
            URL is created when omitted
        seed: Create the sample user on startup when the database is empty

    Returns:
        FastAPI: Application with the IPC router mounted
    """
    if service is None:
        service = DatabaseService()

    app = FastAPI(
        title=NAME_APP,
        description="Local data service for users, posts and settings",
        version=VERSION,
        lifespan=lifespan
    )

    app.state.service = service
    app.state.bridge = register_database_handlers(Bridge(), service)
    app.state.seed_sample_user = seed

    # Include routers
    app.include_router(ipc.router)

    @app.get("/")
    def root():
        """Root endpoint."""
        return {
            "name": NAME_APP,
            "version": VERSION,
            "status": "running",
            "database": service.state.value
        }

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "healthy" if service.initialized else "degraded"}

    return app


app = create_app()


def run():
    """Serve the application with uvicorn."""
    import uvicorn
    uvicorn.run(app, host=HOST, port=PORT)


if __name__ == "__main__":
    run()
