"""
Trainer Backend - FastAPI Application
"""
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from trainer import __version__
from trainer.core.config import settings
from trainer.core.database import AsyncSessionLocal, init_db
from trainer.core.exceptions import (
    FormatError,
    ImportFormatError,
    NotFoundError,
    StoreUnavailableError,
)
from trainer.core.logging import setup_logging, get_logger
from trainer.api import activities, activity_types, transfer
from trainer.api.deps import build_services
from trainer.services.storage import KeyValueStore, SqlKeyValueStore

logger = get_logger(__name__)


def create_app(kv_store: Optional[KeyValueStore] = None) -> FastAPI:
    """
    Build the application.
    
    Args:
        kv_store: Key-value store to use; defaults to the SQL-backed store
    """
    
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events."""
        # Startup
        setup_logging()
        logger.info("Starting Trainer Backend", version=__version__, layout=settings.STORAGE_LAYOUT)
        
        kv = kv_store
        if kv is None:
            await init_db()
            kv = SqlKeyValueStore(AsyncSessionLocal)
        
        services = build_services(kv)
        await services.store.ensure_initialized()
        app.state.services = services
        logger.info("Activity storage initialized")
        
        yield
        
        # Shutdown
        logger.info("Shutting down Trainer Backend")
    
    app = FastAPI(
        title="Trainer API",
        description="Personal activity tracker with week-partitioned local storage",
        version=__version__,
        lifespan=lifespan,
    )
    
    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    
    @app.exception_handler(ImportFormatError)
    @app.exception_handler(FormatError)
    async def format_error_handler(request: Request, exc: Exception):
        logger.warning("Rejected malformed input", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=400, content={"detail": str(exc)})
    
    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})
    
    @app.exception_handler(StoreUnavailableError)
    async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
        logger.error("Storage unavailable", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=503, content={"detail": str(exc)})
    
    # Include routers
    app.include_router(activities.router, prefix="/api/activities", tags=["activities"])
    app.include_router(activity_types.router, prefix="/api/activity-types", tags=["activity-types"])
    app.include_router(transfer.router, prefix="/api/transfer", tags=["transfer"])
    
    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": "trainer-backend"}
    
    return app


app = create_app()
