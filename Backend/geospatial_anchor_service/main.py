#!/usr/bin/env python3
"""
Geospatial Anchor Service - Localization readiness and anchor history for AR
Tracks geospatial session readiness and replays persisted anchors
"""

import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from geospatial_anchor_service.api.routes import router as api_router, set_services
from geospatial_anchor_service.core.history_store import HistoryStore
from geospatial_anchor_service.core.interfaces import KeyValueStore, LocationService, NullLocationService
from geospatial_anchor_service.core.remote_tracking import RemoteTrackingSubsystem, RemoteLocationService
from geospatial_anchor_service.core.session_controller import SessionController
from geospatial_anchor_service.core.session_terminator import Scheduler
from geospatial_anchor_service.core.tracking_state_machine import TrackingThresholds
from geospatial_anchor_service.services.key_value_store import create_key_value_store
from geospatial_anchor_service.utils.config import settings, Settings
from geospatial_anchor_service.utils.logging_config import setup_logging
from geospatial_anchor_service.utils.metrics import metrics, setup_metrics

# Setup logging
setup_logging()
logger = logging.getLogger(__name__)

SERVICE_NAME = "geospatial-anchor-service"
SERVICE_VERSION = "1.0.0"


def build_controller(config: Settings, store: KeyValueStore,
                     tracking: RemoteTrackingSubsystem,
                     scheduler: Optional[Scheduler] = None) -> SessionController:
    """Wire a session controller from configuration"""
    location_service: LocationService
    if config.LOCATION_SERVICE_REQUIRED:
        location_service = RemoteLocationService(tracking)
    else:
        location_service = NullLocationService()

    history_store = HistoryStore(
        store,
        storage_key=config.HISTORY_STORAGE_KEY,
        storage_limit=config.STORAGE_LIMIT
    )

    return SessionController(
        tracking,
        history_store,
        store,
        location_service=location_service,
        thresholds=TrackingThresholds.from_settings(config),
        error_display_seconds=config.ERROR_DISPLAY_SECONDS,
        scheduler=scheduler,
        on_terminate=lambda reason: logger.warning(f"🛑 Geospatial session terminated: {reason}"),
        privacy_prompt_key=config.PRIVACY_PROMPT_KEY,
        debug=config.DEBUG
    )


def create_app(config: Optional[Settings] = None, store: Optional[KeyValueStore] = None,
               scheduler: Optional[Scheduler] = None) -> FastAPI:
    """Create the FastAPI application"""
    config = config or settings
    services = {}

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan management"""
        logger.info("🚀 Starting Geospatial Anchor Service...")
        try:
            kv_store = store or create_key_value_store(config)
            tracking = RemoteTrackingSubsystem()
            controller = build_controller(config, kv_store, tracking, scheduler)

            setup_metrics()
            set_services(controller, tracking)
            services['controller'] = controller

            logger.info("✅ Geospatial Anchor Service initialized successfully")
            yield

        except Exception as e:
            logger.error(f"❌ Failed to initialize Geospatial Anchor Service: {e}")
            raise
        finally:
            logger.info("🛑 Shutting down Geospatial Anchor Service...")
            controller = services.pop('controller', None)
            if controller:
                controller.disable()
            set_services(None, None)

    app = FastAPI(
        title="Geospatial Anchor Service",
        description="Geospatial localization readiness and anchor history for AR sessions",
        version=SERVICE_VERSION,
        docs_url="/docs" if config.is_development else None,
        redoc_url="/redoc" if config.is_development else None,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if config.is_development else [],
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
    )

    app.include_router(api_router, prefix="/api/v1")

    @app.get("/health")
    async def health_check():
        """Health check endpoint"""
        controller = services.get('controller')
        services_status = {
            'session_controller': controller is not None,
            'session_active': bool(controller and not controller.terminated)
        }

        if controller is not None:
            return {
                "status": "healthy",
                "service": SERVICE_NAME,
                "version": SERVICE_VERSION,
                "timestamp": datetime.now().isoformat(),
                "services": services_status
            }

        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "service": SERVICE_NAME,
                "services": services_status,
                "timestamp": datetime.now().isoformat()
            }
        )

    @app.get("/metrics")
    async def get_metrics():
        """Service metrics endpoint"""
        controller = services.get('controller')
        return {
            "service": SERVICE_NAME,
            "timestamp": datetime.now().isoformat(),
            "metrics": {
                'requests': metrics.get_metrics(),
                'session': controller.get_metrics() if controller else {}
            }
        }

    @app.get("/")
    async def root():
        """Root endpoint with service information"""
        return {
            "service": "Geospatial Anchor Service",
            "description": "Localization readiness and anchor history for geospatial AR",
            "version": SERVICE_VERSION,
            "status": "operational",
            "docs": "/docs" if config.is_development else "disabled",
            "health": "/health",
            "metrics": "/metrics"
        }

    return app


app = create_app()


def main():
    """Run the development server"""
    uvicorn.run(
        "geospatial_anchor_service.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.is_development,
        log_level=settings.LOG_LEVEL.lower(),
        access_log=True
    )


if __name__ == "__main__":
    main()
