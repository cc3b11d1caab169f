#!/usr/bin/env python3
"""
FaceSync FastAPI Server

Orchestrates talking-head video synthesis jobs against the face2face and
TTS inference services. Provides API endpoints for voices, source models
and jobs; a background scheduler drives queued jobs to completion.
"""
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from app.config import APP_NAME, APP_VERSION, SERVER_HOST, SERVER_PORT, REMOTE_STORAGE_ENABLED
from app.clients.face2face import get_face2face_client, reset_face2face_client
from app.clients.tts import get_tts_client, reset_tts_client
from app.database import init_db, close_db
from app.logging_config import setup_logging
from app.services.job_scheduler import get_job_scheduler
from app.storage import close_storage
from app.routers import health_router, voices_router, models_router, jobs_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan context manager.

    Startup:
        - Configure logging
        - Initialize database and create tables
        - Start the job scheduler

    Shutdown:
        - Stop the job scheduler
        - Close HTTP clients and storage backends
        - Close database connections
    """
    setup_logging()
    logger.info('Starting %s v%s...', APP_NAME, APP_VERSION)

    await init_db()
    logger.info('Database ready, remote storage %s', 'enabled' if REMOTE_STORAGE_ENABLED else 'disabled')

    scheduler = get_job_scheduler()
    await scheduler.start()
    logger.info('Server ready at http://%s:%s', SERVER_HOST, SERVER_PORT)

    yield

    logger.info('Shutting down...')
    await scheduler.stop()
    await get_face2face_client().close()
    reset_face2face_client()
    await get_tts_client().close()
    reset_tts_client()
    await close_storage()
    await close_db()
    logger.info('Shutdown complete.')


# Create FastAPI application
app = FastAPI(
    title=APP_NAME,
    description='Job orchestration for talking-head video synthesis.',
    version=APP_VERSION,
    lifespan=lifespan,
)

# Register routers
app.include_router(health_router)
app.include_router(voices_router)
app.include_router(models_router)
app.include_router(jobs_router)


if __name__ == '__main__':
    uvicorn.run(
        app,
        host=SERVER_HOST,
        port=SERVER_PORT,
        reload=False,
        log_level='info',
    )
