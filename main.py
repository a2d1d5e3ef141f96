"""
Dining Events - FastAPI Backend
Main application entry point
"""

import os
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
import uvicorn

from app.core.config import settings
from app.core.db import engine, Base
from app.api import routes_events, routes_photos, routes_public, routes_users, ws
from app.api.error_handlers import register_error_handlers
from app.services.repositories import use_firestore

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Prepare the storage backend"""
    if use_firestore():
        logger.info("Storage backend: Firestore")
    else:
        Base.metadata.create_all(bind=engine)
        logger.info(f"Storage backend: SQL ({engine.url.get_backend_name()})")
    yield
    logger.info("Application shutdown")

def create_app() -> FastAPI:
    app = FastAPI(
        title="Dining Events",
        description="Menus, invitations, course notifications and photos for dining events",
        version="1.0.0",
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_error_handlers(app)

    # Photos stored on local disk are served from here
    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_DIR), name="uploads")

    app.include_router(routes_public.router, tags=["public"])
    app.include_router(routes_users.router, prefix="/users", tags=["users"])
    app.include_router(routes_events.router, prefix="/events", tags=["events"])
    app.include_router(routes_photos.router, prefix="/events", tags=["photos"])
    app.include_router(ws.router, prefix="/ws", tags=["websocket"])
    return app

app = create_app()

if __name__ == "__main__":
    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=True)
