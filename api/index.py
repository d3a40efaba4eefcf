"""
StudentHub Marketplace - Main FastAPI Application

Single entry point for the REST API, uploaded files and the Socket.IO
server. Run with: uvicorn api.index:socket_app
"""
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import socketio
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.docs import get_swagger_ui_html
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from studenthub import config
from studenthub.errors import ERROR_INTERNAL
from studenthub.logging import get_logger
from studenthub.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from studenthub.middleware.upload import get_upload_dir
from studenthub.realtime import sio
from studenthub.routers import (
    admin_router,
    chats_router,
    comments_router,
    cron_router,
    payments_router,
    products_router,
    users_router,
)
from studenthub.routers.deps import shutdown_services
from studenthub.services.database import close_database, init_database

logger = get_logger(__name__)


# ==================== FASTAPI APP ====================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler"""
    # Startup
    await init_database()
    logger.info(f"StudentHub API started ({config.NODE_ENV})")
    yield
    # Shutdown
    await shutdown_services()
    await close_database()


app = FastAPI(
    title="StudentHub Marketplace",
    description="Second-hand marketplace API for students",
    version="1.0.0",
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None,
    openapi_url="/api-docs.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[config.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)

app.mount("/uploads", StaticFiles(directory=str(get_upload_dir())), name="uploads")

app.include_router(users_router)
app.include_router(products_router)
app.include_router(chats_router)
app.include_router(comments_router)
app.include_router(payments_router)
app.include_router(admin_router)
app.include_router(cron_router)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"detail": ERROR_INTERNAL})


# ==================== HEALTH & DOCS ====================

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat()}


@app.get("/api-docs", include_in_schema=False)
async def api_docs():
    return get_swagger_ui_html(openapi_url=app.openapi_url, title=f"{app.title} - API docs")


# ==================== SOCKET.IO ====================

socket_app = socketio.ASGIApp(sio, other_asgi_app=app)
