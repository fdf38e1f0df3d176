# -*- coding: utf-8 -*-
"""
Thryve API

Health readings, reading-access sharing between users, notifications with
push / email / WhatsApp delivery, and a health assistant chat.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .app_db import init_app_db
from .assistant.api import router as assistant_router
from .auth.api import router as auth_router
from .auth.security import get_current_user_from_request
from .config import settings
from .delivery.api import internal_router as delivery_internal_router
from .delivery.api import router as delivery_router
from .errors import ThryveError
from .metrics.api import router as metrics_router
from .notifications.api import router as notifications_router
from .sharing.api import router as sharing_router

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Thryve",
    description="Health readings, sharing and notifications",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    openapi_url="/api/openapi.json",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def _startup_init_db() -> None:
    init_app_db(settings.app_db_path)


# Ensure the app DB exists even when lifespan events are not triggered (e.g. some test clients).
init_app_db(settings.app_db_path)


_AUTH_EXEMPT_PREFIXES = (
    "/api/auth/login",
    "/api/auth/register",
    "/api/docs",
    "/api/redoc",
    "/api/openapi.json",
    # Internal endpoints carry their own dispatch token.
    "/api/internal/",
)


@app.middleware("http")
async def _auth_gate(request: Request, call_next):
    path = request.url.path
    if path.startswith("/api") and path != "/api/health" and not any(path.startswith(p) for p in _AUTH_EXEMPT_PREFIXES):
        try:
            user = get_current_user_from_request(request)
            request.state.user = user
        except HTTPException as exc:
            return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})
    return await call_next(request)


@app.exception_handler(ThryveError)
async def _thryve_error_handler(request: Request, exc: ThryveError):
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(auth_router)
app.include_router(metrics_router)
app.include_router(sharing_router)
app.include_router(notifications_router)
app.include_router(delivery_router)
app.include_router(delivery_internal_router)
app.include_router(assistant_router)


@app.get("/api/health")
def health_check():
    return {
        "status": "ok",
        "version": app.version,
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
    }


def run() -> None:
    """Console entry point (used by pyproject [project.scripts])."""
    import uvicorn

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    host = os.environ.get("THRYVE_HOST") or os.environ.get("HOST") or "127.0.0.1"
    port_raw = os.environ.get("THRYVE_PORT") or os.environ.get("PORT") or "8000"
    try:
        port = int(port_raw)
    except ValueError:
        port = 8000

    uvicorn.run("thryve.api:app", host=host, port=port, reload=False)


if __name__ == "__main__":
    run()
