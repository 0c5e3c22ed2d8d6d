# File: vecinity/main.py
# Project: vecinity-backend

import logging
import os
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from slowapi.middleware import SlowAPIMiddleware

from vecinity.core.config import cors_origins_list, settings
from vecinity.core.errors import register_exception_handlers
from vecinity.core.ratelimit import limiter
from vecinity.routers import admin, auth, categories, reports, users

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

os.makedirs(settings.upload_path, exist_ok=True)

app = FastAPI(title="Vecinity API")
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins_list(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.mount("/uploads", StaticFiles(directory=settings.upload_path, check_dir=False), name="uploads")

logger.info("Vecinity API starting (environment=%s, uploads=%s)", settings.environment, settings.upload_path)

@app.get("/health")
def health():
    return {
        "success": True,
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
    }

app.include_router(auth.router)
app.include_router(reports.router)
app.include_router(categories.router)
app.include_router(users.router)
app.include_router(admin.router)
