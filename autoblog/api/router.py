from fastapi import APIRouter

from autoblog.api.cron import router as cron_router
from autoblog.api.generate import router as generate_router
from autoblog.api.jobs import router as jobs_router
from autoblog.api.public import router as public_router

api_router = APIRouter()

# Dashboard routes at /api/*
api_router.include_router(generate_router, prefix="/api", tags=["generation"])
api_router.include_router(jobs_router, prefix="/api", tags=["jobs"])

# Scheduler / worker routes at /api/*
api_router.include_router(cron_router, prefix="/api", tags=["cron"])

# Public API at /api/v1/*
api_router.include_router(public_router, prefix="/api/v1", tags=["public"])
