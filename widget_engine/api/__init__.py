"""API router for v1 endpoints."""

from fastapi import APIRouter

from widget_engine.api import dashboard

router = APIRouter()

router.include_router(dashboard.router, tags=["dashboard"])
