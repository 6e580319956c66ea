"""API router configuration."""

from fastapi import APIRouter

from notebuddy.api.endpoints import notes

router = APIRouter()
router.include_router(notes.router)
