"""Main application module."""

import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from notebuddy.api.api import router as api_router
from notebuddy.logging_utils import setup_logging

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="NoteBuddy")

app.add_middleware(
    CORSMiddleware,  # type: ignore[arg-type]
    # ALLOW_ORIGIN (comma-separated) or fallback to localhost:3000 in development
    allow_origins=(os.environ.get("ALLOW_ORIGIN") or "http://localhost:3000").split(
        ",",
    ),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "NoteBuddy API"}


app.include_router(api_router)
