"""Centralized CORS configuration for the blog API."""

import os
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware


# Production origins (always allowed)
PRODUCTION_ORIGINS = [
    "https://blog.example.com",
]

# Development origins (dev environment only)
DEV_ORIGINS = [
    "http://localhost:5173",
    "http://localhost:3000",
    "http://127.0.0.1:5173",
]


def get_allowed_origins() -> list[str]:
    """Build the list of allowed CORS origins for the current environment."""
    origins = list(PRODUCTION_ORIGINS)

    # Add FRONTEND_URL from env if set
    frontend_url = os.getenv("FRONTEND_URL")
    if frontend_url:
        clean_url = frontend_url.rstrip("/")
        if clean_url not in origins:
            origins.append(clean_url)

    # Add dev origins outside production
    env = os.getenv("ENVIRONMENT", "development")
    if env != "production":
        origins.extend(DEV_ORIGINS)

    return origins


def setup_cors(app: FastAPI) -> None:
    """Add CORS middleware to a FastAPI app."""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_allowed_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
