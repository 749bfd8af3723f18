"""
Blog Service API

Posts, categories and comments with image uploads. Authentication is
delegated to an external identity provider.
"""
import os
import logging
from fastapi import FastAPI, APIRouter, Request
from fastapi.responses import Response
from fastapi.staticfiles import StaticFiles

from apps.shared.cors import setup_cors
from apps.shared.database import Base, engine, check_db_connection
from apps.shared.errors import setup_error_handlers
from apps.shared.security_headers import setup_security_headers
from apps.blog import categories, posts, users

logger = logging.getLogger(__name__)

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")

# Create tables
Base.metadata.create_all(bind=engine)

# Ensure uploads directory exists before it is mounted
os.makedirs(posts.UPLOAD_DIR, exist_ok=True)

app = FastAPI(
    title="Blog Service",
    version="1.0.0",
    description="Blog posts, categories and comments with image uploads",
)

# Setup CORS from shared configuration
setup_cors(app)
setup_security_headers(app)
setup_error_handlers(app)

if ENVIRONMENT == "development":
    @app.middleware("http")
    async def log_requests(request: Request, call_next) -> Response:
        logger.info(f"{request.method} {request.url.path}")
        return await call_next(request)

router = APIRouter(prefix="/api")


@router.get("/health")
def health():
    """Health check endpoint - returns service status"""
    db_connected = check_db_connection()
    return {
        "status": "ok" if db_connected else "degraded",
        "service": "blog",
        "database": "connected" if db_connected else "disconnected",
    }


@app.get("/")
def index():
    """Service info."""
    return {
        "success": True,
        "message": "Blog API is running",
        "version": app.version,
        "endpoints": {
            "posts": "/api/posts",
            "categories": "/api/categories",
            "auth": "/api/auth",
        },
    }


app.include_router(router)
app.include_router(posts.router)
app.include_router(categories.router)
app.include_router(users.router)

# Serve uploaded images
app.mount(posts.UPLOAD_URL_PREFIX, StaticFiles(directory=posts.UPLOAD_DIR), name="uploads")
