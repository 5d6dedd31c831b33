"""
FastAPI application entry point.

Run with: uvicorn api.main:app --reload
"""
import logging
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# Load environment variables from backend/.env (optional) before other imports that read env
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(env_path)

from api.routes import stamps, styles

logger = logging.getLogger(__name__)

# Create app
app = FastAPI(
    title="Stampit Studio API",
    description="API for turning photos into ink stamps and pressing them onto documents",
    version="0.1.0",
)

# CORS middleware for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure properly for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(styles.router, prefix="/styles", tags=["styles"])
app.include_router(stamps.router, tags=["stamps"])


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    """Validation errors that escape a route are client errors."""
    logger.warning("[api] %s %s rejected: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "Stampit Studio API"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
