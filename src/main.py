"""FastAPI application for the demo video narrator."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from src.api.routes import (
    demo_narrator_exception_handler,
    generic_exception_handler,
    http_exception_handler,
    intake_exception_handler,
    router as video_router,
)
from src.config import get_settings
from src.utils.errors import DemoNarratorError, IntakeError

settings = get_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


def create_directories() -> None:
    """Create the upload, temp and output directories if missing."""
    for role, path in settings.working_dirs().items():
        if path.is_dir():
            logger.info(f"Directory exists: {path.resolve()}")
        else:
            path.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created {role} directory: {path.resolve()}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_directories()
    logger.info(f"Gemini API key loaded: {'Yes' if settings.gemini_api_key else 'No'}")
    logger.info(f"ElevenLabs API key loaded: {'Yes' if settings.elevenlabs_api_key else 'No'}")
    logger.info(f"Cloud storage configured: {'Yes' if settings.storage_configured else 'No'}")
    yield


# Output directory must exist before StaticFiles is mounted
create_directories()

app = FastAPI(title="Demo Video Narrator API", lifespan=lifespan)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(IntakeError, intake_exception_handler)
app.add_exception_handler(DemoNarratorError, demo_narrator_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

app.include_router(video_router)


@app.get("/health")
async def health() -> dict:
    """Report liveness and whether the working directories exist."""
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "directories": {role: path.is_dir() for role, path in settings.working_dirs().items()},
    }


# Direct access to finished videos
app.mount("/output", StaticFiles(directory=settings.output_dir), name="output")


def main() -> None:
    uvicorn.run("src.main:app", host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
