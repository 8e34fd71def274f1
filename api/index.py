"""
FastAPI web API for KCC Multiplex showtimes.

GET /kcc        -> {"date": ..., "message": ...}
GET /kcc/siri   -> the same message as plain text, for voice shortcuts
"""

from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from scrapers.config import settings
from scrapers.kcc import ShowtimeService
from utils.logging_utils import get_tagged_logger, setup_logging

logger = get_tagged_logger(__name__, tag="api")

SIRI_APOLOGY = "Sorry, I could not get the showtimes right now."

service = ShowtimeService(settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(level=settings.log_level, job_name="kcc-api")
    logger.info("KCC API starting (port %s)", settings.port)
    yield
    await service.close()


app = FastAPI(
    title="KCC Multiplex Showtimes API",
    description="Today's movies, halls and showtimes from the KCC Multiplex booking page",
    version="0.1.0",
    lifespan=lifespan,
)

# Enable CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/kcc")
async def get_showtimes():
    """Today's showtimes as JSON."""
    try:
        date = service.today()
        message = await service.get_message(date)
        return {"date": date, "message": message}
    except Exception as e:
        logger.exception("Showtime extraction failed")
        return JSONResponse(status_code=500, content={"error": str(e)})


@app.get("/kcc/siri", response_class=PlainTextResponse)
async def get_showtimes_text():
    """Today's showtimes as plain text."""
    try:
        date = service.today()
        return PlainTextResponse(await service.get_message(date))
    except Exception:
        logger.exception("Showtime extraction failed")
        return PlainTextResponse(SIRI_APOLOGY, status_code=500)


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    entry = service.cache.peek()
    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "browser_running": service.session.is_running,
        "cached_date": entry.key if entry else None,
    }
