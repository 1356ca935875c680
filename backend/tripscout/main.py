import logging
import os
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tripscout.config import settings

# ─── Logging setup (file + console) ───
_LOG_DIR = Path(__file__).resolve().parent.parent / "logs"
_LOG_DIR.mkdir(exist_ok=True)

_log_level = getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO)

logging.basicConfig(
    level=_log_level,
    format="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
    handlers=[
        logging.StreamHandler(),
        RotatingFileHandler(
            _LOG_DIR / "tripscout.log",
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding="utf-8",
        ),
    ],
)

# Quiet noisy libraries
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

from tripscout.errors import AuthError, ValidationError
from tripscout.routers import cache, destinations, search, weather
from tripscout.services.geocoding_service import geocoding_service
from tripscout.services.token_service import token_service
from tripscout.services.weather_service import weather_service

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if token_service.is_configured:
        logger.info("Amadeus credentials configured, live discovery enabled")
    else:
        logger.warning("Amadeus credentials missing, serving reference destinations")

    yield

    # Shutdown
    await weather_service.close()
    await geocoding_service.close()
    await token_service.close()
    logger.info("HTTP clients closed")


app = FastAPI(
    title="TripScout",
    description="Budget travel destination recommendations",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError):
    logger.error(f"Upstream authentication failed on {request.url.path}: {exc}")
    return JSONResponse(status_code=502, content={"detail": "Flight provider authentication failed"})


app.include_router(search.router, prefix="/api/search", tags=["search"])
app.include_router(destinations.router, prefix="/api/destinations", tags=["destinations"])
app.include_router(weather.router, prefix="/api/weather", tags=["weather"])
app.include_router(cache.router, prefix="/api/cache", tags=["cache"])


@app.get("/api/health")
async def health_check():
    return {"status": "ok", "service": "tripscout"}
