"""
HTTP service: run a scrape and export the results.

Each /api/scrape request builds its own GoogleMapsScraper, and so its own
browser session. The handlers are plain functions, so FastAPI runs the
blocking scrape in its worker threadpool.
"""

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, List, Optional

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel
from pydantic_settings import BaseSettings

from .config import DEFAULT_CONFIG, LOGGER_NAME, VERSION, build_config
from .exceptions import InvalidRequestError, UnsupportedFormatError
from .export import export_records
from .logging_setup import setup_logging
from .models import ScrapeRequest
from .scraper import GoogleMapsScraper

logger = logging.getLogger(LOGGER_NAME)


class Settings(BaseSettings):
    """Service settings loaded from GMAPS_* environment variables."""

    host: str = "0.0.0.0"
    port: int = 2000
    log_level: str = "INFO"
    log_dir: str = "logs"
    headless: bool = True
    driver_path: Optional[str] = None
    chrome_binary: Optional[str] = None
    show_progress: bool = False
    cors_origins: List[str] = ["*"]

    class Config:
        env_prefix = "GMAPS_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


settings = Settings()


class ScrapeBody(BaseModel):
    query: Optional[str] = None
    location: Optional[str] = None
    limit: Optional[Any] = None


class ExportBody(BaseModel):
    data: Optional[List[dict]] = None
    format: Optional[str] = None


def get_scraper_factory():
    """Dependency returning a callable that builds one scraper per request"""
    def factory():
        config = build_config(
            headless=settings.headless,
            driver_path=settings.driver_path,
            chrome_binary=settings.chrome_binary,
            show_progress=settings.show_progress,
        )
        return GoogleMapsScraper(config)
    return factory


def parse_limit(value):
    if value is None:
        return DEFAULT_CONFIG["default_limit"]
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise InvalidRequestError(f"Limit must be a positive integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise InvalidRequestError(f"Limit must be a positive integer, got {value!r}") from None


def error_response(status_code, error, message=None):
    body = {"error": error}
    if message is not None:
        body["message"] = message
    return JSONResponse(status_code=status_code, content=body)


@asynccontextmanager
async def lifespan(app: FastAPI):
    session_id = datetime.now().strftime("%Y%m%d_%H%M%S")
    setup_logging(session_id, log_dir=settings.log_dir, debug=settings.log_level.upper() == "DEBUG")
    logger.info(f"🌐 Google Maps scraper service v{VERSION} starting (headless={settings.headless})")
    yield
    logger.info("Service shutting down")


app = FastAPI(title="Google Maps Scraper", version=VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
def root():
    return {"message": "Google Maps Scraper API", "version": VERSION}


@app.post("/api/scrape")
def scrape(body: ScrapeBody, scraper_factory=Depends(get_scraper_factory)):
    if not (body.query or "").strip() or not (body.location or "").strip():
        return error_response(400, "Query and location are required")
    try:
        request = ScrapeRequest(body.query, body.location, parse_limit(body.limit))
    except InvalidRequestError as e:
        return error_response(400, "Invalid limit", str(e))

    request_id = uuid.uuid4().hex[:8]
    logger.info(f"[{request_id}] Scrape request: '{request.search_query}' (limit {request.limit})")
    try:
        results = scraper_factory().run(request)
    except InvalidRequestError as e:
        return error_response(400, "Invalid limit", str(e))
    except Exception as e:
        logger.error(f"[{request_id}] Error during scraping: {e}", exc_info=True)
        return error_response(500, "Failed to scrape data", str(e))

    logger.info(f"[{request_id}] Returning {len(results)} businesses")
    return {"success": True, "data": [record.to_dict() for record in results]}


@app.post("/api/export")
def export(body: ExportBody):
    if body.data is None or not body.format:
        return error_response(400, "Data and format are required")
    try:
        payload = export_records(body.data, body.format)
    except UnsupportedFormatError as e:
        return error_response(400, "Unsupported format", str(e))
    except Exception as e:
        logger.error(f"Error exporting data: {e}", exc_info=True)
        return error_response(500, "Failed to export data", str(e))

    return Response(
        content=payload.content,
        media_type=payload.content_type,
        headers={"Content-Disposition": f'attachment; filename="{payload.filename}"'},
    )


def main():
    """Run the HTTP service with uvicorn"""
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
