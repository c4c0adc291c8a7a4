from contextlib import asynccontextmanager
from fastapi import FastAPI, Depends, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.orm import Session
from pydantic import BaseModel, Field
from typing import Optional
import asyncio
import logging
import re

from scraper_api.config import settings
from scraper_api.database import ScrapeRun, get_db, init_db, save_report, engine
from marketscraper import __version__
from marketscraper.base import BrowserLaunchError, SearchRequest
from marketscraper.manager import ScrapeManager
from marketscraper.settings import ScraperSettings

# Setup logging directory
settings.log_dir.mkdir(exist_ok=True)


# Custom formatter to strip ANSI color codes from file logs
class ColorStripFormatter(logging.Formatter):
    """Formatter that strips ANSI color codes from log messages."""
    ansi_escape = re.compile(r'\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])')

    def format(self, record):
        message = super().format(record)
        return self.ansi_escape.sub('', message)


# Setup logging with color support for console, stripped for file
file_handler = logging.FileHandler(settings.log_file, encoding='utf-8')
file_handler.setFormatter(ColorStripFormatter(settings.log_format))

console_handler = logging.StreamHandler()
console_handler.setFormatter(logging.Formatter(settings.log_format))

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    handlers=[file_handler, console_handler],
    force=True  # Override any existing configuration
)

logger = logging.getLogger(__name__)

# Engine settings are read once and shared by every request
scraper_settings = ScraperSettings()


async def cleanup_resources():
    """Close database connections on shutdown."""
    logger.info("Closing database connections...")
    try:
        await asyncio.wait_for(
            asyncio.get_running_loop().run_in_executor(None, lambda: engine.dispose(close=True)),
            timeout=2.0
        )
        logger.info("Database connections closed")
    except asyncio.TimeoutError:
        logger.warning("Database cleanup timed out")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    # Startup
    logger.info("=" * 60)
    logger.info("Marketplace Scraper API Starting Up")
    logger.info("=" * 60)
    logger.info(f"Log file: {settings.log_file}")
    logger.info(f"Database: {settings.database_url}")
    logger.info(f"CORS origins: {settings.cors_origins}")
    logger.info(f"Concurrency: {scraper_settings.concurrency}, retries: {scraper_settings.retries}")
    init_db()
    logger.info("Database initialized successfully")

    yield  # Application runs here

    # Shutdown
    logger.info("Marketplace Scraper API Shutting Down")
    await cleanup_resources()
    logger.info("Shutdown complete")


app = FastAPI(
    title="Marketplace Scraper API",
    version=__version__,
    lifespan=lifespan
)

# Note: allow_credentials must be False when allow_origins is ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Pydantic models for API requests
class SearchBody(BaseModel):
    term: str = Field(..., min_length=1)
    location: Optional[str] = None
    category: Optional[str] = None
    max_pages: Optional[int] = Field(None, ge=1)
    scrape_details: bool = False
    sort: Optional[str] = None
    expand: bool = True


def get_manager() -> ScrapeManager:
    """Scrape manager dependency (overridden in tests)."""
    return ScrapeManager(scraper_settings)


# API Endpoints

@app.get("/")
async def root():
    return {"message": "Marketplace Scraper API", "version": __version__}


@app.get("/health")
async def health():
    return {"ok": True}


@app.post("/api/search")
async def search(
    body: SearchBody,
    manager: ScrapeManager = Depends(get_manager),
    db: Session = Depends(get_db)
):
    """Run a search across its query variants and store the report"""
    try:
        request = SearchRequest(
            query=body.term.strip(),
            location=body.location,
            category=body.category,
            max_pages=body.max_pages or scraper_settings.max_pages,
            scrape_details=body.scrape_details,
            sort=body.sort,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        report = await manager.run(request, expand=body.expand)
    except BrowserLaunchError as e:
        logger.error(f"Browser launch failed: {e}")
        raise HTTPException(status_code=503, detail=f"Browser unavailable: {e}")

    run = save_report(db, report, category=body.category)
    logger.info(f"Stored run {run.id} for '{report.query}' ({report.total_found} listings)")
    return {**report.to_dict(), "runId": run.id}


@app.get("/api/runs")
async def list_runs(
    limit: int = Query(settings.runs_page_size, ge=1, le=500),
    query: Optional[str] = Query(None, description="Filter by search term"),
    db: Session = Depends(get_db)
):
    """List stored runs, newest first"""
    q = db.query(ScrapeRun)
    if query:
        q = q.filter(ScrapeRun.query == query)
    runs = q.order_by(ScrapeRun.created_at.desc(), ScrapeRun.id.desc()).limit(limit).all()
    return [run.summary() for run in runs]


@app.get("/api/runs/{run_id}")
async def get_run(run_id: int, db: Session = Depends(get_db)):
    """Get a stored report"""
    run = db.query(ScrapeRun).filter(ScrapeRun.id == run_id).first()
    if not run:
        raise HTTPException(status_code=404, detail="Run not found")
    return {**run.report, "runId": run.id, "createdAt": run.created_at.isoformat()}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        access_log=True,
        log_config=None,
        timeout_keep_alive=5,
        timeout_graceful_shutdown=5.0,
    )
