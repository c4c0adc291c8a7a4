import json
from pathlib import Path
from typing import Any, Dict, Optional

from sqlalchemy import create_engine, Column, Integer, String, DateTime, Text
from sqlalchemy.orm import declarative_base, sessionmaker, Session

from marketscraper.base import ScrapeReport, utc_now

Base = declarative_base()


class ScrapeRun(Base):
    __tablename__ = 'scrape_runs'

    id = Column(Integer, primary_key=True)

    # Search
    query = Column(String, nullable=False, index=True)
    location = Column(String)
    category = Column(String)

    # Counters
    total_found = Column(Integer, default=0)
    pages_scraped = Column(Integer, default=0)
    error_count = Column(Integer, default=0)

    # Full report document (ScrapeReport.to_dict())
    report_json = Column(Text, nullable=False)

    # Metadata
    created_at = Column(DateTime, default=utc_now, index=True)

    @property
    def report(self) -> Dict[str, Any]:
        return json.loads(self.report_json)

    def summary(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'query': self.query,
            'location': self.location,
            'category': self.category,
            'totalFound': self.total_found,
            'pagesScraped': self.pages_scraped,
            'errorCount': self.error_count,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }


def save_report(db: Session, report: ScrapeReport, category: Optional[str] = None) -> ScrapeRun:
    """Persist a finished report and return the stored run."""
    run = ScrapeRun(
        query=report.query,
        location=report.location,
        category=category,
        total_found=report.total_found,
        pages_scraped=report.pages_scraped,
        error_count=len(report.errors),
        report_json=json.dumps(report.to_dict(), default=str, ensure_ascii=False),
    )
    db.add(run)
    db.commit()
    db.refresh(run)
    return run


# Database setup - import settings for database URL
from scraper_api.config import settings

if settings.database_url.startswith("sqlite:///") and ":memory:" not in settings.database_url:
    Path(settings.database_url[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)

# SQLite connections are shared with the threadpool that runs sync dependencies
connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

engine = create_engine(
    settings.database_url,
    echo=False,
    connect_args=connect_args,
    pool_pre_ping=True,    # Verify connections before use (handles stale connections)
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def init_db():
    Base.metadata.create_all(bind=engine)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
