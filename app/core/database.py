# app/core/database.py
"""Database configuration with separate config and telemetry store databases."""

import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from app.core.config import DATABASE_URL, DATA_WAREHOUSE_URL

logger = logging.getLogger(__name__)


def _connect_args(url: str) -> dict:
    return {"check_same_thread": False} if url.startswith("sqlite") else {}


# ===== CONFIG DATABASE =====
# Stores request logs
engine = create_engine(DATABASE_URL, connect_args=_connect_args(DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


# ===== TELEMETRY STORE =====
# Stores schools, classrooms, users, sessions, events, quizzes and content
dw_engine = create_engine(
    DATA_WAREHOUSE_URL,
    connect_args=_connect_args(DATA_WAREHOUSE_URL),
    pool_pre_ping=True,
)
DWSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=dw_engine)
DWBase = declarative_base()


# ===== SESSION GENERATORS =====


def get_db():
    """Get config database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_dw_db():
    """Get telemetry store session."""
    db = DWSessionLocal()
    try:
        yield db
    finally:
        db.close()


# ===== TABLE CREATION =====


def create_all_tables():
    """Create tables in both databases."""
    # Import models to ensure they're registered with Base classes
    from app.logging.models import Log  # noqa: F401
    from app.datawarehouse import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    DWBase.metadata.create_all(bind=dw_engine)
    logger.info("Database tables created")


def init_db():
    """Create any missing tables. Existing data is left untouched."""
    create_all_tables()
