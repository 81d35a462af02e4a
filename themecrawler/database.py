"""
Database schema and connection management.

Uses SQLite with SQLAlchemy for durable job storage.
"""

from datetime import datetime
from pathlib import Path
from sqlalchemy import create_engine, Column, Integer, String, Text, DateTime, Index
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()

PENDING = "pending"
IN_FLIGHT = "in_flight"
DEAD_LETTER = "dead_letter"


class QueuedJob(Base):
    """A job waiting in, held from, or parked by a queue."""

    __tablename__ = "queued_jobs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    queue = Column(String, nullable=False)  # job kind, e.g. fetchThemes
    payload = Column(Text, nullable=False)  # JSON
    status = Column(String, nullable=False, default=PENDING)
    receipt_handle = Column(String, nullable=True, unique=True)
    attempts = Column(Integer, nullable=False, default=0)
    visible_at = Column(DateTime, nullable=False, default=datetime.now)
    last_error = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    __table_args__ = (
        Index("ix_queued_jobs_claim", "queue", "status", "visible_at"),
    )


def get_engine(db_path: Path) -> Engine:
    """
    Create an engine for the SQLite file at db_path.

    Args:
        db_path: Path to SQLite database file
    """
    return create_engine(f"sqlite:///{db_path}", connect_args={"timeout": 30})


def init_database(db_path: Path) -> Engine:
    """
    Initialize database and create tables.

    Args:
        db_path: Path to SQLite database file

    Returns:
        Engine bound to the database
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(db_path)
    Base.metadata.create_all(engine)
    return engine


def get_session(db_path: Path):
    """
    Get database session.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLAlchemy session
    """
    Session = sessionmaker(bind=get_engine(db_path))
    return Session()
