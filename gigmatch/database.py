"""
Database schema and connection management.

Uses SQLite with SQLAlchemy for the users, jobs, applications and reviews
that feed the recommendation service. Scores are never stored.
"""

import uuid
from datetime import datetime, timezone
from pathlib import Path
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    String,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, sessionmaker

Base = declarative_base()

ROLE_CLIENT = "CLIENT"
ROLE_FREELANCER = "FREELANCER"
ROLE_ADMIN = "ADMIN"

STATUS_OPEN = "OPEN"
STATUS_IN_PROGRESS = "IN_PROGRESS"
STATUS_COMPLETED = "COMPLETED"
STATUS_CANCELLED = "CANCELLED"


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """Marketplace user (client or freelancer)."""

    __tablename__ = "users"

    id = Column(String, primary_key=True, default=_new_id)
    username = Column(String, nullable=False, unique=True)
    role = Column(String, nullable=False, default=ROLE_FREELANCER)
    skills = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, nullable=False, default=_utcnow)


class Job(Base):
    """Job posting model."""

    __tablename__ = "jobs"

    id = Column(String, primary_key=True, default=_new_id)
    title = Column(String, nullable=False)
    category = Column(String, nullable=False)
    skills = Column(JSON, nullable=False, default=list)
    status = Column(String, nullable=False, default=STATUS_OPEN)
    is_flagged = Column(Boolean, nullable=False, default=False)
    client_id = Column(String, ForeignKey("users.id"), nullable=False)
    freelancer_id = Column(String, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow)


class Application(Base):
    """A freelancer's application to a job."""

    __tablename__ = "applications"
    __table_args__ = (UniqueConstraint("job_id", "freelancer_id"),)

    id = Column(String, primary_key=True, default=_new_id)
    job_id = Column(String, ForeignKey("jobs.id"), nullable=False)
    freelancer_id = Column(String, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime, nullable=False, default=_utcnow)


class Review(Base):
    """Rating (1-5) left by one party of a job for the other."""

    __tablename__ = "reviews"

    id = Column(String, primary_key=True, default=_new_id)
    job_id = Column(String, ForeignKey("jobs.id"), nullable=False)
    reviewer_id = Column(String, ForeignKey("users.id"), nullable=False)
    reviewee_id = Column(String, ForeignKey("users.id"), nullable=False)
    rating = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, default=_utcnow)


def init_database(db_path: Path) -> None:
    """
    Initialize database and create tables.

    Args:
        db_path: Path to SQLite database file
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(f"sqlite:///{db_path}")
    Base.metadata.create_all(engine)


def get_session(db_path: Path):
    """
    Get database session.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLAlchemy session
    """
    engine = create_engine(f"sqlite:///{db_path}")
    Session = sessionmaker(bind=engine)
    return Session()
