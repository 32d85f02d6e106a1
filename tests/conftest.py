"""
Pytest configuration and shared fixtures.
"""

import pytest
import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, Any

from gigmatch.database import (
    Application,
    Job,
    Review,
    User,
    ROLE_CLIENT,
    ROLE_FREELANCER,
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    get_session,
    init_database,
)
from gigmatch.logger import get_logger, reset_logger

NOW = datetime(2026, 2, 26, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def quiet_logger():
    """Keep the global logger off the console and out of the working directory."""
    reset_logger()
    get_logger(enable_file=False, enable_console=False)
    yield
    reset_logger()


@pytest.fixture
def now() -> datetime:
    """Fixed evaluation instant."""
    return NOW


@pytest.fixture
def valid_posting() -> Dict[str, Any]:
    """Valid posting record."""
    return {
        "id": "job-1",
        "title": "Frontend developer",
        "category": "Development",
        "skills": ["React", "TypeScript"],
        "created_at": "2026-02-20T00:00:00Z",
        "rating": 4.5,
    }


@pytest.fixture
def valid_profile() -> Dict[str, Any]:
    """Valid candidate profile."""
    return {
        "skills": ["react", "Node.js"],
        "completed_categories": ["development"],
    }


@pytest.fixture
def score_input_file(tmp_path, valid_profile, valid_posting) -> Path:
    """JSON file for the score command: one strong, one weak, one invalid posting."""
    weak = {
        "id": "job-2",
        "title": "Data pipeline",
        "category": "Data Science",
        "skills": ["Python", "Airflow"],
        "created_at": "2025-01-01T00:00:00Z",
    }
    broken = {"id": "job-3", "skills": "react"}
    path = tmp_path / "score.json"
    path.write_text(json.dumps({
        "profile": valid_profile,
        "postings": [weak, valid_posting, broken],
    }))
    return path


@pytest.fixture
def db_path(tmp_path) -> Path:
    path = tmp_path / "gigmatch.db"
    init_database(path)
    return path


@pytest.fixture
def db_session(db_path):
    """Create a temporary database and return a session."""
    session = get_session(db_path)
    yield session
    session.close()


@pytest.fixture
def marketplace(db_session) -> Dict[str, Any]:
    """
    Seed a small marketplace.

    alice is a freelancer with React/Node.js skills who completed a
    Development job for carol. Carol is rated 5, dave is unrated.
    """
    alice = User(id="alice", username="alice", role=ROLE_FREELANCER, skills=["React", "Node.js"])
    bob = User(id="bob", username="bob", role=ROLE_FREELANCER, skills=["Python", "Django"])
    carol = User(id="carol", username="carol", role=ROLE_CLIENT, skills=[])
    dave = User(id="dave", username="dave", role=ROLE_CLIENT, skills=[])
    db_session.add_all([alice, bob, carol, dave])

    jobs = [
        Job(id="done", title="Old site", category="Development", skills=["React"],
            status=STATUS_COMPLETED, client_id="carol", freelancer_id="alice",
            created_at=NOW - timedelta(days=90)),
        Job(id="react-fresh", title="React dashboard", category="Development",
            skills=["react", "node.js"], client_id="carol", created_at=NOW),
        Job(id="react-old", title="React landing page", category="Design",
            skills=["React", "CSS"], client_id="dave", created_at=NOW - timedelta(days=15)),
        Job(id="python-api", title="Django API", category="Backend",
            skills=["Python", "Django"], client_id="dave", created_at=NOW - timedelta(days=1)),
        Job(id="applied", title="Already applied", category="Development",
            skills=["React", "Node.js"], client_id="carol", created_at=NOW),
        Job(id="flagged", title="Spam", category="Development",
            skills=["React", "Node.js"], client_id="carol", is_flagged=True, created_at=NOW),
        Job(id="busy", title="In progress", category="Development",
            skills=["React", "Node.js"], status=STATUS_IN_PROGRESS, client_id="carol",
            freelancer_id="bob", created_at=NOW),
    ]
    db_session.add_all(jobs)
    db_session.add(Application(job_id="applied", freelancer_id="alice"))
    db_session.add(Review(job_id="done", reviewer_id="alice", reviewee_id="carol", rating=5))
    db_session.add(Review(job_id="done", reviewer_id="carol", reviewee_id="alice", rating=4))
    db_session.commit()

    return {"session": db_session, "now": NOW}
