"""
Ranked, paginated recommendations backed by the database.

Jobs for a freelancer, and freelancers for a job, are scored with the
relevance engine and sorted by descending score. Nothing is cached or stored.
"""

import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select

from .database import (
    Application,
    Job,
    Review,
    User,
    ROLE_FREELANCER,
    STATUS_COMPLETED,
    STATUS_OPEN,
)
from .logger import get_logger
from .relevance import RelevanceInput, compute_relevance_score

MAX_PAGE_SIZE = 100


def _check_pagination(page: int, limit: int) -> None:
    if page < 1:
        raise ValueError("page must be >= 1")
    if not 1 <= limit <= MAX_PAGE_SIZE:
        raise ValueError(f"limit must be between 1 and {MAX_PAGE_SIZE}")


def completed_categories(session, freelancer_id: str) -> List[str]:
    """Distinct categories of jobs the freelancer has completed."""
    rows = (
        session.query(Job.category)
        .filter(Job.freelancer_id == freelancer_id, Job.status == STATUS_COMPLETED)
        .distinct()
        .all()
    )
    return [category for (category,) in rows]


def completed_categories_by_freelancer(session, freelancer_ids: List[str]) -> Dict[str, List[str]]:
    """Distinct completed categories for many freelancers in one query."""
    if not freelancer_ids:
        return {}
    rows = (
        session.query(Job.freelancer_id, Job.category)
        .filter(Job.freelancer_id.in_(freelancer_ids), Job.status == STATUS_COMPLETED)
        .distinct()
        .all()
    )
    history: Dict[str, List[str]] = {}
    for freelancer_id, category in rows:
        history.setdefault(freelancer_id, []).append(category)
    return history


def average_ratings(session, user_ids: List[str]) -> Dict[str, float]:
    """Average received rating per user; users without reviews are omitted."""
    if not user_ids:
        return {}
    rows = (
        session.query(Review.reviewee_id, func.avg(Review.rating))
        .filter(Review.reviewee_id.in_(user_ids))
        .group_by(Review.reviewee_id)
        .all()
    )
    return {user_id: float(avg) for user_id, avg in rows}


def paginate(items: List[Dict[str, Any]], page: int, limit: int) -> Dict[str, Any]:
    total = len(items)
    skip = (page - 1) * limit
    return {
        "data": items[skip:skip + limit],
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": math.ceil(total / limit),
    }


def _rank(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    # sorted() is stable, ties keep query order
    return sorted(items, key=lambda item: item["relevance_score"], reverse=True)


def get_recommended_jobs(
    session,
    user_id: str,
    page: int = 1,
    limit: int = 10,
    now: Optional[datetime] = None,
) -> Optional[Dict[str, Any]]:
    """
    Open jobs ranked by relevance for a freelancer.

    Excludes flagged jobs, the user's own postings and jobs already applied
    to. Returns None when the user does not exist or is not a freelancer.
    """
    _check_pagination(page, limit)
    logger = get_logger()

    user = session.get(User, user_id)
    if user is None or user.role != ROLE_FREELANCER:
        logger.warning("Recommendations requested for non-freelancer", user_id=user_id)
        return None

    categories = completed_categories(session, user_id)

    applied = select(Application.job_id).where(Application.freelancer_id == user_id)

    open_jobs = (
        session.query(Job)
        .filter(
            Job.status == STATUS_OPEN,
            Job.is_flagged.is_(False),
            Job.client_id != user_id,
            Job.id.not_in(applied),
        )
        .order_by(Job.created_at.desc())
        .all()
    )

    ratings = average_ratings(session, list({job.client_id for job in open_jobs}))
    now = now or datetime.now(timezone.utc)

    scored = []
    for job in open_jobs:
        score = compute_relevance_score(RelevanceInput(
            candidate_skills=user.skills or [],
            posting_skills=job.skills or [],
            posting_category=job.category,
            completed_categories=categories,
            posted_at=job.created_at,
            now=now,
            counterpart_rating=ratings.get(job.client_id, 0.0),
        ))
        logger.record_score(score)
        scored.append({
            "id": job.id,
            "title": job.title,
            "category": job.category,
            "skills": job.skills or [],
            "client_id": job.client_id,
            "created_at": job.created_at.isoformat(),
            "relevance_score": round(score, 3),
        })

    result = paginate(_rank(scored), page, limit)
    logger.record_recommendations(len(result["data"]))
    logger.debug(
        "Ranked jobs for freelancer",
        user_id=user_id,
        candidates=len(scored),
        page=page,
    )
    return result


def get_recommended_freelancers(
    session,
    job_id: str,
    page: int = 1,
    limit: int = 10,
    now: Optional[datetime] = None,
) -> Optional[Dict[str, Any]]:
    """
    Freelancers ranked by relevance for a job.

    Each freelancer is scored with their own skills, completed categories
    and average received rating. Returns None when the job does not exist.
    """
    _check_pagination(page, limit)
    logger = get_logger()

    job = session.get(Job, job_id)
    if job is None:
        logger.warning("Candidates requested for unknown job", job_id=job_id)
        return None

    freelancers = (
        session.query(User)
        .filter(User.role == ROLE_FREELANCER, User.id != job.client_id)
        .order_by(User.username)
        .all()
    )

    freelancer_ids = [f.id for f in freelancers]
    ratings = average_ratings(session, freelancer_ids)
    history = completed_categories_by_freelancer(session, freelancer_ids)
    now = now or datetime.now(timezone.utc)

    scored = []
    for freelancer in freelancers:
        score = compute_relevance_score(RelevanceInput(
            candidate_skills=freelancer.skills or [],
            posting_skills=job.skills or [],
            posting_category=job.category,
            completed_categories=history.get(freelancer.id, []),
            posted_at=job.created_at,
            now=now,
            counterpart_rating=ratings.get(freelancer.id, 0.0),
        ))
        logger.record_score(score)
        scored.append({
            "id": freelancer.id,
            "username": freelancer.username,
            "skills": freelancer.skills or [],
            "average_rating": round(ratings.get(freelancer.id, 0.0), 2),
            "relevance_score": round(score, 3),
        })

    result = paginate(_rank(scored), page, limit)
    logger.record_recommendations(len(result["data"]))
    return result
