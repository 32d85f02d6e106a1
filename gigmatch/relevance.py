"""
Relevance scoring between a candidate profile and a posting.

Responsibilities:
- Compute four bounded sub-scores: skill overlap, category affinity,
  posting recency and counterpart reputation.
- Combine them with fixed weights into a single score in [0, 1].

Non-Responsibilities:
- No database access.
- No sorting or pagination.
- No validation; odd inputs degrade to the neutral value of their term.

Invariant:
Given identical inputs, this module must always return the same score.
The evaluation instant is always supplied by the caller.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional, Tuple

from .normalize import normalize_category, normalize_tags

# Weights for each component (must sum to 1.0)
WEIGHT_SKILL_OVERLAP = 0.50
WEIGHT_CATEGORY_AFFINITY = 0.25
WEIGHT_RECENCY = 0.15
WEIGHT_REPUTATION = 0.10

# Postings older than this get a recency score of 0
RECENCY_WINDOW_DAYS = 30

MAX_RATING = 5.0

SECONDS_PER_DAY = 60 * 60 * 24


@dataclass(frozen=True)
class RelevanceInput:
    """Everything needed to score one (candidate, posting) pair."""
    candidate_skills: Tuple[str, ...]
    posting_skills: Tuple[str, ...]
    posting_category: str
    completed_categories: Tuple[str, ...]
    posted_at: datetime
    now: datetime
    counterpart_rating: float = 0.0

    def __post_init__(self):
        # Materialize collections so one-shot iterables score the same every call
        for name in ("candidate_skills", "posting_skills", "completed_categories"):
            value = getattr(self, name)
            object.__setattr__(self, name, tuple(value) if value is not None else ())


@dataclass(frozen=True)
class ScoreBreakdown:
    """Raw sub-scores plus the weighted total."""
    skill_overlap: float
    category_affinity: float
    recency: float
    reputation: float

    @property
    def total(self) -> float:
        return (
            WEIGHT_SKILL_OVERLAP * self.skill_overlap
            + WEIGHT_CATEGORY_AFFINITY * self.category_affinity
            + WEIGHT_RECENCY * self.recency
            + WEIGHT_REPUTATION * self.reputation
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": round(self.total, 3),
            "breakdown": {
                "skill_overlap": round(WEIGHT_SKILL_OVERLAP * self.skill_overlap, 3),
                "category_affinity": round(WEIGHT_CATEGORY_AFFINITY * self.category_affinity, 3),
                "recency": round(WEIGHT_RECENCY * self.recency, 3),
                "reputation": round(WEIGHT_REPUTATION * self.reputation, 3),
            },
            "raw_values": {
                "skill_overlap": round(self.skill_overlap, 3),
                "category_affinity": self.category_affinity,
                "recency": round(self.recency, 3),
                "reputation": round(self.reputation, 3),
            },
        }


def jaccard_similarity(a: Optional[Iterable[str]], b: Optional[Iterable[str]]) -> float:
    """
    Jaccard similarity |A ∩ B| / |A ∪ B| of two skill-tag collections.

    Tags are compared case-insensitively and duplicates collapse before
    counting. Two empty collections have similarity 0.
    """
    set_a = normalize_tags(a)
    set_b = normalize_tags(b)

    union = set_a | set_b
    if not union:
        return 0.0
    return len(set_a & set_b) / len(union)


def category_affinity(job_category: str, completed_categories: Optional[Iterable[str]]) -> float:
    """1 if the job category appears in the completed history, else 0."""
    if job_category is None or not completed_categories:
        return 0.0
    wanted = normalize_category(job_category)
    for category in completed_categories:
        if normalize_category(category) == wanted:
            return 1.0
    return 0.0


def _as_utc(value: datetime) -> datetime:
    # Naive datetimes are taken to be UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def recency_score(posted_at: datetime, now: datetime) -> float:
    """
    Linear freshness decay over RECENCY_WINDOW_DAYS.

    Returns 1.0 for a posting created at ``now`` and 0.0 once it is
    RECENCY_WINDOW_DAYS or more old. A posting dated after ``now`` is
    treated as just posted.
    """
    if (posted_at.tzinfo is None) != (now.tzinfo is None):
        posted_at, now = _as_utc(posted_at), _as_utc(now)

    age_days = max(0.0, (now - posted_at).total_seconds() / SECONDS_PER_DAY)
    return min(1.0, max(0.0, 1.0 - age_days / RECENCY_WINDOW_DAYS))


def reputation_score(rating: float) -> float:
    """Clamp a 0-5 rating into range and scale it to [0, 1]. NaN counts as unrated."""
    if math.isnan(rating):
        return 0.0
    return min(max(rating, 0.0), MAX_RATING) / MAX_RATING


def score_breakdown(params: RelevanceInput) -> ScoreBreakdown:
    return ScoreBreakdown(
        skill_overlap=jaccard_similarity(params.candidate_skills, params.posting_skills),
        category_affinity=category_affinity(params.posting_category, params.completed_categories),
        recency=recency_score(params.posted_at, params.now),
        reputation=reputation_score(params.counterpart_rating),
    )


def compute_relevance_score(params: RelevanceInput) -> float:
    """
    Weighted sum of the four sub-scores.

    Each term is bounded by its weight and the weights sum to 1.0, so the
    result always lies in [0, 1].
    """
    return score_breakdown(params).total
