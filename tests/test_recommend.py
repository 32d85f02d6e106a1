"""
Tests for database-backed recommendations.
"""

import pytest

from gigmatch.logger import get_logger
from gigmatch.recommend import (
    average_ratings,
    completed_categories,
    completed_categories_by_freelancer,
    get_recommended_freelancers,
    get_recommended_jobs,
    paginate,
)


class TestHelpers:
    """Queries feeding the engine."""

    def test_completed_categories(self, marketplace):
        session = marketplace["session"]
        assert completed_categories(session, "alice") == ["Development"]
        # bob's job is still in progress
        assert completed_categories(session, "bob") == []

    def test_completed_categories_by_freelancer(self, marketplace):
        """One grouped query covers every candidate."""
        session = marketplace["session"]
        history = completed_categories_by_freelancer(session, ["alice", "bob", "carol"])
        assert history == {"alice": ["Development"]}
        assert completed_categories_by_freelancer(session, []) == {}

    def test_average_ratings(self, marketplace):
        ratings = average_ratings(marketplace["session"], ["alice", "carol", "dave"])
        assert ratings == {"alice": 4.0, "carol": 5.0}

    def test_average_ratings_no_users(self, marketplace):
        assert average_ratings(marketplace["session"], []) == {}

    def test_paginate(self):
        items = [{"n": i} for i in range(5)]
        result = paginate(items, page=2, limit=2)
        assert result["data"] == [{"n": 2}, {"n": 3}]
        assert result["total"] == 5
        assert result["total_pages"] == 3

    def test_paginate_empty(self):
        result = paginate([], page=1, limit=10)
        assert result["data"] == []
        assert result["total_pages"] == 0


class TestRecommendedJobs:
    """Jobs for a freelancer."""

    def test_ranking_and_exclusions(self, marketplace):
        """Only open, unflagged, not-yet-applied jobs, best first."""
        result = get_recommended_jobs(marketplace["session"], "alice", now=marketplace["now"])

        ids = [job["id"] for job in result["data"]]
        assert ids == ["react-fresh", "react-old", "python-api"]
        assert result["total"] == 3
        assert result["page"] == 1
        assert result["total_pages"] == 1

    def test_scores(self, marketplace):
        result = get_recommended_jobs(marketplace["session"], "alice", now=marketplace["now"])
        scores = {job["id"]: job["relevance_score"] for job in result["data"]}

        # skills 1, category match, just posted, client rated 5
        assert scores["react-fresh"] == 1.0
        # skills 1/3, no category, 15 days old, client unrated
        assert scores["react-old"] == pytest.approx(0.242)
        # no skills, no category, 1 day old, client unrated
        assert scores["python-api"] == pytest.approx(0.145)

    def test_scores_are_descending(self, marketplace):
        result = get_recommended_jobs(marketplace["session"], "bob", now=marketplace["now"])
        scores = [job["relevance_score"] for job in result["data"]]
        assert scores == sorted(scores, reverse=True)

    def test_pagination(self, marketplace):
        result = get_recommended_jobs(
            marketplace["session"], "alice", page=2, limit=2, now=marketplace["now"]
        )
        assert [job["id"] for job in result["data"]] == ["python-api"]
        assert result["total"] == 3
        assert result["total_pages"] == 2

    def test_page_past_end(self, marketplace):
        result = get_recommended_jobs(
            marketplace["session"], "alice", page=5, limit=2, now=marketplace["now"]
        )
        assert result["data"] == []
        assert result["total"] == 3

    def test_client_gets_none(self, marketplace):
        assert get_recommended_jobs(marketplace["session"], "carol") is None

    def test_unknown_user_gets_none(self, marketplace):
        assert get_recommended_jobs(marketplace["session"], "nobody") is None

    @pytest.mark.parametrize("page, limit", [(0, 10), (1, 0), (1, 101)])
    def test_invalid_pagination(self, marketplace, page, limit):
        with pytest.raises(ValueError):
            get_recommended_jobs(marketplace["session"], "alice", page=page, limit=limit)

    def test_metrics_recorded(self, marketplace):
        get_recommended_jobs(marketplace["session"], "alice", limit=2, now=marketplace["now"])

        metrics = get_logger().get_metrics()
        assert metrics["postings_scored"] == 3
        assert metrics["recommendations_served"] == 2


class TestRecommendedFreelancers:
    """Freelancers for a job."""

    def test_ranking(self, marketplace):
        result = get_recommended_freelancers(
            marketplace["session"], "react-fresh", now=marketplace["now"]
        )

        assert [f["id"] for f in result["data"]] == ["alice", "bob"]
        alice, bob = result["data"]
        # skills 1, completed Development, just posted, own rating 4
        assert alice["relevance_score"] == pytest.approx(0.98)
        assert alice["average_rating"] == 4.0
        # only recency contributes
        assert bob["relevance_score"] == pytest.approx(0.15)
        assert bob["average_rating"] == 0.0

    def test_job_owner_excluded(self, marketplace):
        session = marketplace["session"]
        result = get_recommended_freelancers(session, "react-fresh", now=marketplace["now"])
        assert "carol" not in [f["id"] for f in result["data"]]

    def test_unknown_job(self, marketplace):
        assert get_recommended_freelancers(marketplace["session"], "missing") is None

    def test_pagination(self, marketplace):
        result = get_recommended_freelancers(
            marketplace["session"], "python-api", limit=1, now=marketplace["now"]
        )
        assert [f["id"] for f in result["data"]] == ["bob"]
        assert result["total"] == 2
        assert result["total_pages"] == 2
