import math
from datetime import datetime
from typing import Any, Dict, List, Tuple

JOB_STATUSES = {"OPEN", "IN_PROGRESS", "COMPLETED", "CANCELLED"}

REQUIRED_POSTING_FIELDS = ["category", "skills", "created_at"]
OPTIONAL_STR_FIELDS = ["id", "title"]


def _is_non_empty_str(v: Any) -> bool:
    return isinstance(v, str) and v.strip() != ""


def _is_str_list(v: Any) -> bool:
    return isinstance(v, list) and all(isinstance(item, str) for item in v)


def _is_number(v: Any) -> bool:
    # bool is an int subclass but never a rating; json.load accepts NaN and Infinity
    return isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, accepting a trailing 'Z' for UTC."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def _valid_timestamp(v: Any) -> bool:
    if not isinstance(v, str):
        return False
    try:
        parse_timestamp(v)
        return True
    except ValueError:
        return False


def validate_profile(data: Dict[str, Any]) -> List[str]:
    """
    Returns a list of validation error messages for a candidate profile.
    Empty list means valid.
    """
    if not isinstance(data, dict):
        return ["Profile must be a JSON object"]

    errors: List[str] = []

    if "skills" not in data:
        errors.append("Missing required field: skills")
    elif not _is_str_list(data["skills"]):
        errors.append("Field 'skills' must be a list of strings")

    if "completed_categories" in data and not _is_str_list(data["completed_categories"]):
        errors.append("Field 'completed_categories' must be a list of strings if provided")

    return errors


def validate_posting(data: Dict[str, Any]) -> List[str]:
    """
    Returns a list of validation error messages. Empty list means valid.
    Minimal, dependency-free checks; the scoring engine itself never validates.
    """
    if not isinstance(data, dict):
        return ["Posting must be a JSON object"]

    errors: List[str] = []

    for f in REQUIRED_POSTING_FIELDS:
        if f not in data:
            errors.append(f"Missing required field: {f}")

    if "category" in data and not _is_non_empty_str(data["category"]):
        errors.append("Field 'category' must be a non-empty string")

    if "skills" in data and not _is_str_list(data["skills"]):
        errors.append("Field 'skills' must be a list of strings")

    if "created_at" in data and not _valid_timestamp(data["created_at"]):
        errors.append("Field 'created_at' must be an ISO-8601 timestamp")

    for f in OPTIONAL_STR_FIELDS:
        if f in data and not isinstance(data[f], str):
            errors.append(f"Field '{f}' must be a string if provided")

    if "rating" in data and not _is_number(data["rating"]):
        errors.append("Field 'rating' must be a finite number if provided")

    return errors


def validate_posting_strict(data: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """
    Stricter validation for postings coming from untrusted files.

    On top of validate_posting: an id is required, status must be a known
    job status and the owner's rating must lie within 0-5.
    """
    errors = validate_posting(data)
    if not isinstance(data, dict):
        return (False, errors)

    if not _is_non_empty_str(data.get("id")):
        errors.append("Field 'id' is required in strict mode")

    if "status" in data and data["status"] not in JOB_STATUSES:
        errors.append(f"Field 'status' must be one of {sorted(JOB_STATUSES)}")

    rating = data.get("rating")
    if _is_number(rating) and not 0 <= rating <= 5:
        errors.append("Field 'rating' must be between 0 and 5 in strict mode")

    return (not errors, errors)
