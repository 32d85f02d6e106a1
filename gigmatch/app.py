import argparse
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Tuple

from . import __version__
from .database import get_session, init_database
from .env import get_settings, load_env
from .logger import get_logger
from .recommend import get_recommended_freelancers, get_recommended_jobs
from .relevance import RelevanceInput, score_breakdown
from .schema import parse_timestamp, validate_posting, validate_posting_strict, validate_profile


def _load_json(path_str: str) -> Any:
    input_path = Path(path_str)
    if not input_path.exists():
        raise SystemExit(f"Input file not found: {input_path}")
    with input_path.open("r", encoding="utf-8") as f:
        return json.load(f)


def score_postings(
    profile: Dict[str, Any],
    postings: List[Dict[str, Any]],
    now: datetime,
) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
    """
    Score raw posting records against one profile.

    Returns (ranked, skipped): ranked entries carry the posting id, title and
    score breakdown in descending score order; skipped entries carry the
    validation errors of postings that could not be scored.
    """
    logger = get_logger()
    ranked = []
    skipped = []
    for index, posting in enumerate(postings):
        errors = validate_posting(posting)
        if errors:
            # Log but don't crash - skip this posting
            logger.warning("Skipping invalid posting", index=index, errors=errors)
            logger.record_skip("validation_error")
            posting_id = posting.get("id") if isinstance(posting, dict) else None
            skipped.append({"index": index, "id": posting_id, "errors": errors})
            continue

        breakdown = score_breakdown(RelevanceInput(
            candidate_skills=profile.get("skills", []),
            posting_skills=posting["skills"],
            posting_category=posting["category"],
            completed_categories=profile.get("completed_categories", []),
            posted_at=parse_timestamp(posting["created_at"]),
            now=now,
            counterpart_rating=posting.get("rating", 0.0),
        ))
        logger.record_score(breakdown.total)
        ranked.append({
            "id": posting.get("id", f"#{index}"),
            "title": posting.get("title", ""),
            "score": breakdown.total,
            "details": breakdown.to_dict(),
        })

    ranked.sort(key=lambda r: r["score"], reverse=True)
    return ranked, skipped


def cmd_score(args: argparse.Namespace) -> None:
    payload = _load_json(args.input)
    if not isinstance(payload, dict):
        raise SystemExit("Input must be a JSON object with 'profile' and 'postings'")
    profile = payload.get("profile", {})
    postings = payload.get("postings", [])
    if not isinstance(postings, list):
        raise SystemExit("Field 'postings' must be a list")

    errors = validate_profile(profile)
    if errors:
        print("Invalid profile:")
        for e in errors:
            print(f" - {e}")
        raise SystemExit(2)

    try:
        now = parse_timestamp(args.now) if args.now else datetime.now(timezone.utc)
    except ValueError:
        raise SystemExit(f"Invalid --now timestamp: {args.now}")

    ranked, skipped = score_postings(profile, postings, now)

    for position, entry in enumerate(ranked, 1):
        title = f" {entry['title']}" if entry["title"] else ""
        print(f"{position:>3}. {entry['score']:.3f}  {entry['id']}{title}")
        if args.breakdown:
            for name, value in entry["details"]["breakdown"].items():
                print(f"       {name}: {value:.3f}")

    if skipped:
        print(f"Skipped {len(skipped)} invalid posting(s):")
        for s in skipped:
            label = s["id"] or f"#{s['index']}"
            print(f" - {label}: {'; '.join(s['errors'])}")


def cmd_validate(args: argparse.Namespace) -> None:
    posting = _load_json(args.input)
    if args.strict:
        _, errors = validate_posting_strict(posting)
    else:
        errors = validate_posting(posting)
    if errors:
        print("Invalid:")
        for e in errors:
            print(f" - {e}")
        raise SystemExit(2)
    print("Valid")


def cmd_init_db(args: argparse.Namespace) -> None:
    db_path = Path(args.db)
    init_database(db_path)
    print(f"Database ready: {db_path}")


def _print_page(result: Dict[str, Any], label_key: str) -> None:
    if not result["data"]:
        print("No recommendations.")
        return
    offset = (result["page"] - 1) * result["limit"]
    for position, item in enumerate(result["data"], offset + 1):
        print(f"{position:>3}. {item['relevance_score']:.3f}  {item[label_key]}  ({item['id']})")
    print(f"Page {result['page']}/{result['total_pages']} ({result['total']} total)")


def _open_session(db_arg: str):
    db_path = Path(db_arg)
    if not db_path.exists():
        raise SystemExit(f"Database not found: {db_path}. Run 'gigmatch init-db' first.")
    return get_session(db_path)


def cmd_recommend(args: argparse.Namespace) -> None:
    session = _open_session(args.db)
    try:
        result = get_recommended_jobs(session, args.user_id, page=args.page, limit=args.limit)
    except ValueError as e:
        raise SystemExit(str(e))
    finally:
        session.close()

    if result is None:
        raise SystemExit("Recommendations are only available for freelancers.")
    _print_page(result, "title")


def cmd_candidates(args: argparse.Namespace) -> None:
    session = _open_session(args.db)
    try:
        result = get_recommended_freelancers(session, args.job_id, page=args.page, limit=args.limit)
    except ValueError as e:
        raise SystemExit(str(e))
    finally:
        session.close()

    if result is None:
        raise SystemExit(f"Job not found: {args.job_id}")
    _print_page(result, "username")


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(prog="gigmatch", description="Relevance ranking for jobs and freelancers")
    parser.add_argument("--version", action="store_true", help="Show version")

    subparsers = parser.add_subparsers(dest="command")
    scr = subparsers.add_parser("score", help="Rank postings from a JSON file against a profile")
    scr.add_argument("--input", required=True, help="JSON file with 'profile' and 'postings'")
    scr.add_argument("--now", help="Evaluation instant (ISO-8601). Default: current UTC time")
    scr.add_argument("--breakdown", action="store_true", help="Show weighted sub-scores")
    scr.set_defaults(func=cmd_score)

    val = subparsers.add_parser("validate", help="Validate a posting JSON file")
    val.add_argument("--input", required=True, help="Path to posting JSON input")
    val.add_argument("--strict", action="store_true", help="Also require an id, a known status and a 0-5 rating")
    val.set_defaults(func=cmd_validate)

    ini = subparsers.add_parser("init-db", help="Create the SQLite database and tables")
    ini.add_argument("--db", default=str(settings.db_path), help=f"Database path (default: {settings.db_path})")
    ini.set_defaults(func=cmd_init_db)

    rec = subparsers.add_parser("recommend", help="Recommend open jobs for a freelancer")
    rec.add_argument("--user-id", required=True, help="Freelancer user id")
    rec.add_argument("--db", default=str(settings.db_path), help=f"Database path (default: {settings.db_path})")
    rec.add_argument("--page", type=int, default=1, help="Page number (default 1)")
    rec.add_argument("--limit", type=int, default=settings.page_size, help=f"Page size (default {settings.page_size})")
    rec.set_defaults(func=cmd_recommend)

    cand = subparsers.add_parser("candidates", help="Recommend freelancers for a job")
    cand.add_argument("--job-id", required=True, help="Job id")
    cand.add_argument("--db", default=str(settings.db_path), help=f"Database path (default: {settings.db_path})")
    cand.add_argument("--page", type=int, default=1, help="Page number (default 1)")
    cand.add_argument("--limit", type=int, default=settings.page_size, help=f"Page size (default {settings.page_size})")
    cand.set_defaults(func=cmd_candidates)

    return parser


def main(argv=None):
    # Load .env if present (GIGMATCH_DB_PATH, GIGMATCH_LOG_LEVEL, etc.)
    load_env()
    settings = get_settings()
    logger = get_logger(level=settings.log_level, log_dir=settings.log_dir)

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return

    if hasattr(args, "func"):
        args.func(args)
        logger.debug("Command finished", command=args.command)
        logger.log_metrics_summary()
        return

    parser.print_help()


if __name__ == "__main__":
    main()
