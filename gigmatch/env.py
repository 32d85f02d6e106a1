import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    db_path: Path
    log_level: str
    log_dir: Path
    page_size: int


def load_env() -> None:
    """Load .env from the working directory if present.
    Values already set in the process environment win.
    """
    env_path = Path.cwd() / ".env"
    if not env_path.exists():
        return
    load_dotenv(dotenv_path=env_path)


def get_settings() -> Settings:
    """Read settings from the environment (call load_env() first for .env)."""
    return Settings(
        db_path=Path(os.environ.get("GIGMATCH_DB_PATH", "data/gigmatch.db")),
        log_level=os.environ.get("GIGMATCH_LOG_LEVEL", "INFO"),
        log_dir=Path(os.environ.get("GIGMATCH_LOG_DIR", "logs")),
        page_size=int(os.environ.get("GIGMATCH_PAGE_SIZE", "10")),
    )
