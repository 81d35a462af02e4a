"""Runtime settings read from the environment (and a .env file if present)."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from .catalog import MARKETPLACE_QUERY_URL

TRUE_VALUES = {"1", "true", "yes", "on"}


def load_env() -> None:
    """Load .env from the working directory if present. Existing variables win."""
    env_path = Path.cwd() / ".env"
    if env_path.exists():
        load_dotenv(dotenv_path=env_path, override=False)


def _float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


@dataclass(frozen=True)
class Settings:
    job: str = "fetchThemes"
    queue_backend: str = "sql"
    db_path: Path = Path("data/queue.db")
    log_level: str = "INFO"
    log_dir: Path = Path("logs")
    log_to_file: bool = True
    catalog_url: str = MARKETPLACE_QUERY_URL
    catalog_timeout: float = 30.0
    catalog_max_retries: int = 2
    visibility_timeout: float = 300.0
    retry_base_delay: float = 30.0
    retry_max_delay: float = 900.0

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        backend = env.get("CRAWLER_QUEUE_BACKEND", "sql").strip().lower()
        if backend not in ("sql", "memory"):
            raise ValueError(f"CRAWLER_QUEUE_BACKEND must be 'sql' or 'memory', got {backend!r}")
        return cls(
            job=env.get("CRAWLER_JOB", "fetchThemes"),
            queue_backend=backend,
            db_path=Path(env.get("CRAWLER_DB_PATH", "data/queue.db")),
            log_level=env.get("CRAWLER_LOG_LEVEL", "INFO").upper(),
            log_dir=Path(env.get("CRAWLER_LOG_DIR", "logs")),
            log_to_file=env.get("CRAWLER_LOG_TO_FILE", "true").strip().lower() in TRUE_VALUES,
            catalog_url=env.get("CATALOG_URL", MARKETPLACE_QUERY_URL),
            catalog_timeout=_float(env, "CATALOG_TIMEOUT", 30.0),
            catalog_max_retries=_int(env, "CATALOG_MAX_RETRIES", 2),
            visibility_timeout=_float(env, "QUEUE_VISIBILITY_TIMEOUT", 300.0),
            retry_base_delay=_float(env, "QUEUE_RETRY_BASE_DELAY", 30.0),
            retry_max_delay=_float(env, "QUEUE_RETRY_MAX_DELAY", 900.0),
        )
