# persistence/engine.py
import logging
import os
from pathlib import Path
from dataclasses import dataclass
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from persistence.schema import metadata

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DEFAULT_HISTORY_LIMIT = 10


# -------------------------
# Load .env automatically
# -------------------------
def load_env():
    root = Path(__file__).resolve().parents[1]  # project root
    env_path = root / ".env"
    if not env_path.exists():
        return
    for line in env_path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        k, v = line.split("=", 1)
        os.environ.setdefault(k.strip(), v.strip())


load_env()


def configure_logging(level: Optional[str] = None) -> None:
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    root.setLevel(level)


@dataclass(frozen=True)
class DBConfig:
    database_url: str
    history_limit: int = DEFAULT_HISTORY_LIMIT


_engine: Optional[Engine] = None


def get_db_config() -> DBConfig:
    url = os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is not set. Put it in .env or export it.")
    raw_limit = os.getenv("HISTORY_LIMIT", str(DEFAULT_HISTORY_LIMIT))
    try:
        limit = int(raw_limit)
    except ValueError:
        raise RuntimeError(f"HISTORY_LIMIT must be an integer, got {raw_limit!r}.") from None
    return DBConfig(database_url=url, history_limit=limit)


def get_engine() -> Engine:
    global _engine
    if _engine is not None:
        return _engine

    cfg = get_db_config()
    _engine = create_engine(cfg.database_url, pool_pre_ping=True, future=True)
    logger.info("Created database engine for %s", _engine.url.render_as_string(hide_password=True))
    return _engine


def init_db(engine: Engine) -> None:
    metadata.create_all(engine)


def ping_db(engine: Optional[Engine] = None) -> bool:
    try:
        eng = engine or get_engine()
        with eng.begin() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except (SQLAlchemyError, RuntimeError):
        logger.warning("Database ping failed", exc_info=True)
        return False


@contextmanager
def begin(engine: Engine, conn: Optional[Connection] = None) -> Iterator[Connection]:
    """Joins the caller's transaction when conn is given, otherwise opens one."""
    if conn is not None:
        yield conn
        return
    with engine.begin() as own:
        yield own
