# Makes the project root importable when Streamlit runs app/ scripts directly.
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import streamlit as st  # noqa: E402
from sqlalchemy.engine import Engine  # noqa: E402

from persistence.engine import configure_logging, get_engine, init_db, ping_db  # noqa: E402

configure_logging()


def require_db() -> Engine:
    """Stops the page with a warning instead of a traceback when the database is unavailable."""
    if not ping_db():
        st.warning("Database not reachable. Fix DATABASE_URL then refresh.")
        st.stop()
    engine = get_engine()
    init_db(engine)
    return engine
