# persistence/schema.py
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, MetaData, String, Table, Text

metadata = MetaData()

criteria = Table(
    "criteria",
    metadata,
    Column("criterion_id", String(64), primary_key=True),
    Column("name", String(200), nullable=False, unique=True),
    Column("weight", Float, nullable=False, default=0.0),
    Column("direction", String(16), nullable=False, default="benefit"),
    Column("position", Integer, nullable=False, default=0),
    Column("description", Text),
    Column("created_at", DateTime(timezone=True)),
    Column("updated_at", DateTime(timezone=True)),
)

alternatives = Table(
    "alternatives",
    metadata,
    Column("alternative_id", String(64), primary_key=True),
    Column("name", String(200), nullable=False),
    Column("description", Text),
    Column("attributes_json", Text),
    Column("created_at", DateTime(timezone=True)),
    Column("updated_at", DateTime(timezone=True)),
)

measurements = Table(
    "measurements",
    metadata,
    Column("alternative_id", String(64), ForeignKey("alternatives.alternative_id"), primary_key=True),
    Column("criterion_id", String(64), ForeignKey("criteria.criterion_id"), primary_key=True),
    Column("value_num", Float),
)

runs = Table(
    "runs",
    metadata,
    Column("run_id", String(64), primary_key=True),
    Column("method", String(32), nullable=False),
    Column("engine_version", String(32)),
    Column("executed_by", String(200)),
    Column("weights_json", Text),
    Column("executed_at", DateTime(timezone=True)),
)

# Result tables keep name snapshots, so no foreign keys to alternatives/criteria.
result_scores = Table(
    "result_scores",
    metadata,
    Column("run_id", String(64), ForeignKey("runs.run_id"), primary_key=True),
    Column("alternative_id", String(64), primary_key=True),
    Column("alternative_name", String(200)),
    Column("score", Float),
    Column("rank", Integer),
)

topsis_normalized_values = Table(
    "topsis_normalized_values",
    metadata,
    Column("run_id", String(64), ForeignKey("runs.run_id"), primary_key=True),
    Column("alternative_id", String(64), primary_key=True),
    Column("criterion_id", String(64), primary_key=True),
    Column("alternative_name", String(200)),
    Column("criterion_name", String(200)),
    Column("value", Float),
)

topsis_weighted_values = Table(
    "topsis_weighted_values",
    metadata,
    Column("run_id", String(64), ForeignKey("runs.run_id"), primary_key=True),
    Column("alternative_id", String(64), primary_key=True),
    Column("criterion_id", String(64), primary_key=True),
    Column("alternative_name", String(200)),
    Column("criterion_name", String(200)),
    Column("value", Float),
)

topsis_ideals = Table(
    "topsis_ideals",
    metadata,
    Column("run_id", String(64), ForeignKey("runs.run_id"), primary_key=True),
    Column("criterion_id", String(64), primary_key=True),
    Column("criterion_name", String(200)),
    Column("position", Integer),
    Column("pos_ideal", Float),
    Column("neg_ideal", Float),
)

topsis_distances = Table(
    "topsis_distances",
    metadata,
    Column("run_id", String(64), ForeignKey("runs.run_id"), primary_key=True),
    Column("alternative_id", String(64), primary_key=True),
    Column("alternative_name", String(200)),
    Column("s_pos", Float),
    Column("s_neg", Float),
    Column("c_star", Float),
)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_id() -> str:
    return str(uuid.uuid4())
