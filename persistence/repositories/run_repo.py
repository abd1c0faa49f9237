import json
from typing import Optional, Dict, Any, List
from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine

from persistence.engine import begin
from persistence.schema import new_id, utc_now


class RunRepo:
    def __init__(self, engine: Engine):
        self.engine = engine

    def create_run(
        self,
        method: str,
        weights: Dict[str, float],
        executed_by: str = "",
        engine_version: str = "core=0.2.0",
        conn: Optional[Connection] = None,
    ) -> str:
        """weights: criterion name -> weight as supplied, kept as a snapshot for history"""
        run_id = new_id()
        sql = """
        INSERT INTO runs (run_id, method, engine_version, executed_by, weights_json, executed_at)
        VALUES (:run_id, :method, :engine_version, :executed_by, :weights_json, :executed_at)
        """
        with begin(self.engine, conn) as c:
            c.execute(
                text(sql),
                {
                    "run_id": run_id,
                    "method": method,
                    "engine_version": engine_version,
                    "executed_by": executed_by,
                    "weights_json": json.dumps(weights),
                    "executed_at": utc_now(),
                },
            )
        return run_id

    def list_runs(self, limit: int = 50) -> List[Dict[str, Any]]:
        sql = """
        SELECT run_id, method, engine_version, executed_at, executed_by, weights_json
        FROM runs
        ORDER BY executed_at DESC
        LIMIT :limit
        """
        with self.engine.begin() as conn:
            rows = conn.execute(text(sql), {"limit": limit}).mappings().all()
        return [self._decode(r) for r in rows]

    def get_run(self, run_id: str) -> Optional[Dict[str, Any]]:
        sql = """
        SELECT run_id, method, engine_version, executed_at, executed_by, weights_json
        FROM runs
        WHERE run_id = :run_id
        """
        with self.engine.begin() as conn:
            row = conn.execute(text(sql), {"run_id": run_id}).mappings().first()
        return self._decode(row) if row else None

    def delete_all(self) -> None:
        tables = (
            "topsis_distances",
            "topsis_ideals",
            "topsis_weighted_values",
            "topsis_normalized_values",
            "result_scores",
            "runs",
        )
        with self.engine.begin() as conn:
            for table in tables:
                conn.execute(text(f"DELETE FROM {table}"))

    @staticmethod
    def _decode(row) -> Dict[str, Any]:
        d = dict(row)
        raw = d.pop("weights_json", None)
        d["weights"] = json.loads(raw) if raw else {}
        return d
