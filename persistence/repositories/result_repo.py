from typing import List, Optional
from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine

from persistence.engine import begin


class ResultRepo:
    def __init__(self, engine: Engine):
        self.engine = engine

    def replace_scores(self, run_id: str, rows: List[dict], conn: Optional[Connection] = None) -> None:
        """
        rows: [{alternative_id, alternative_name, score, rank}]
        Ranks are stored as computed; ties were already ordered by the engine.
        """
        del_sql = "DELETE FROM result_scores WHERE run_id = :run_id"
        ins_sql = """
        INSERT INTO result_scores (run_id, alternative_id, alternative_name, score, rank)
        VALUES (:run_id, :alternative_id, :alternative_name, :score, :rank)
        """
        payloads = [
            {
                "run_id": run_id,
                "alternative_id": r["alternative_id"],
                "alternative_name": r["alternative_name"],
                "score": float(r["score"]),
                "rank": int(r["rank"]),
            }
            for r in rows
        ]

        with begin(self.engine, conn) as c:
            c.execute(text(del_sql), {"run_id": run_id})
            if payloads:
                c.execute(text(ins_sql), payloads)

    def get_scores_with_names(self, run_id: str) -> List[dict]:
        sql = """
        SELECT alternative_id, alternative_name, score, rank
        FROM result_scores
        WHERE run_id = :run_id
        ORDER BY rank ASC
        """
        with self.engine.begin() as conn:
            rows = conn.execute(text(sql), {"run_id": run_id}).mappings().all()
        return [dict(r) for r in rows]
