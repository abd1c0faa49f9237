from typing import List, Optional
from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine

from persistence.engine import begin


class TopsisRepo:
    def __init__(self, engine: Engine):
        self.engine = engine

    def _replace(
        self,
        table: str,
        columns: List[str],
        run_id: str,
        rows: List[dict],
        conn: Optional[Connection] = None,
    ) -> None:
        del_sql = f"DELETE FROM {table} WHERE run_id = :run_id"
        ins_sql = f"""
        INSERT INTO {table} ({', '.join(columns)})
        VALUES ({', '.join(':' + c for c in columns)})
        """
        with begin(self.engine, conn) as c:
            c.execute(text(del_sql), {"run_id": run_id})
            if rows:
                c.execute(text(ins_sql), rows)

    def replace_normalized(self, run_id: str, rows: List[dict], conn: Optional[Connection] = None) -> None:
        self._replace(
            "topsis_normalized_values",
            ["run_id", "alternative_id", "criterion_id", "alternative_name", "criterion_name", "value"],
            run_id,
            rows,
            conn,
        )

    def replace_weighted(self, run_id: str, rows: List[dict], conn: Optional[Connection] = None) -> None:
        self._replace(
            "topsis_weighted_values",
            ["run_id", "alternative_id", "criterion_id", "alternative_name", "criterion_name", "value"],
            run_id,
            rows,
            conn,
        )

    def replace_ideals(self, run_id: str, rows: List[dict], conn: Optional[Connection] = None) -> None:
        self._replace(
            "topsis_ideals",
            ["run_id", "criterion_id", "criterion_name", "position", "pos_ideal", "neg_ideal"],
            run_id,
            rows,
            conn,
        )

    def replace_distances(self, run_id: str, rows: List[dict], conn: Optional[Connection] = None) -> None:
        self._replace(
            "topsis_distances",
            ["run_id", "alternative_id", "alternative_name", "s_pos", "s_neg", "c_star"],
            run_id,
            rows,
            conn,
        )
