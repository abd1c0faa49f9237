# persistence/repositories/measurement_repo.py
from typing import Dict, List, Mapping, Optional

import pandas as pd
from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine

from persistence.engine import begin


def pivot_by_alternative(df: pd.DataFrame, columns: str, values: str) -> pd.DataFrame:
    """
    Pivots on alternative_id so same-named alternatives stay separate rows,
    then labels the rows with alternative names. Row order follows df.
    """
    order = list(dict.fromkeys(df["alternative_id"]))
    names = df.drop_duplicates("alternative_id").set_index("alternative_id")["alternative_name"]
    wide = df.pivot(index="alternative_id", columns=columns, values=values).reindex(order)
    wide.index = pd.Index(names.reindex(order).tolist(), name="alternative")
    wide.columns.name = None
    return wide


class MeasurementRepo:
    def __init__(self, engine: Engine):
        self.engine = engine

    def load_matrix_ui(self) -> pd.DataFrame:
        """
        Returns a pivoted dataframe with index=alternative name, columns=criterion name, values=value_num
        """
        sql = """
        SELECT a.alternative_id, a.name AS alternative_name, c.name AS criterion_name, m.value_num
        FROM measurements m
        JOIN alternatives a ON a.alternative_id = m.alternative_id
        JOIN criteria c ON c.criterion_id = m.criterion_id
        ORDER BY a.created_at, a.name, c.position
        """
        with self.engine.begin() as conn:
            rows = conn.execute(text(sql)).mappings().all()

        if not rows:
            return pd.DataFrame()

        df = pd.DataFrame([dict(r) for r in rows])
        return pivot_by_alternative(df, columns="criterion_name", values="value_num")

    def values_for_alternative(self, alternative_id: str) -> Dict[str, float]:
        sql = """
        SELECT criterion_id, value_num
        FROM measurements
        WHERE alternative_id = :alternative_id
        """
        with self.engine.begin() as conn:
            rows = conn.execute(text(sql), {"alternative_id": alternative_id}).mappings().all()
        return {r["criterion_id"]: r["value_num"] for r in rows}

    def values_by_alternative(self) -> Dict[str, Dict[str, float]]:
        """alternative_id -> criterion_id -> value"""
        with self.engine.begin() as conn:
            rows = conn.execute(text("SELECT alternative_id, criterion_id, value_num FROM measurements")).mappings().all()
        out: Dict[str, Dict[str, float]] = {}
        for r in rows:
            out.setdefault(r["alternative_id"], {})[r["criterion_id"]] = r["value_num"]
        return out

    def replace_for_alternative(
        self,
        alternative_id: str,
        values_by_criterion: Mapping[str, float],
        conn: Optional[Connection] = None,
    ) -> None:
        """Pass conn to join a transaction already opened by the caller."""
        del_sql = "DELETE FROM measurements WHERE alternative_id = :alternative_id"
        ins_sql = """
        INSERT INTO measurements (alternative_id, criterion_id, value_num)
        VALUES (:alternative_id, :criterion_id, :value_num)
        """
        payloads: List[dict] = [
            {
                "alternative_id": alternative_id,
                "criterion_id": crit_id,
                "value_num": None if val is None else float(val),
            }
            for crit_id, val in values_by_criterion.items()
        ]

        with begin(self.engine, conn) as c:
            c.execute(text(del_sql), {"alternative_id": alternative_id})
            if payloads:
                c.execute(text(ins_sql), payloads)
