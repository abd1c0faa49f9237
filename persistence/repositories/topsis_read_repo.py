import pandas as pd
from sqlalchemy import text
from sqlalchemy.engine import Engine

from persistence.repositories.measurement_repo import pivot_by_alternative


class TopsisReadRepo:
    def __init__(self, engine: Engine):
        self.engine = engine

    def get_distances(self, run_id: str) -> pd.DataFrame:
        sql = """
        SELECT d.alternative_name AS alternative, d.s_pos, d.s_neg, d.c_star, rs.rank
        FROM topsis_distances d
        JOIN result_scores rs ON rs.run_id = d.run_id AND rs.alternative_id = d.alternative_id
        WHERE d.run_id = :run_id
        ORDER BY rs.rank ASC
        """
        with self.engine.begin() as conn:
            rows = conn.execute(text(sql), {"run_id": run_id}).mappings().all()
        return pd.DataFrame([dict(r) for r in rows])

    def get_ideals(self, run_id: str) -> pd.DataFrame:
        sql = """
        SELECT criterion_name AS criterion, pos_ideal, neg_ideal
        FROM topsis_ideals
        WHERE run_id = :run_id
        ORDER BY position
        """
        with self.engine.begin() as conn:
            rows = conn.execute(text(sql), {"run_id": run_id}).mappings().all()
        return pd.DataFrame([dict(r) for r in rows])

    def get_matrix(self, run_id: str, which: str) -> pd.DataFrame:
        if which not in ("normalized", "weighted"):
            raise ValueError("which must be 'normalized' or 'weighted'")

        table = "topsis_normalized_values" if which == "normalized" else "topsis_weighted_values"

        sql = f"""
        SELECT v.alternative_id, v.alternative_name, v.criterion_name, v.value
        FROM {table} v
        JOIN result_scores rs ON rs.run_id = v.run_id AND rs.alternative_id = v.alternative_id
        JOIN topsis_ideals i ON i.run_id = v.run_id AND i.criterion_id = v.criterion_id
        WHERE v.run_id = :run_id
        ORDER BY rs.rank, i.position
        """
        with self.engine.begin() as conn:
            rows = conn.execute(text(sql), {"run_id": run_id}).mappings().all()

        if not rows:
            return pd.DataFrame()

        df = pd.DataFrame([dict(r) for r in rows])
        wide = pivot_by_alternative(df, columns="criterion_name", values="value")
        criteria = list(dict.fromkeys(df["criterion_name"]))
        return wide[criteria]
