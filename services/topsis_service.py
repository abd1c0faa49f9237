import logging
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
from sqlalchemy.engine import Engine

from core.errors import InvalidInputError
from core.topsis import CalculationResult, calculate
from persistence.engine import DEFAULT_HISTORY_LIMIT
from persistence.repositories.run_repo import RunRepo
from persistence.repositories.result_repo import ResultRepo
from persistence.repositories.topsis_repo import TopsisRepo
from services.decision_data_service import DecisionData

logger = logging.getLogger(__name__)


class TopsisService:
    def __init__(self, engine: Engine, history_limit: int = DEFAULT_HISTORY_LIMIT):
        self.engine = engine
        self.history_limit = history_limit
        self.run_repo = RunRepo(engine)
        self.result_repo = ResultRepo(engine)
        self.topsis_repo = TopsisRepo(engine)

    def calculate(self, data: DecisionData) -> CalculationResult:
        logger.info(
            "Running TOPSIS on %d alternative(s) x %d criterion(s)",
            len(data.alternatives),
            len(data.criteria),
        )
        try:
            result = calculate(data.alternatives, data.criteria)
        except InvalidInputError as e:
            logger.warning("TOPSIS refused input: %s", "; ".join(e.issues))
            raise

        if result.degenerate_columns:
            names = [result.criteria[j].name for j in result.degenerate_columns]
            logger.info("Criteria with all-zero scores were normalised to 0: %s", ", ".join(names))
        if result.degenerate_alternatives:
            logger.info("%d alternative(s) coincide with both ideals; preference set to 0",
                        len(result.degenerate_alternatives))
        return result

    def run_and_persist(self, data: DecisionData, executed_by: str = "") -> Tuple[str, CalculationResult]:
        # Nothing is written when the input is rejected.
        result = self.calculate(data)

        # One transaction: a run is either stored with all its artifacts or not at all.
        with self.engine.begin() as conn:
            run_id = self.run_repo.create_run(
                method="topsis",
                weights=data.weight_by_criterion,
                executed_by=executed_by,
                conn=conn,
            )

            self.result_repo.replace_scores(
                run_id,
                [
                    {
                        "alternative_id": r.id,
                        "alternative_name": r.name,
                        "score": r.preference,
                        "rank": r.rank,
                    }
                    for r in result.results
                ],
                conn=conn,
            )

            norm_rows, w_rows, ideal_rows, dist_rows = self._artifact_rows(run_id, result)
            self.topsis_repo.replace_normalized(run_id, norm_rows, conn=conn)
            self.topsis_repo.replace_weighted(run_id, w_rows, conn=conn)
            self.topsis_repo.replace_ideals(run_id, ideal_rows, conn=conn)
            self.topsis_repo.replace_distances(run_id, dist_rows, conn=conn)

        logger.info("Saved run %s; top alternative %r (%.4f)", run_id, result.best.name, result.best.preference)
        return run_id, result

    @staticmethod
    def _artifact_rows(run_id: str, result: CalculationResult) -> Tuple[List[dict], List[dict], List[dict], List[dict]]:
        norm_rows: List[dict] = []
        w_rows: List[dict] = []
        ideal_rows: List[dict] = []
        dist_rows: List[dict] = []

        for r in result.results:
            for j, crit in enumerate(result.criteria):
                base = {
                    "run_id": run_id,
                    "alternative_id": r.id,
                    "criterion_id": crit.id,
                    "alternative_name": r.name,
                    "criterion_name": crit.name,
                }
                norm_rows.append({**base, "value": r.normalized[j]})
                w_rows.append({**base, "value": r.weighted[j]})

            dist_rows.append({
                "run_id": run_id,
                "alternative_id": r.id,
                "alternative_name": r.name,
                "s_pos": r.distance_positive,
                "s_neg": r.distance_negative,
                "c_star": r.preference,
            })

        for j, crit in enumerate(result.criteria):
            ideal_rows.append({
                "run_id": run_id,
                "criterion_id": crit.id,
                "criterion_name": crit.name,
                "position": j,
                "pos_ideal": result.ideal_positive[j],
                "neg_ideal": result.ideal_negative[j],
            })

        return norm_rows, w_rows, ideal_rows, dist_rows

    def history(self, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        return self.run_repo.list_runs(limit=limit or self.history_limit)


def compare_rankings(a_scores: List[dict], b_scores: List[dict]) -> pd.DataFrame:
    """
    Joins two stored rankings on alternative_id. Alternatives present in only one
    run get NaN deltas. Rows are ordered by the largest absolute rank change.
    """
    cols = ["alternative_id", "alternative_name", "score", "rank"]
    a = pd.DataFrame(a_scores, columns=cols).rename(columns={"score": "score_a", "rank": "rank_a"})
    b = pd.DataFrame(b_scores, columns=cols).rename(columns={"score": "score_b", "rank": "rank_b"})

    cmp_df = a.merge(b, on="alternative_id", how="outer", suffixes=("", "_b"))
    cmp_df["alternative_name"] = cmp_df["alternative_name"].fillna(cmp_df.pop("alternative_name_b"))
    cmp_df["rank_delta"] = cmp_df["rank_b"] - cmp_df["rank_a"]
    cmp_df["score_delta"] = cmp_df["score_b"] - cmp_df["score_a"]

    cmp_df = cmp_df.sort_values(by="rank_delta", key=lambda s: s.abs(), ascending=False, na_position="last", kind="stable")
    return cmp_df.reset_index(drop=True)
