import logging
from dataclasses import dataclass
from typing import Dict, List, Tuple

import numpy as np
from sqlalchemy.engine import Engine

from core.topsis import Alternative, Criterion, find_input_issues
from persistence.repositories.alternative_repo import AlternativeRepo
from persistence.repositories.criterion_repo import CriterionRepo
from persistence.repositories.measurement_repo import MeasurementRepo

logger = logging.getLogger(__name__)


def score_columns(criteria: List[dict]) -> Dict[str, str]:
    """
    Editor column label -> criterion_id. Labels carry the criterion position so
    they never clash with each other or with the fixed Name/Description columns.
    """
    return {f"{i + 1}. {c['name']}": c["criterion_id"] for i, c in enumerate(criteria)}


@dataclass(frozen=True)
class DecisionData:
    alternatives: List[Alternative]
    criteria: List[Criterion]            # in position order; alternative values follow it

    @property
    def weight_by_criterion(self) -> Dict[str, float]:
        return {c.name: float(c.weight) for c in self.criteria}


class DecisionDataService:
    def __init__(self, engine: Engine):
        self.engine = engine
        self.alternative_repo = AlternativeRepo(engine)
        self.criterion_repo = CriterionRepo(engine)
        self.measurement_repo = MeasurementRepo(engine)

    def load(self) -> DecisionData:
        """
        Builds the engine inputs from storage. A score that was never entered
        becomes NaN so validation reports it instead of ranking with a guess.
        """
        crit_rows = self.criterion_repo.list_all()
        alt_rows = self.alternative_repo.list_all()
        values = self.measurement_repo.values_by_alternative()

        criteria = [
            Criterion(id=c["criterion_id"], name=c["name"], weight=float(c["weight"]), type=c["direction"])
            for c in crit_rows
        ]

        alternatives: List[Alternative] = []
        for a in alt_rows:
            by_crit = values.get(a["alternative_id"], {})
            vector = []
            for c in criteria:
                v = by_crit.get(c.id)
                vector.append(np.nan if v is None else float(v))
            metadata = dict(a["attributes"])
            if a.get("description"):
                metadata.setdefault("description", a["description"])
            alternatives.append(
                Alternative(id=a["alternative_id"], name=a["name"], values=tuple(vector), metadata=metadata)
            )

        logger.debug("Loaded %d alternative(s) and %d criterion(s)", len(alternatives), len(criteria))
        return DecisionData(alternatives=alternatives, criteria=criteria)

    def validate(self, data: DecisionData) -> Tuple[bool, List[str]]:
        issues = find_input_issues(data.alternatives, data.criteria)
        if issues:
            logger.warning("Decision data is not runnable: %s", "; ".join(issues))
        return (len(issues) == 0), issues

