from dataclasses import dataclass, field
from enum import Enum
from math import isfinite
from typing import Any, Dict, List, Mapping, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from core.errors import InvalidInputError


class CriterionType(str, Enum):
    BENEFIT = "benefit"
    COST = "cost"

    @classmethod
    def parse(cls, value: Union["CriterionType", str]) -> "CriterionType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidInputError(f"Criterion type must be 'benefit' or 'cost', got {value!r}.") from None


@dataclass(frozen=True)
class Criterion:
    id: str
    name: str
    weight: float
    type: CriterionType = CriterionType.BENEFIT

    def __post_init__(self):
        object.__setattr__(self, "type", CriterionType.parse(self.type))


@dataclass(frozen=True)
class Alternative:
    id: str
    name: str
    values: Tuple[float, ...]                      # one per criterion, criterion order
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "values", tuple(self.values))


@dataclass(frozen=True)
class TopsisArtifacts:
    normalized_matrix: np.ndarray  # r_ij
    weighted_matrix: np.ndarray    # v_ij
    pis: np.ndarray                # A+
    nis: np.ndarray                # A-
    s_pos: np.ndarray              # D+
    s_neg: np.ndarray              # D-
    c_star: np.ndarray             # preference
    zero_columns: np.ndarray       # criteria whose divisor was 0
    coincident_rows: np.ndarray    # alternatives with D+ = D- = 0


@dataclass(frozen=True)
class AlternativeResult:
    alternative: Alternative
    normalized: Tuple[float, ...]
    weighted: Tuple[float, ...]
    distance_positive: float
    distance_negative: float
    preference: float
    rank: int

    @property
    def id(self) -> str:
        return self.alternative.id

    @property
    def name(self) -> str:
        return self.alternative.name

    def to_dict(self) -> Dict[str, Any]:
        alt = self.alternative
        return {
            **dict(alt.metadata),
            "id": alt.id,
            "name": alt.name,
            "values": list(alt.values),
            "normalized": list(self.normalized),
            "weighted": list(self.weighted),
            "distancePositive": self.distance_positive,
            "distanceNegative": self.distance_negative,
            "preference": self.preference,
            "rank": self.rank,
        }


@dataclass(frozen=True)
class CalculationResult:
    results: Tuple[AlternativeResult, ...]         # sorted by rank
    ideal_positive: Tuple[float, ...]
    ideal_negative: Tuple[float, ...]
    criteria: Tuple[Criterion, ...]
    degenerate_columns: Tuple[int, ...] = ()
    degenerate_alternatives: Tuple[str, ...] = ()

    @property
    def best(self) -> AlternativeResult:
        return self.results[0]

    def ranking(self) -> List[Tuple[str, float, int]]:
        return [(r.id, r.preference, r.rank) for r in self.results]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results": [r.to_dict() for r in self.results],
            "idealPositive": list(self.ideal_positive),
            "idealNegative": list(self.ideal_negative),
        }

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [
                {
                    "rank": r.rank,
                    "alternative_id": r.id,
                    "alternative_name": r.name,
                    "distance_positive": r.distance_positive,
                    "distance_negative": r.distance_negative,
                    "preference": r.preference,
                }
                for r in self.results
            ]
        )


def _is_finite_number(value: Any) -> bool:
    try:
        return isfinite(float(value))
    except (TypeError, ValueError):
        return False


def find_input_issues(alternatives: Sequence[Alternative], criteria: Sequence[Criterion]) -> List[str]:
    """Collect every reason the inputs cannot be ranked, in a stable order."""
    issues: List[str] = []
    if not alternatives:
        issues.append("At least one alternative is required.")
    if not criteria:
        issues.append("At least one criterion is required.")

    n = len(criteria)
    if n:
        for alt in alternatives:
            if len(alt.values) != n:
                issues.append(f"Alternative '{alt.name}' has {len(alt.values)} value(s), expected {n}.")
    for alt in alternatives:
        bad = [j for j, v in enumerate(alt.values) if not _is_finite_number(v)]
        if bad:
            issues.append(f"Alternative '{alt.name}' has missing or non-finite value(s) at position(s) {bad}.")

    if criteria:
        weights = [c.weight for c in criteria]
        if not all(_is_finite_number(w) for w in weights):
            issues.append("Weights must be finite numbers.")
        elif any(float(w) < 0 for w in weights):
            issues.append("Weights contain negative values. Only non-negative weights allowed.")
        elif float(sum(float(w) for w in weights)) <= 0:
            issues.append("Weights sum to 0. Provide at least one positive weight.")

    return issues


def _normalize(matrix: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    # scaled columns lie in [-1, 1] before squaring
    scale = np.abs(matrix).max(axis=0)
    zero = scale == 0
    scaled = matrix / np.where(zero, 1.0, scale)
    denom = np.sqrt((scaled ** 2).sum(axis=0))
    # an all-zero column stays all zero
    r = scaled / np.where(zero, 1.0, denom)
    return r, np.flatnonzero(zero)


def _weight(normalized: np.ndarray, weights: np.ndarray) -> np.ndarray:
    scaled = weights / weights.max()
    return normalized * (scaled / scaled.sum())


def _ideal_solutions(weighted: np.ndarray, types: Sequence[CriterionType]) -> Tuple[np.ndarray, np.ndarray]:
    col_max = weighted.max(axis=0)
    col_min = weighted.min(axis=0)
    benefit = np.array([t is CriterionType.BENEFIT for t in types], dtype=bool)
    pis = np.where(benefit, col_max, col_min)
    nis = np.where(benefit, col_min, col_max)
    return pis, nis


def _distances(weighted: np.ndarray, pis: np.ndarray, nis: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    s_pos = np.sqrt(((weighted - pis) ** 2).sum(axis=1))
    s_neg = np.sqrt(((weighted - nis) ** 2).sum(axis=1))
    return s_pos, s_neg


def _closeness(s_pos: np.ndarray, s_neg: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    denom = s_pos + s_neg
    coincident = denom == 0
    c_star = np.where(coincident, 0.0, s_neg / np.where(coincident, 1.0, denom))
    return c_star, np.flatnonzero(coincident)


def compute_topsis(
    matrix: np.ndarray,
    weights: np.ndarray,
    types: Sequence[CriterionType],
) -> TopsisArtifacts:
    """
    matrix: shape (m, n), m alternatives by n criteria
    weights: shape (n,), any non-negative scale; normalised by their sum here
    types: benefit/cost per criterion, length n
    """
    matrix = np.asarray(matrix, dtype=float)
    weights = np.asarray(weights, dtype=float)
    if matrix.ndim != 2:
        raise InvalidInputError("matrix must be 2D")
    m, n = matrix.shape
    if m == 0 or n == 0:
        raise InvalidInputError("matrix must have at least one alternative and one criterion")
    if weights.shape != (n,):
        raise InvalidInputError("weights must have shape (n,)")
    if len(types) != n:
        raise InvalidInputError("types length must match number of criteria")
    if not np.isfinite(matrix).all():
        raise InvalidInputError("matrix contains non-finite values")
    if (weights < 0).any() or not weights.sum() > 0:
        raise InvalidInputError("weights must be non-negative with a positive sum")

    types = [CriterionType.parse(t) for t in types]

    r, zero_columns = _normalize(matrix)
    v = _weight(r, weights)
    pis, nis = _ideal_solutions(v, types)
    s_pos, s_neg = _distances(v, pis, nis)
    c_star, coincident_rows = _closeness(s_pos, s_neg)

    return TopsisArtifacts(
        normalized_matrix=r,
        weighted_matrix=v,
        pis=pis,
        nis=nis,
        s_pos=s_pos,
        s_neg=s_neg,
        c_star=c_star,
        zero_columns=zero_columns,
        coincident_rows=coincident_rows,
    )


def calculate(alternatives: Sequence[Alternative], criteria: Sequence[Criterion]) -> CalculationResult:
    """
    Rank alternatives by closeness to the positive ideal solution.

    Raises InvalidInputError before computing anything if the inputs are empty,
    mismatched or non-finite. Ties keep input order.
    """
    issues = find_input_issues(alternatives, criteria)
    if issues:
        raise InvalidInputError(issues[0], issues)

    matrix = np.array([[float(v) for v in alt.values] for alt in alternatives], dtype=float)
    weights = np.array([float(c.weight) for c in criteria], dtype=float)
    art = compute_topsis(matrix, weights, [c.type for c in criteria])

    order = np.argsort(-art.c_star, kind="stable")
    results = tuple(
        AlternativeResult(
            alternative=alternatives[i],
            normalized=tuple(float(x) for x in art.normalized_matrix[i]),
            weighted=tuple(float(x) for x in art.weighted_matrix[i]),
            distance_positive=float(art.s_pos[i]),
            distance_negative=float(art.s_neg[i]),
            preference=float(art.c_star[i]),
            rank=rank,
        )
        for rank, i in enumerate(order, start=1)
    )

    return CalculationResult(
        results=results,
        ideal_positive=tuple(float(x) for x in art.pis),
        ideal_negative=tuple(float(x) for x in art.nis),
        criteria=tuple(criteria),
        degenerate_columns=tuple(int(j) for j in art.zero_columns),
        degenerate_alternatives=tuple(alternatives[int(i)].id for i in art.coincident_rows),
    )
