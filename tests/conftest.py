"""Pytest configuration and shared fixtures."""

import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from core.topsis import Alternative, Criterion, CriterionType  # noqa: E402
from persistence.engine import init_db  # noqa: E402


@pytest.fixture
def engine(tmp_path):
    """Fresh sqlite database with the full schema."""
    eng = create_engine(f"sqlite:///{tmp_path / 'topsis.db'}", future=True)
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def boarding_criteria():
    """Price and distance are costs; the rest are benefits. Weights in percent."""
    return [
        Criterion("c_price", "Price", 30, CriterionType.COST),
        Criterion("c_distance", "Distance", 20, CriterionType.COST),
        Criterion("c_facilities", "Facilities", 20, CriterionType.BENEFIT),
        Criterion("c_security", "Security", 15, CriterionType.BENEFIT),
        Criterion("c_cleanliness", "Cleanliness", 15, CriterionType.BENEFIT),
    ]


@pytest.fixture
def boarding_houses():
    return [
        Alternative("kos_001", "Sejahtera", (1500000, 0.5, 8, 9, 8), {"address": "Jl. Sudirman 123"}),
        Alternative("kos_002", "Ekonomis", (800000, 2.5, 6, 7, 7), {"address": "Jl. Gatot Subroto 45"}),
        Alternative("kos_003", "Elite", (2500000, 1.0, 10, 10, 10), {"address": "Jl. Thamrin 78"}),
        Alternative("kos_004", "Harmoni", (1200000, 1.5, 7, 8, 8), {"address": "Jl. Diponegoro 22"}),
        Alternative("kos_005", "Simpel", (950000, 3.0, 5, 6, 6), {"address": "Jl. Ahmad Yani 88"}),
    ]
