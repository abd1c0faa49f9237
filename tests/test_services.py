"""Repository and service tests against a temporary sqlite database."""

import math

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from core.errors import InvalidInputError
from core.topsis import CriterionType
import persistence.engine
from persistence.engine import get_db_config, ping_db
from persistence.repositories.alternative_repo import AlternativeRepo
from persistence.repositories.criterion_repo import CriterionRepo
from persistence.repositories.measurement_repo import MeasurementRepo
from persistence.repositories.result_repo import ResultRepo
from persistence.repositories.topsis_read_repo import TopsisReadRepo
from services.decision_data_service import DecisionDataService, score_columns
from services.topsis_service import TopsisService, compare_rankings


def _count(engine, table):
    with engine.begin() as conn:
        return conn.execute(text(f"SELECT COUNT(*) FROM {table}")).scalar_one()


@pytest.fixture
def seeded(engine):
    """Three alternatives scored on a cost and a benefit criterion."""
    crit_repo = CriterionRepo(engine)
    alt_repo = AlternativeRepo(engine)

    price = crit_repo.insert("Price", 60, "cost")
    rooms = crit_repo.insert("Rooms", 40, "benefit")

    alt_ids = {
        "A1": alt_repo.insert("A1", {price: 100, rooms: 2}, attributes={"address": "North"}),
        "A2": alt_repo.insert("A2", {price: 200, rooms: 5}, description="Spacious"),
        "A3": alt_repo.insert("A3", {price: 150, rooms: 3}),
    }
    return {"price": price, "rooms": rooms, "alts": alt_ids}


class TestConfig:

    def test_missing_database_url(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        with pytest.raises(RuntimeError, match="DATABASE_URL"):
            get_db_config()

    def test_history_limit_from_env(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite://")
        monkeypatch.setenv("HISTORY_LIMIT", "3")
        assert get_db_config().history_limit == 3

        monkeypatch.setenv("HISTORY_LIMIT", "many")
        with pytest.raises(RuntimeError, match="HISTORY_LIMIT"):
            get_db_config()

    def test_ping(self, engine):
        assert ping_db(engine) is True

    def test_ping_without_database_url(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.setattr(persistence.engine, "_engine", None)
        assert ping_db() is False


class TestCriterionRepo:

    def test_insert_appends_in_position_order(self, engine):
        repo = CriterionRepo(engine)
        repo.insert("Zeta", 1)
        repo.insert("Alpha", 2, "Cost")
        rows = repo.list_all()
        assert [r["name"] for r in rows] == ["Zeta", "Alpha"]
        assert [r["position"] for r in rows] == [0, 1]
        assert rows[1]["direction"] == "cost"

    def test_update_and_delete(self, engine):
        repo = CriterionRepo(engine)
        cid = repo.insert("Price", 10, "cost")
        assert repo.update(cid, weight=25, direction="benefit") is True
        row = repo.get(cid)
        assert row["weight"] == 25.0
        assert row["direction"] == "benefit"

        assert repo.update("missing", weight=1) is False
        assert repo.delete(cid) is True
        assert repo.get(cid) is None
        assert repo.delete(cid) is False

    def test_replace_all_reuses_removed_name(self, engine):
        repo = CriterionRepo(engine)
        price = repo.insert("Price", 10, "cost")
        rooms = repo.insert("Rooms", 5)

        ids = repo.replace_all([
            {"criterion_id": rooms, "name": "Rooms", "weight": 7},
            {"name": "Price", "weight": 20, "direction": "cost"},
        ])
        rows = repo.list_all()
        assert [r["name"] for r in rows] == ["Rooms", "Price"]
        assert [r["position"] for r in rows] == [0, 1]
        assert ids[0] == rooms
        assert ids[1] != price
        assert repo.get(price) is None
        assert rows[0]["weight"] == 7.0

    def test_replace_all_swaps_names(self, engine):
        repo = CriterionRepo(engine)
        a = repo.insert("A", 1)
        b = repo.insert("B", 2)
        repo.replace_all([
            {"criterion_id": a, "name": "B", "weight": 1},
            {"criterion_id": b, "name": "A", "weight": 2},
        ])
        assert repo.get(a)["name"] == "B"
        assert repo.get(b)["name"] == "A"

    def test_failed_replace_all_changes_nothing(self, engine):
        repo = CriterionRepo(engine)
        price = repo.insert("Price", 10, "cost")
        repo.insert("Rooms", 5)
        before = repo.list_all()

        with pytest.raises(IntegrityError):
            repo.replace_all([
                {"criterion_id": price, "name": "Price", "weight": 99},
                {"name": "Area", "weight": 1},
                {"name": "Area", "weight": 2},
            ])
        assert repo.list_all() == before


class TestAlternativeRepo:

    def test_get_includes_values_and_attributes(self, engine, seeded):
        repo = AlternativeRepo(engine)
        alt = repo.get(seeded["alts"]["A1"])
        assert alt["attributes"] == {"address": "North"}
        assert alt["values"] == {seeded["price"]: 100.0, seeded["rooms"]: 2.0}

    def test_update_replaces_values(self, engine, seeded):
        repo = AlternativeRepo(engine)
        aid = seeded["alts"]["A3"]
        assert repo.update(aid, name="A3b", values_by_criterion={seeded["price"]: 90, seeded["rooms"]: 4})
        alt = repo.get(aid)
        assert alt["name"] == "A3b"
        assert alt["values"][seeded["price"]] == 90.0

        assert repo.update("missing", name="x") is False

    def test_delete_removes_measurements(self, engine, seeded):
        repo = AlternativeRepo(engine)
        aid = seeded["alts"]["A2"]
        assert repo.delete(aid) is True
        assert repo.get(aid) is None
        assert aid not in MeasurementRepo(engine).values_by_alternative()

    def test_deleting_criterion_removes_its_measurements(self, engine, seeded):
        CriterionRepo(engine).delete(seeded["rooms"])
        values = MeasurementRepo(engine).values_by_alternative()
        assert all(seeded["rooms"] not in v for v in values.values())

    def test_matrix_ui(self, engine, seeded):
        df = MeasurementRepo(engine).load_matrix_ui()
        assert df.loc["A2", "Rooms"] == 5.0
        assert set(df.columns) == {"Price", "Rooms"}

    def test_matrix_ui_keeps_same_named_alternatives(self, engine, seeded):
        AlternativeRepo(engine).insert("A1", {seeded["price"]: 300, seeded["rooms"]: 1})
        df = MeasurementRepo(engine).load_matrix_ui()
        assert df.shape == (4, 2)
        assert sorted(df.loc["A1", "Price"].tolist()) == [100.0, 300.0]

    def test_replace_all(self, engine, seeded):
        repo = AlternativeRepo(engine)
        a1, a2 = seeded["alts"]["A1"], seeded["alts"]["A2"]
        ids = repo.replace_all([
            {"alternative_id": a1, "name": "A1", "values": {seeded["price"]: 110, seeded["rooms"]: 2}},
            {"alternative_id": a2, "name": "A2", "values": {seeded["price"]: 200, seeded["rooms"]: 5},
             "description": "Spacious"},
            {"name": "A5", "values": {seeded["price"]: 80, seeded["rooms"]: 1}},
        ])
        assert ids[:2] == [a1, a2]
        assert repo.get(seeded["alts"]["A3"]) is None
        assert repo.get(a1)["values"][seeded["price"]] == 110.0
        assert repo.get(ids[2])["name"] == "A5"
        assert _count(engine, "alternatives") == 3

    def test_failed_replace_all_changes_nothing(self, engine, seeded):
        repo = AlternativeRepo(engine)
        before = repo.list_all()
        before_values = MeasurementRepo(engine).values_by_alternative()

        with pytest.raises(AttributeError):
            repo.replace_all([
                {"name": "A9", "values": {seeded["price"]: 1, seeded["rooms"]: 1}},
                {"name": None, "values": {}},
            ])
        assert repo.list_all() == before
        assert MeasurementRepo(engine).values_by_alternative() == before_values


class TestDecisionDataService:

    def test_load_builds_vectors_in_criterion_order(self, engine, seeded):
        data = DecisionDataService(engine).load()
        assert [c.name for c in data.criteria] == ["Price", "Rooms"]
        assert data.criteria[0].type is CriterionType.COST
        by_name = {a.name: a for a in data.alternatives}
        assert by_name["A2"].values == (200.0, 5.0)
        assert by_name["A1"].metadata["address"] == "North"
        assert by_name["A2"].metadata["description"] == "Spacious"
        assert data.weight_by_criterion == {"Price": 60.0, "Rooms": 40.0}

    def test_missing_score_is_reported(self, engine, seeded):
        AlternativeRepo(engine).insert("A4", {seeded["price"]: 120})
        service = DecisionDataService(engine)
        data = service.load()

        a4 = next(a for a in data.alternatives if a.name == "A4")
        assert math.isnan(a4.values[1])

        ok, issues = service.validate(data)
        assert ok is False
        assert any("A4" in msg for msg in issues)

    def test_empty_database_is_not_runnable(self, engine):
        service = DecisionDataService(engine)
        ok, issues = service.validate(service.load())
        assert ok is False
        assert len(issues) == 2

    def test_score_columns_do_not_clash_with_fixed_columns(self, engine):
        repo = CriterionRepo(engine)
        name_id = repo.insert("Name", 1)
        desc_id = repo.insert("Description", 1)

        labels = score_columns(repo.list_all())
        assert list(labels.values()) == [name_id, desc_id]
        assert not set(labels) & {"ID", "Name", "Description", "Address"}


class TestTopsisService:

    def test_run_and_persist_stores_ranking_and_artifacts(self, engine, seeded):
        data = DecisionDataService(engine).load()
        service = TopsisService(engine)
        run_id, result = service.run_and_persist(data, executed_by="tester")

        scores = ResultRepo(engine).get_scores_with_names(run_id)
        assert [s["alternative_id"] for s in scores] == [r.id for r in result.results]
        assert [s["rank"] for s in scores] == [1, 2, 3]
        assert scores[0]["score"] == pytest.approx(result.best.preference)

        read = TopsisReadRepo(engine)
        assert list(read.get_ideals(run_id)["criterion"]) == ["Price", "Rooms"]
        assert read.get_ideals(run_id)["pos_ideal"].tolist() == pytest.approx(list(result.ideal_positive))
        assert list(read.get_distances(run_id)["rank"]) == [1, 2, 3]
        assert read.get_matrix(run_id, "weighted").shape == (3, 2)
        assert read.get_matrix(run_id, "normalized").loc["A2", "Rooms"] == pytest.approx(
            5 / math.sqrt(2 ** 2 + 5 ** 2 + 3 ** 2)
        )

        run = service.run_repo.get_run(run_id)
        assert run["executed_by"] == "tester"
        assert run["weights"] == {"Price": 60.0, "Rooms": 40.0}

    def test_results_survive_alternative_deletion(self, engine, seeded):
        service = TopsisService(engine)
        run_id, _ = service.run_and_persist(DecisionDataService(engine).load())
        AlternativeRepo(engine).delete(seeded["alts"]["A1"])

        names = {s["alternative_name"] for s in ResultRepo(engine).get_scores_with_names(run_id)}
        assert names == {"A1", "A2", "A3"}

    def test_invalid_input_writes_nothing(self, engine, seeded):
        AlternativeRepo(engine).insert("A4", {seeded["price"]: 120})
        service = TopsisService(engine)
        with pytest.raises(InvalidInputError):
            service.run_and_persist(DecisionDataService(engine).load())
        assert _count(engine, "runs") == 0
        assert _count(engine, "result_scores") == 0

    def test_failed_save_rolls_back_whole_run(self, engine, seeded, monkeypatch):
        service = TopsisService(engine)

        def fail(*args, **kwargs):
            raise SQLAlchemyError("disk full")

        monkeypatch.setattr(service.topsis_repo, "replace_distances", fail)
        with pytest.raises(SQLAlchemyError):
            service.run_and_persist(DecisionDataService(engine).load())

        for table in ("runs", "result_scores", "topsis_normalized_values",
                      "topsis_weighted_values", "topsis_ideals", "topsis_distances"):
            assert _count(engine, table) == 0
        assert service.history() == []

    def test_stored_matrices_keep_same_named_alternatives(self, engine, seeded):
        AlternativeRepo(engine).insert("A1", {seeded["price"]: 300, seeded["rooms"]: 1})
        run_id, result = TopsisService(engine).run_and_persist(DecisionDataService(engine).load())

        read = TopsisReadRepo(engine)
        for which in ("normalized", "weighted"):
            df = read.get_matrix(run_id, which)
            assert df.shape == (4, 2)
            assert list(df.index) == [r.name for r in result.results]
        assert len(read.get_distances(run_id)) == 4

    def test_history_newest_first_and_limited(self, engine, seeded):
        service = TopsisService(engine, history_limit=2)
        data = DecisionDataService(engine).load()
        run_ids = [service.run_and_persist(data)[0] for _ in range(3)]

        history = service.history()
        assert [r["run_id"] for r in history] == [run_ids[2], run_ids[1]]
        assert len(service.history(limit=10)) == 3

        service.run_repo.delete_all()
        assert service.history() == []
        assert _count(engine, "topsis_distances") == 0


class TestCompareRankings:

    def test_rank_changes_sorted_by_magnitude(self):
        a = [
            {"alternative_id": "x", "alternative_name": "X", "score": 0.9, "rank": 1},
            {"alternative_id": "y", "alternative_name": "Y", "score": 0.5, "rank": 2},
            {"alternative_id": "z", "alternative_name": "Z", "score": 0.1, "rank": 3},
        ]
        b = [
            {"alternative_id": "z", "alternative_name": "Z", "score": 0.8, "rank": 1},
            {"alternative_id": "y", "alternative_name": "Y", "score": 0.6, "rank": 2},
            {"alternative_id": "w", "alternative_name": "W", "score": 0.2, "rank": 3},
        ]
        df = compare_rankings(a, b)

        assert df.loc[0, "alternative_id"] == "z"
        assert df.loc[0, "rank_delta"] == -2
        y = df[df["alternative_id"] == "y"].iloc[0]
        assert y["rank_delta"] == 0
        assert y["score_delta"] == pytest.approx(0.1)
        w = df[df["alternative_id"] == "w"].iloc[0]
        assert w["alternative_name"] == "W"
        assert math.isnan(w["rank_delta"])
