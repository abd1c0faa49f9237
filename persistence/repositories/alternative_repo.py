# persistence/repositories/alternative_repo.py
import json
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine

from persistence.engine import begin
from persistence.repositories.measurement_repo import MeasurementRepo
from persistence.schema import new_id, utc_now


def _row_to_dict(row) -> dict:
    d = dict(row)
    raw = d.pop("attributes_json", None)
    d["attributes"] = json.loads(raw) if raw else {}
    return d


class AlternativeRepo:
    def __init__(self, engine: Engine):
        self.engine = engine
        self.measurements = MeasurementRepo(engine)

    def list_all(self) -> List[dict]:
        sql = """
        SELECT alternative_id, name, description, attributes_json, created_at, updated_at
        FROM alternatives
        ORDER BY created_at, name
        """
        with self.engine.begin() as conn:
            rows = conn.execute(text(sql)).mappings().all()
        return [_row_to_dict(r) for r in rows]

    def get(self, alternative_id: str) -> Optional[dict]:
        sql = """
        SELECT alternative_id, name, description, attributes_json, created_at, updated_at
        FROM alternatives
        WHERE alternative_id = :alternative_id
        """
        with self.engine.begin() as conn:
            row = conn.execute(text(sql), {"alternative_id": alternative_id}).mappings().first()
        if not row:
            return None
        d = _row_to_dict(row)
        d["values"] = self.measurements.values_for_alternative(alternative_id)
        return d

    def insert(
        self,
        name: str,
        values_by_criterion: Mapping[str, float],
        description: str = "",
        attributes: Optional[Mapping[str, Any]] = None,
        conn: Optional[Connection] = None,
    ) -> str:
        """
        values_by_criterion: criterion_id -> raw score
        Returns the new alternative_id.
        """
        alternative_id = new_id()
        now = utc_now()
        sql = """
        INSERT INTO alternatives (alternative_id, name, description, attributes_json, created_at, updated_at)
        VALUES (:alternative_id, :name, :description, :attributes_json, :now, :now)
        """
        with begin(self.engine, conn) as c:
            c.execute(
                text(sql),
                {
                    "alternative_id": alternative_id,
                    "name": name.strip(),
                    "description": description or "",
                    "attributes_json": json.dumps(dict(attributes or {})),
                    "now": now,
                },
            )
            self.measurements.replace_for_alternative(alternative_id, values_by_criterion, conn=c)
        return alternative_id

    def update(
        self,
        alternative_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        attributes: Optional[Mapping[str, Any]] = None,
        values_by_criterion: Optional[Mapping[str, float]] = None,
        conn: Optional[Connection] = None,
    ) -> bool:
        """
        Only the given fields change. New values replace all stored scores of the alternative.
        Returns False when no alternative matched.
        """
        payload: Dict[str, Any] = {"alternative_id": alternative_id, "now": utc_now()}
        sets = ["updated_at = :now"]
        if name:
            payload["name"] = name.strip()
            sets.append("name = :name")
        if description is not None:
            payload["description"] = description
            sets.append("description = :description")
        if attributes is not None:
            payload["attributes_json"] = json.dumps(dict(attributes))
            sets.append("attributes_json = :attributes_json")

        sql = f"UPDATE alternatives SET {', '.join(sets)} WHERE alternative_id = :alternative_id"
        with begin(self.engine, conn) as c:
            res = c.execute(text(sql), payload)
            if res.rowcount == 0:
                return False
            if values_by_criterion is not None:
                self.measurements.replace_for_alternative(alternative_id, values_by_criterion, conn=c)
        return True

    def delete(self, alternative_id: str, conn: Optional[Connection] = None) -> bool:
        with begin(self.engine, conn) as c:
            c.execute(text("DELETE FROM measurements WHERE alternative_id = :aid"), {"aid": alternative_id})
            res = c.execute(text("DELETE FROM alternatives WHERE alternative_id = :aid"), {"aid": alternative_id})
        return res.rowcount > 0

    def replace_all(self, rows: Sequence[Mapping]) -> List[str]:
        """
        Saves the full alternative table in one transaction.

        rows: [{alternative_id?, name, values, description?, attributes?}]
        where values maps criterion_id -> raw score. Stored alternatives missing
        from rows are deleted. Nothing is written if any row fails.
        Returns the ids in row order.
        """
        with self.engine.begin() as conn:
            existing = {r[0] for r in conn.execute(text("SELECT alternative_id FROM alternatives")).all()}
            kept = {r.get("alternative_id") for r in rows if r.get("alternative_id") in existing}
            for alternative_id in existing - kept:
                self.delete(alternative_id, conn=conn)

            ids: List[str] = []
            for r in rows:
                alternative_id = r.get("alternative_id")
                if alternative_id in kept:
                    self.update(
                        alternative_id,
                        name=r["name"],
                        description=r.get("description") or "",
                        attributes=r.get("attributes") or {},
                        values_by_criterion=r.get("values") or {},
                        conn=conn,
                    )
                    ids.append(alternative_id)
                else:
                    ids.append(self.insert(
                        r["name"],
                        r.get("values") or {},
                        description=r.get("description") or "",
                        attributes=r.get("attributes"),
                        conn=conn,
                    ))
        return ids
