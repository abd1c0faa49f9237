# persistence/repositories/criterion_repo.py
from typing import Dict, List, Mapping, Optional, Sequence

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine

from persistence.engine import begin
from persistence.schema import new_id, utc_now

_COLUMNS = "criterion_id, name, weight, direction, position, description, created_at, updated_at"


class CriterionRepo:
    def __init__(self, engine: Engine):
        self.engine = engine

    def list_all(self) -> List[dict]:
        sql = f"""
        SELECT {_COLUMNS}
        FROM criteria
        ORDER BY position, name
        """
        with self.engine.begin() as conn:
            rows = conn.execute(text(sql)).mappings().all()
        return [dict(r) for r in rows]

    def get(self, criterion_id: str) -> Optional[dict]:
        sql = f"SELECT {_COLUMNS} FROM criteria WHERE criterion_id = :criterion_id"
        with self.engine.begin() as conn:
            row = conn.execute(text(sql), {"criterion_id": criterion_id}).mappings().first()
        return dict(row) if row else None

    def insert(
        self,
        name: str,
        weight: float,
        direction: str = "benefit",
        position: Optional[int] = None,
        description: Optional[str] = None,
        conn: Optional[Connection] = None,
    ) -> str:
        """
        Adds a criterion at the end of the criterion order unless a position is given.
        Returns the new criterion_id.
        """
        criterion_id = new_id()
        now = utc_now()
        with begin(self.engine, conn) as c:
            if position is None:
                position = c.execute(text("SELECT COALESCE(MAX(position), -1) + 1 FROM criteria")).scalar_one()
            c.execute(
                text("""
                    INSERT INTO criteria (criterion_id, name, weight, direction, position, description, created_at, updated_at)
                    VALUES (:criterion_id, :name, :weight, :direction, :position, :description, :now, :now)
                """),
                {
                    "criterion_id": criterion_id,
                    "name": name.strip(),
                    "weight": float(weight),
                    "direction": str(direction).strip().lower(),
                    "position": int(position),
                    "description": (description or "").strip() or None,
                    "now": now,
                },
            )
        return criterion_id

    def update(self, criterion_id: str, conn: Optional[Connection] = None, **fields) -> bool:
        """
        fields: any of name, weight, direction, position, description
        Returns False when no criterion matched.
        """
        allowed = ("name", "weight", "direction", "position", "description")
        payload: Dict[str, object] = {k: v for k, v in fields.items() if k in allowed and v is not None}
        if "weight" in payload:
            payload["weight"] = float(payload["weight"])
        if "direction" in payload:
            payload["direction"] = str(payload["direction"]).strip().lower()
        if "name" in payload:
            payload["name"] = str(payload["name"]).strip()

        assignments = ", ".join(f"{k} = :{k}" for k in payload)
        sets = f"{assignments}, updated_at = :now" if assignments else "updated_at = :now"
        sql = f"UPDATE criteria SET {sets} WHERE criterion_id = :criterion_id"
        with begin(self.engine, conn) as c:
            res = c.execute(text(sql), {**payload, "now": utc_now(), "criterion_id": criterion_id})
        return res.rowcount > 0

    def delete(self, criterion_id: str, conn: Optional[Connection] = None) -> bool:
        with begin(self.engine, conn) as c:
            c.execute(text("DELETE FROM measurements WHERE criterion_id = :cid"), {"cid": criterion_id})
            res = c.execute(text("DELETE FROM criteria WHERE criterion_id = :cid"), {"cid": criterion_id})
        return res.rowcount > 0

    def replace_all(self, rows: Sequence[Mapping]) -> List[str]:
        """
        Saves the full criterion list in one transaction.

        rows: [{criterion_id?, name, weight, direction?, description?}] in display order.
        Rows with a known criterion_id are updated, the rest inserted, and stored
        criteria missing from rows are deleted first so a removed name can be reused.
        Nothing is written if any row fails. Returns the ids in row order.
        """
        with self.engine.begin() as conn:
            existing = {r[0] for r in conn.execute(text("SELECT criterion_id FROM criteria")).all()}
            kept = {r.get("criterion_id") for r in rows if r.get("criterion_id") in existing}
            for criterion_id in existing - kept:
                self.delete(criterion_id, conn=conn)
            # park kept names on their ids so swapped names don't collide on the unique index
            for criterion_id in kept:
                self.update(criterion_id, conn=conn, name=criterion_id)

            ids: List[str] = []
            for position, r in enumerate(rows):
                fields = {
                    "name": r["name"],
                    "weight": r["weight"],
                    "direction": r.get("direction") or "benefit",
                    "position": position,
                    "description": r.get("description"),
                }
                criterion_id = r.get("criterion_id")
                if criterion_id in kept:
                    self.update(criterion_id, conn=conn, **fields)
                    ids.append(criterion_id)
                else:
                    ids.append(self.insert(conn=conn, **fields))
        return ids
