import bootstrap

import pandas as pd
import streamlit as st

from persistence.repositories.alternative_repo import AlternativeRepo
from persistence.repositories.criterion_repo import CriterionRepo
from persistence.repositories.measurement_repo import MeasurementRepo
from services.decision_data_service import score_columns

st.title("Step 2: Alternatives")

engine = bootstrap.require_db()
alt_repo = AlternativeRepo(engine)
crit_repo = CriterionRepo(engine)
meas_repo = MeasurementRepo(engine)

# Navigation
nav_left, nav_right = st.columns(2)
with nav_left:
    if st.button("Back: Step 1 (Criteria)"):
        st.switch_page("pages/1_criteria.py")
with nav_right:
    if st.button("Next: Step 3 (Calculate)", type="primary"):
        st.switch_page("pages/3_calculate.py")

st.divider()

criteria = crit_repo.list_all()
if not criteria:
    st.info("Add criteria in Step 1 first.")
    st.stop()

label_to_id = score_columns(criteria)

alternatives = alt_repo.list_all()
values = meas_repo.values_by_alternative()

rows = []
for a in alternatives:
    row = {
        "ID": a["alternative_id"],
        "Name": a["name"],
        "Description": a["description"] or "",
        "Address": a["attributes"].get("address", ""),
    }
    for label, crit_id in label_to_id.items():
        row[label] = values.get(a["alternative_id"], {}).get(crit_id)
    rows.append(row)

columns = ["ID", "Name", "Description", "Address"] + list(label_to_id)
alt_df = pd.DataFrame(rows, columns=columns)

st.subheader("Performance Matrix")
alt_df = st.data_editor(
    alt_df,
    num_rows="dynamic",
    use_container_width=True,
    key="alt_editor",
    disabled=["ID"],
    column_config={c: st.column_config.NumberColumn(c) for c in label_to_id},
)

if st.button("Save Alternatives", type="primary"):
    rows = []
    for _, r in alt_df.iterrows():
        name = str(r.get("Name") or "").strip()
        if not name:
            continue
        scores = {}
        for label, crit_id in label_to_id.items():
            v = pd.to_numeric(r.get(label), errors="coerce")
            scores[crit_id] = None if pd.isna(v) else float(v)
        alt_id = r.get("ID")
        rows.append({
            "alternative_id": alt_id if isinstance(alt_id, str) and alt_id else None,
            "name": name,
            "values": scores,
            "description": str(r.get("Description") or ""),
            "attributes": {"address": str(r.get("Address") or "")},
        })

    alt_repo.replace_all(rows)
    st.success("Alternatives saved.")
    st.rerun()

st.caption("Empty score cells are allowed while editing, but the calculation refuses to run until every cell is filled.")
