import bootstrap

import pandas as pd
import streamlit as st
from sqlalchemy.exc import IntegrityError

from persistence.repositories.criterion_repo import CriterionRepo

st.title("Step 1: Criteria")

engine = bootstrap.require_db()
crit_repo = CriterionRepo(engine)

# Navigation
nav_left, nav_right = st.columns(2)
with nav_left:
    st.button("Back", disabled=True)
with nav_right:
    if st.button("Next: Step 2 (Alternatives)", type="primary"):
        st.switch_page("pages/2_alternatives.py")

st.caption("Weights can use any scale (percentages, fractions, points). They are normalised to a unit sum when ranking.")
st.divider()

DIRECTION_OPTIONS = ["benefit", "cost"]

existing = crit_repo.list_all()
crit_df = pd.DataFrame({
    "ID": [c["criterion_id"] for c in existing],
    "Criterion Name": [c["name"] for c in existing],
    "Weight": [float(c["weight"]) for c in existing],
    "Direction": [c["direction"] for c in existing],
    "Description": [c["description"] or "" for c in existing],
})

crit_df = st.data_editor(
    crit_df,
    num_rows="dynamic",
    use_container_width=True,
    key="crit_editor",
    disabled=["ID"],
    column_config={
        "ID": st.column_config.TextColumn("ID", width="small"),
        "Weight": st.column_config.NumberColumn("Weight", min_value=0.0, step=1.0),
        "Direction": st.column_config.SelectboxColumn("Direction", options=DIRECTION_OPTIONS),
        "Description": st.column_config.TextColumn("Description"),
    },
)

weights = pd.to_numeric(crit_df["Weight"], errors="coerce").fillna(0.0)
total = float(weights.sum())
if total > 0:
    share = pd.DataFrame({"Criterion": crit_df["Criterion Name"], "Share": weights / total})
    st.write(f"Total weight: {total:g}")
    st.dataframe(share, use_container_width=True, hide_index=True)
else:
    st.warning("Weights sum to 0. At least one criterion needs a positive weight.")

if st.button("Save Criteria", type="primary"):
    rows = []
    for _, r in crit_df.iterrows():
        name = str(r.get("Criterion Name") or "").strip()
        if not name:
            continue
        weight = pd.to_numeric(r.get("Weight"), errors="coerce")
        crit_id = r.get("ID")
        rows.append({
            "criterion_id": crit_id if isinstance(crit_id, str) and crit_id else None,
            "name": name,
            "weight": 0.0 if pd.isna(weight) else float(weight),
            "direction": str(r.get("Direction") or "benefit"),
            "description": str(r.get("Description") or ""),
        })

    try:
        crit_repo.replace_all(rows)
    except IntegrityError:
        st.error("Criterion names must be unique. Nothing was saved.")
    else:
        st.success("Criteria saved.")
        st.rerun()
