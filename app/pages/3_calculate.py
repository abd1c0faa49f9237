import bootstrap

import streamlit as st

from core.errors import InvalidInputError
from persistence.engine import get_db_config
from services.decision_data_service import DecisionDataService
from services.topsis_service import TopsisService

st.title("Step 3: Calculate")

engine = bootstrap.require_db()
user_name = st.session_state.get("user_name", "")

# Navigation
nav_left, nav_right = st.columns(2)
with nav_left:
    if st.button("Back: Step 2 (Alternatives)"):
        st.switch_page("pages/2_alternatives.py")
with nav_right:
    if st.button("Next: Step 4 (Results)"):
        st.switch_page("pages/4_results.py")

st.divider()

data_service = DecisionDataService(engine)
topsis_service = TopsisService(engine, history_limit=get_db_config().history_limit)

# Load + validate
data = data_service.load()
ok, issues = data_service.validate(data)

st.subheader("Validation")
if ok:
    st.success(f"Ready: {len(data.alternatives)} alternative(s) x {len(data.criteria)} criterion(s).")
else:
    for msg in issues:
        st.error(msg)
    st.stop()

st.divider()

st.subheader("Run")
if st.button("Run and Save", type="primary"):
    try:
        run_id, result = topsis_service.run_and_persist(data, executed_by=user_name)
    except InvalidInputError as e:
        for msg in e.issues:
            st.error(msg)
        st.stop()

    st.session_state["last_run_id"] = run_id
    st.success(f"Run created: {run_id}")
    st.write(f"Best alternative: **{result.best.name}** (preference {result.best.preference:.4f})")

    if result.degenerate_columns:
        names = [result.criteria[j].name for j in result.degenerate_columns]
        st.info(f"Every alternative scores 0 on: {', '.join(names)}. These criteria do not affect the ranking.")
    if result.degenerate_alternatives:
        st.info("Some alternatives are identical on every criterion; their preference is reported as 0.")

    st.subheader("Ranking")
    st.dataframe(result.to_frame(), use_container_width=True, hide_index=True)

st.divider()
st.subheader("Recent Runs")
runs = topsis_service.history()
if runs:
    st.dataframe(
        [{k: r[k] for k in ("executed_at", "executed_by", "method", "run_id")} for r in runs],
        use_container_width=True,
    )
else:
    st.info("No runs yet.")
