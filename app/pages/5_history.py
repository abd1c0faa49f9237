import bootstrap

import pandas as pd
import streamlit as st

from persistence.engine import get_db_config
from persistence.repositories.result_repo import ResultRepo
from services.topsis_service import TopsisService, compare_rankings

st.title("Step 5: History and Compare")

engine = bootstrap.require_db()
result_repo = ResultRepo(engine)
topsis_service = TopsisService(engine, history_limit=get_db_config().history_limit)

# Navigation
nav_left, nav_right = st.columns(2)
with nav_left:
    if st.button("Back: Step 4 (Results)"):
        st.switch_page("pages/4_results.py")
with nav_right:
    st.button("Next", disabled=True)

st.divider()


def run_label(r: dict) -> str:
    by = (r.get("executed_by") or "").strip()
    by_part = f" by {by}" if by else ""
    return f"{r['executed_at']} | {r['method'].upper()}{by_part} | {r['run_id'][:8]}…"


# ----------------------------
# Section 1: Recent runs
# ----------------------------
st.subheader("Recent Runs")

runs = topsis_service.history()
if not runs:
    st.info("No runs yet. Go to Step 3 to run TOPSIS.")
    st.stop()

runs_df = pd.DataFrame(runs)
runs_df["weights"] = runs_df["weights"].map(lambda w: ", ".join(f"{k}={v:g}" for k, v in w.items()))
history_cols = ["executed_at", "method", "weights", "executed_by", "run_id"]
st.dataframe(runs_df[history_cols], use_container_width=True)

st.download_button(
    "Download Run History CSV",
    data=runs_df[history_cols].to_csv(index=False).encode("utf-8"),
    file_name="run_history.csv",
    mime="text/csv",
)

st.divider()

# ----------------------------
# Section 2: Compare two runs
# ----------------------------
st.subheader("Compare Two Runs")

if len(runs) < 2:
    st.info("Need at least 2 runs to compare. Create another run in Step 3.")
    st.stop()

labels = [run_label(r) for r in runs]
label_to_run_id = dict(zip(labels, [r["run_id"] for r in runs]))

col1, col2 = st.columns(2)
with col1:
    run_a_label = st.selectbox("Run A", options=labels, index=0)
with col2:
    run_b_label = st.selectbox("Run B", options=labels, index=1)

a_scores = result_repo.get_scores_with_names(label_to_run_id[run_a_label])
b_scores = result_repo.get_scores_with_names(label_to_run_id[run_b_label])

if not a_scores or not b_scores:
    st.error("One of the selected runs has no results saved.")
    st.stop()

cmp_df = compare_rankings(a_scores, b_scores)
st.dataframe(cmp_df, use_container_width=True)

st.download_button(
    "Download Run Comparison CSV",
    data=cmp_df.to_csv(index=False).encode("utf-8"),
    file_name="run_comparison.csv",
    mime="text/csv",
)

st.caption("rank_delta > 0 means the alternative ranked worse in Run B. rank_delta < 0 means it improved in Run B.")
