import bootstrap

import pandas as pd
import streamlit as st
import plotly.express as px

from persistence.repositories.result_repo import ResultRepo
from persistence.repositories.run_repo import RunRepo
from persistence.repositories.topsis_read_repo import TopsisReadRepo

st.title("Step 4: Results")

engine = bootstrap.require_db()

# Navigation
nav_left, nav_right = st.columns(2)
with nav_left:
    if st.button("Back: Step 3 (Calculate)"):
        st.switch_page("pages/3_calculate.py")
with nav_right:
    if st.button("Next: Step 5 (History)"):
        st.switch_page("pages/5_history.py")

st.divider()

run_repo = RunRepo(engine)
result_repo = ResultRepo(engine)
topsis_read = TopsisReadRepo(engine)

runs = run_repo.list_runs(limit=50)

if not runs:
    st.warning("No TOPSIS runs yet. Go to Step 3 and run TOPSIS first.")
    st.stop()

default_run = st.session_state.get("last_run_id")
if default_run not in [r["run_id"] for r in runs]:
    default_run = runs[0]["run_id"]

run_id = st.selectbox(
    "Select a TOPSIS run",
    options=[r["run_id"] for r in runs],
    index=[r["run_id"] for r in runs].index(default_run),
    format_func=lambda x: next(
        f"{rr['executed_at']} | {rr.get('executed_by') or '-'} | {rr['run_id'][:8]}…"
        for rr in runs if rr["run_id"] == x
    ),
)

st.session_state["last_run_id"] = run_id
meta = run_repo.get_run(run_id)

st.subheader("Run Summary")
st.write(
    {
        "run_id": meta["run_id"],
        "method": meta["method"],
        "engine_version": meta["engine_version"],
        "executed_at": str(meta["executed_at"]),
        "executed_by": meta.get("executed_by"),
        "weights": meta["weights"],
    }
)

st.divider()

# Ranking table
st.subheader("Ranking")
scores = result_repo.get_scores_with_names(run_id)
scores_df = pd.DataFrame(scores)
st.dataframe(scores_df, use_container_width=True)

st.download_button(
    "Download Ranking CSV",
    data=scores_df.to_csv(index=False).encode("utf-8"),
    file_name=f"ranking_{run_id}.csv",
    mime="text/csv",
)

st.divider()

# TOPSIS details
st.subheader("TOPSIS Details")

dist_df = topsis_read.get_distances(run_id)
ideals_df = topsis_read.get_ideals(run_id)
norm_df = topsis_read.get_matrix(run_id, "normalized")
w_df = topsis_read.get_matrix(run_id, "weighted")

tab1, tab2, tab3, tab4 = st.tabs(["Distances", "Ideals (A+/A-)", "Normalized Matrix", "Weighted Matrix"])

with tab1:
    st.dataframe(dist_df, use_container_width=True)
    st.download_button(
        "Download Distances CSV",
        data=dist_df.to_csv(index=False).encode("utf-8"),
        file_name=f"topsis_distances_{run_id}.csv",
        mime="text/csv",
    )

with tab2:
    st.dataframe(ideals_df, use_container_width=True)
    st.download_button(
        "Download Ideals CSV",
        data=ideals_df.to_csv(index=False).encode("utf-8"),
        file_name=f"topsis_ideals_{run_id}.csv",
        mime="text/csv",
    )

for tab, df, label in ((tab3, norm_df, "normalized"), (tab4, w_df, "weighted")):
    with tab:
        if df.empty:
            st.info(f"No {label} matrix found for this run.")
        else:
            st.dataframe(df, use_container_width=True)
            st.download_button(
                f"Download {label.title()} Matrix CSV",
                data=df.to_csv().encode("utf-8"),
                file_name=f"topsis_{label}_matrix_{run_id}.csv",
                mime="text/csv",
            )

st.subheader("Charts")

if not scores_df.empty:
    fig_scores = px.bar(
        scores_df.sort_values("rank", ascending=True),
        x="alternative_name",
        y="score",
        hover_data=["rank"],
        title="Preference Score by Alternative",
    )
    st.plotly_chart(fig_scores, use_container_width=True)

if not dist_df.empty:
    fig_scatter = px.scatter(
        dist_df,
        x="s_pos",
        y="s_neg",
        text="alternative",
        hover_data=["c_star"],
        title="Distances: D+ vs D-",
    )
    fig_scatter.update_traces(textposition="top center")
    st.plotly_chart(fig_scatter, use_container_width=True)

if not w_df.empty:
    fig_heat = px.imshow(
        w_df.values,
        x=list(w_df.columns),
        y=list(w_df.index),
        aspect="auto",
        title="Weighted Matrix Heatmap",
    )
    st.plotly_chart(fig_heat, use_container_width=True)

if not ideals_df.empty:
    ideals_long = ideals_df.melt(id_vars=["criterion"], value_vars=["pos_ideal", "neg_ideal"],
                                 var_name="ideal_type", value_name="value")
    fig_ideals = px.bar(
        ideals_long,
        x="criterion",
        y="value",
        color="ideal_type",
        barmode="group",
        title="A+ vs A- by Criterion",
    )
    st.plotly_chart(fig_ideals, use_container_width=True)
