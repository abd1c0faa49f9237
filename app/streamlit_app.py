import bootstrap
import streamlit as st

from persistence.engine import ping_db
from persistence.repositories.alternative_repo import AlternativeRepo
from persistence.repositories.criterion_repo import CriterionRepo

st.set_page_config(page_title="TOPSIS Decision Support", layout="wide")

st.title("TOPSIS Decision Support")
st.caption("Workflow: Criteria → Alternatives → Calculate → Results → History")

st.session_state.setdefault("user_name", "")
st.session_state.setdefault("last_run_id", None)

with st.sidebar:
    st.header("Workflow")
    st.session_state["user_name"] = st.text_input("Your name", value=st.session_state["user_name"])

    st.divider()
    ok = ping_db()
    st.write("DB:", "✅" if ok else "❌")
    if not ok:
        st.warning("Database not reachable. Fix DATABASE_URL then refresh.")
        st.stop()

    engine = bootstrap.require_db()
    n_crit = len(CriterionRepo(engine).list_all())
    n_alt = len(AlternativeRepo(engine).list_all())

    st.write("Step 1: Criteria", "✅" if n_crit else "⬜")
    st.write("Step 2: Alternatives", "✅" if n_alt else "⬜")
    st.write("Step 3: Calculate", "✅" if st.session_state.get("last_run_id") else "⬜")

    st.divider()
    st.subheader("Quick jump")
    if st.button("Go to Step 1"):
        st.switch_page("pages/1_criteria.py")

    if st.button("Go to Step 3"):
        st.switch_page("pages/3_calculate.py")

st.write(
    f"{n_crit} criterion(s) and {n_alt} alternative(s) stored. "
    "Use the sidebar steps. The pages will guide you with Next and Back buttons."
)
