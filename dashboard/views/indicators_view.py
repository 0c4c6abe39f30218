"""대시보드: 지표별 카드"""
import streamlit as st
import pandas as pd

from dashboard.views.common import get_report
from risk_engine.indicators import Category


def render():
    st.title("🧭 Indicators")
    st.markdown("---")

    report = get_report()
    if not report:
        return

    categories = ["All"] + [c.value for c in Category]
    active = st.radio("Category", categories, horizontal=True)

    indicators = report["risk"]["indicators"]
    if active != "All":
        indicators = [ind for ind in indicators if ind["category"] == active]

    if not indicators:
        st.info("No indicators available.")
        return

    fallback = set(report.get("fallback_indicators", []))
    cols = st.columns(2)
    for i, ind in enumerate(indicators):
        with cols[i % 2]:
            st.subheader(ind["name"])
            st.caption(f"{ind['category']} · {ind['description']}")

            c1, c2, c3 = st.columns(3)
            c1.metric("Value", f"{ind['value']}{ind['unit']}")
            c2.metric("Sub-score", ind["sub_score"])
            c3.metric("Weight", f"{ind['weight']:.0%}")
            st.progress(ind["sub_score"] / 100)

            if ind["id"] in fallback:
                st.caption("Fallback value (live fetch failed)")

            if ind["history"]:
                df = pd.DataFrame(ind["history"])
                df["date"] = pd.to_datetime(df["date"])
                st.line_chart(df.set_index("date")["value"])

            with st.expander("Why it matters"):
                st.write(ind["explanation"])
