"""대시보드: 종합 리스크 Overview"""
import streamlit as st
import pandas as pd

from dashboard.views.common import get_report


def render():
    st.title("📈 US Stock Risk Index")
    st.markdown("---")

    report = get_report()
    if not report:
        return

    risk = report["risk"]

    if report.get("all_fallback"):
        st.warning("⚠️ Live market data unavailable. Showing cached baseline metrics.")
    elif report.get("fallback_indicators"):
        st.caption(f"Fallback values used for: {', '.join(report['fallback_indicators'])}")

    # 게이지
    col1, col2, col3 = st.columns(3)
    col1.metric("Risk Score", f"{risk['total_score']}/100")
    col2.markdown(
        f"<h3 style='color:{report['risk_color']}'>{report['risk_level']}</h3>",
        unsafe_allow_html=True,
    )
    col3.metric("Last Updated", risk["last_updated"][:19].replace("T", " "))
    st.progress(risk["total_score"] / 100)

    # 주요 리스크 요인
    driver = report.get("primary_driver")
    if driver:
        st.subheader(f"Primary Risk Driver: {driver['name']}")

    st.subheader("Contributions")
    df = pd.DataFrame(risk["contributions"])
    if not df.empty:
        df["impact"] = df["impact"].round(2)
        st.bar_chart(df.set_index("name")["impact"])
        st.dataframe(df, use_container_width=True)

    if report.get("analysis"):
        st.subheader("AI Analysis")
        st.write(report["analysis"])

    if risk.get("sources"):
        st.subheader("Sources")
        for s in risk["sources"]:
            st.markdown(f"- [{s['title']}]({s['uri']})")
