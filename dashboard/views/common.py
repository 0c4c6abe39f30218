"""대시보드 공용: 리포트 로드 + 리프레시"""
import streamlit as st

from pipeline.orchestrator import RiskPipeline


def get_report():
    """최신 리포트 (사이드바 Refresh 버튼으로 파이프라인 재실행)"""
    # settings.yaml의 report_dir 그대로: 리프레시 결과를 같은 위치에서 읽음
    pipeline = RiskPipeline()
    if st.sidebar.button("Refresh"):
        with st.spinner("Fetching live market data..."):
            pipeline.run(notify=False)

    report = pipeline.load_latest()
    if not report:
        st.info("No report yet. Run the pipeline first: `python -m pipeline.orchestrator`")
    return report
