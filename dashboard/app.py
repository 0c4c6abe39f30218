"""
Streamlit 대시보드 메인
- Overview (게이지 + 주요 리스크 요인), Indicators (지표 카드)
"""
import sys
from pathlib import Path

import streamlit as st

# `streamlit run dashboard/app.py` 실행 시 루트 패키지 import
sys.path.insert(0, str(Path(__file__).parent.parent))

from dashboard.views import indicators_view, overview  # noqa: E402

VIEWS = {
    "Overview": overview.render,
    "Indicators": indicators_view.render,
}

st.set_page_config(
    page_title="US Stock Risk Index",
    page_icon="📈",
    layout="wide",
    initial_sidebar_state="expanded",
)

page = st.sidebar.radio("View", list(VIEWS))
VIEWS[page]()
