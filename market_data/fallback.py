"""
라이브 데이터 실패 시 대체값
- 지표당 하나, 모두 캘리브레이션 구간 안쪽
"""

FALLBACK_VALUES = {
    "vix": 16.2,
    "yield-curve": 0.2,
    "hy-spread": 3.5,
    "pe-ratio": 20.8,
    "put-call": 0.9,
    "ted-spread": 0.25,
}

FALLBACK_NOTE = "Live market data unavailable. Using cached baseline metrics."


def fallback_reading(indicator_id: str) -> dict:
    """대체값 reading (history/source 없음)"""
    return {
        "value": FALLBACK_VALUES[indicator_id],
        "history": (),
        "sources": (),
        "live": False,
    }
