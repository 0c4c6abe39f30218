"""시장 지표 수집 (대체값 정책 포함) 테스트"""
import math
from datetime import datetime, timedelta
from types import SimpleNamespace

import pandas as pd

from market_data import market_fetcher
from market_data.fallback import FALLBACK_VALUES, fallback_reading
from market_data.market_fetcher import MarketFetcher
from risk_engine.indicators import INDICATOR_CATALOG


# -------------------------------------------------------
# 테스트용 가짜 응답
# -------------------------------------------------------

class FakeResponse:
    def __init__(self, text, status_code=200):
        self.text = text
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise RuntimeError(f"HTTP {self.status_code}")


def make_fredgraph_csv(series_id, values, date_header="observation_date"):
    """최근 날짜 기준 fredgraph.csv 텍스트"""
    today = datetime.now().date()
    rows = [f"{date_header},{series_id}"]
    for i, v in enumerate(values):
        day = today - timedelta(days=len(values) - i)
        rows.append(f"{day.isoformat()},{v}")
    return "\n".join(rows) + "\n"


def live_reading(value):
    return {"value": value, "history": (), "sources": ({"title": "t", "uri": "u"},), "live": True}


# -------------------------------------------------------
# 대체값 테이블
# -------------------------------------------------------

class TestFallbackTable:
    def test_every_indicator_has_fallback(self):
        assert set(FALLBACK_VALUES) == {spec.id for spec in INDICATOR_CATALOG}

    def test_fallback_inside_calibration_range(self):
        for spec in INDICATOR_CATALOG:
            lo, hi = sorted((spec.calibration_min, spec.calibration_max))
            assert lo <= FALLBACK_VALUES[spec.id] <= hi

    def test_fallback_reading(self):
        reading = fallback_reading("vix")
        assert reading["value"] == 16.2
        assert reading["live"] is False
        assert reading["history"] == ()


# -------------------------------------------------------
# fetch_all: 대체값 치환
# -------------------------------------------------------

class TestFetchAll:
    def setup_method(self):
        self.fetcher = MarketFetcher({}, api_key="")

    def test_all_sources_down(self, monkeypatch):
        """전부 실패 → 모든 지표 대체값, 누락 없음"""
        monkeypatch.setattr(self.fetcher, "fetch_indicator", lambda indicator_id: None)
        readings = self.fetcher.fetch_all()

        assert list(readings) == list(FALLBACK_VALUES)
        for indicator_id, reading in readings.items():
            assert reading["value"] == FALLBACK_VALUES[indicator_id]
            assert reading["live"] is False

    def test_partial_failure(self, monkeypatch):
        """실패한 지표만 대체값"""
        live = {"vix": live_reading(24.0), "hy-spread": live_reading(float("nan"))}
        monkeypatch.setattr(self.fetcher, "fetch_indicator", lambda i: live.get(i))
        readings = self.fetcher.fetch_all()

        assert readings["vix"]["value"] == 24.0
        assert readings["vix"]["live"] is True
        # NaN은 라이브 실패로 취급
        assert readings["hy-spread"]["value"] == FALLBACK_VALUES["hy-spread"]
        assert readings["hy-spread"]["live"] is False
        assert readings["ted-spread"]["live"] is False

    def test_requested_ids_only(self, monkeypatch):
        monkeypatch.setattr(self.fetcher, "fetch_indicator", lambda i: None)
        readings = self.fetcher.fetch_all(["vix", "pe-ratio"])
        assert list(readings) == ["vix", "pe-ratio"]

    def test_dispatch(self, monkeypatch):
        calls = []
        monkeypatch.setattr(self.fetcher, "fetch_vix", lambda: calls.append("vix"))
        monkeypatch.setattr(self.fetcher, "fetch_pe_ratio", lambda: calls.append("pe"))
        monkeypatch.setattr(self.fetcher, "fetch_put_call", lambda: calls.append("pc"))
        monkeypatch.setattr(self.fetcher, "fetch_fred_indicator", lambda i: calls.append(i))

        for indicator_id in FALLBACK_VALUES:
            self.fetcher.fetch_indicator(indicator_id)
        assert calls == ["vix", "yield-curve", "hy-spread", "pe", "pc", "ted-spread"]


# -------------------------------------------------------
# FRED
# -------------------------------------------------------

class TestFred:
    def test_csv_secondary_source(self, monkeypatch):
        """API 키 없음 → fredgraph CSV"""
        csv_text = make_fredgraph_csv("T10Y2Y", ["0.10", ".", "0.05", "-0.15"])

        def fake_get(url, params=None, timeout=None):
            assert params["id"] == "T10Y2Y"
            return FakeResponse(csv_text)

        monkeypatch.setattr(market_fetcher.requests, "get", fake_get)
        fetcher = MarketFetcher({"history_days": 2}, api_key="")
        reading = fetcher.fetch_fred_indicator("yield-curve")

        assert reading["value"] == -0.15
        assert reading["live"] is True
        assert [v for _, v in reading["history"]] == [0.05, -0.15]
        assert reading["sources"][0]["title"] == "FRED: T10Y2Y"
        assert reading["sources"][0]["uri"].endswith("/series/T10Y2Y")

    def test_csv_legacy_date_header(self, monkeypatch):
        csv_text = make_fredgraph_csv("BAMLH0A0HYM2", ["3.1", "3.3"], date_header="DATE")
        monkeypatch.setattr(market_fetcher.requests, "get", lambda *a, **k: FakeResponse(csv_text))
        fetcher = MarketFetcher({}, api_key="")
        assert fetcher.fetch_fred_indicator("hy-spread")["value"] == 3.3

    def test_csv_html_page_is_failure(self, monkeypatch):
        monkeypatch.setattr(market_fetcher.requests, "get",
                            lambda *a, **k: FakeResponse("<!DOCTYPE html><html></html>"))
        fetcher = MarketFetcher({}, api_key="")
        assert fetcher.fetch_fred_series("T10Y2Y") is None
        assert fetcher.fetch_fred_indicator("yield-curve") is None

    def test_discontinued_series_is_failure(self, monkeypatch):
        """조회 구간에 관측값 없음 (예: TEDRATE 중단) → None"""
        old = "observation_date,TEDRATE\n2022-01-21,0.09\n"
        monkeypatch.setattr(market_fetcher.requests, "get", lambda *a, **k: FakeResponse(old))
        fetcher = MarketFetcher({}, api_key="")
        assert fetcher.fetch_fred_indicator("ted-spread") is None

    def test_api_primary_source(self, monkeypatch):
        """fredapi 성공 시 CSV 호출 안 함"""
        def fail_get(*args, **kwargs):
            raise AssertionError("CSV endpoint should not be called")

        monkeypatch.setattr(market_fetcher.requests, "get", fail_get)
        fetcher = MarketFetcher({}, api_key="")
        series = pd.Series([3.4, float("nan"), 3.6],
                           index=pd.date_range(end=datetime.now(), periods=3, freq="D"))
        fetcher.fred = SimpleNamespace(get_series=lambda series_id, start, end: series)

        reading = fetcher.fetch_fred_indicator("hy-spread")
        assert reading["value"] == 3.6
        assert len(reading["history"]) == 2

    def test_api_error_falls_back_to_csv(self, monkeypatch):
        def broken(series_id, start, end):
            raise ValueError("Bad Request. The value for variable api_key is not registered.")

        csv_text = make_fredgraph_csv("T10Y2Y", ["0.4"])
        monkeypatch.setattr(market_fetcher.requests, "get", lambda *a, **k: FakeResponse(csv_text))
        fetcher = MarketFetcher({}, api_key="")
        fetcher.fred = SimpleNamespace(get_series=broken)

        assert fetcher.fetch_fred_indicator("yield-curve")["value"] == 0.4

    def test_unconfigured_series(self):
        fetcher = MarketFetcher({"fred_series": {}}, api_key="")
        assert fetcher.fetch_fred_indicator("yield-curve") is None

    def test_api_key_from_environment(self, monkeypatch):
        monkeypatch.delenv("FRED_API_KEY", raising=False)
        assert MarketFetcher({}).fred is None


# -------------------------------------------------------
# yfinance
# -------------------------------------------------------

class FakeTicker:
    def __init__(self, symbol, info=None, options=(), chain=None):
        self.symbol = symbol
        self.info = info or {}
        self.options = options
        self._chain = chain

    def option_chain(self, expiry):
        return self._chain


class TestYahoo:
    def setup_method(self):
        self.fetcher = MarketFetcher({"history_days": 5}, api_key="")

    def test_vix(self, monkeypatch):
        closes = [15.0, 16.5, 17.2, 18.0, 19.1, 18.42]
        df = pd.DataFrame({"Close": closes},
                          index=pd.date_range(end=datetime.now(), periods=len(closes), freq="B"))
        monkeypatch.setattr(market_fetcher.yf, "download", lambda *a, **k: df)

        reading = self.fetcher.fetch_vix()
        assert reading["value"] == 18.42
        assert len(reading["history"]) == 5
        assert reading["sources"][0]["title"] == "Yahoo Finance: ^VIX"

    def test_vix_multiindex_columns(self, monkeypatch):
        index = pd.date_range(end=datetime.now(), periods=3, freq="B")
        df = pd.DataFrame([[20.0], [21.0], [22.0]], index=index,
                          columns=pd.MultiIndex.from_tuples([("Close", "^VIX")]))
        monkeypatch.setattr(market_fetcher.yf, "download", lambda *a, **k: df)
        assert self.fetcher.fetch_vix()["value"] == 22.0

    def test_vix_empty(self, monkeypatch):
        monkeypatch.setattr(market_fetcher.yf, "download", lambda *a, **k: pd.DataFrame())
        assert self.fetcher.fetch_vix() is None

    def test_vix_error(self, monkeypatch):
        def boom(*args, **kwargs):
            raise ConnectionError("offline")

        monkeypatch.setattr(market_fetcher.yf, "download", boom)
        assert self.fetcher.fetch_vix() is None

    def test_pe_ratio(self, monkeypatch):
        monkeypatch.setattr(market_fetcher.yf, "Ticker",
                            lambda s: FakeTicker(s, info={"trailingPE": 24.1}))
        reading = self.fetcher.fetch_pe_ratio()
        assert reading["value"] == 24.1
        assert reading["history"] == ()

    def test_pe_ratio_missing(self, monkeypatch):
        monkeypatch.setattr(market_fetcher.yf, "Ticker", lambda s: FakeTicker(s, info={}))
        assert self.fetcher.fetch_pe_ratio() is None

    def test_put_call(self, monkeypatch):
        chain = SimpleNamespace(
            puts=pd.DataFrame({"volume": [100, None, 50]}),
            calls=pd.DataFrame({"volume": [120, 80]}),
        )
        monkeypatch.setattr(market_fetcher.yf, "Ticker",
                            lambda s: FakeTicker(s, options=("2026-10-23",), chain=chain))

        reading = self.fetcher.fetch_put_call()
        assert math.isclose(reading["value"], 0.75)
        assert "2026-10-23" in reading["sources"][0]["title"]

    def test_put_call_no_call_volume(self, monkeypatch):
        chain = SimpleNamespace(
            puts=pd.DataFrame({"volume": [10]}),
            calls=pd.DataFrame({"volume": [None]}),
        )
        monkeypatch.setattr(market_fetcher.yf, "Ticker",
                            lambda s: FakeTicker(s, options=("2026-10-23",), chain=chain))
        assert self.fetcher.fetch_put_call() is None

    def test_put_call_no_expiries(self, monkeypatch):
        monkeypatch.setattr(market_fetcher.yf, "Ticker", lambda s: FakeTicker(s))
        assert self.fetcher.fetch_put_call() is None
