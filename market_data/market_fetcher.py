"""
시장 지표 수집
- FRED: 장단기 금리차(T10Y2Y), 하이일드 OAS, TED 스프레드
  (fredapi 우선 → 실패 시 fredgraph CSV)
- yfinance: VIX, S&P 500 P/E, 풋콜 비율
- 실패한 지표는 대체값으로 채움 (지표 누락 없음)
"""
import io
import math
import os
from datetime import datetime, timedelta
from typing import Optional

import pandas as pd
import requests
import yfinance as yf
from fredapi import Fred

from market_data.fallback import FALLBACK_VALUES, fallback_reading

FREDGRAPH_CSV_URL = "https://fred.stlouisfed.org/graph/fredgraph.csv"
FRED_SERIES_URL = "https://fred.stlouisfed.org/series/{series_id}"
YAHOO_QUOTE_URL = "https://finance.yahoo.com/quote/{ticker}"

DEFAULT_FRED_SERIES = {
    "yield-curve": "T10Y2Y",
    "hy-spread": "BAMLH0A0HYM2",
    "ted-spread": "TEDRATE",
}


class MarketFetcher:
    """리스크 지표 원시값 수집"""

    def __init__(self, config: dict, api_key: Optional[str] = None):
        self.vix_ticker = config.get("vix_ticker", "^VIX")
        self.pe_ticker = config.get("pe_ticker", "SPY")
        self.put_call_ticker = config.get("put_call_ticker", "SPY")
        self.fred_series = config.get("fred_series", DEFAULT_FRED_SERIES)
        self.history_days = config.get("history_days", 30)
        self.lookback_days = config.get("lookback_days", 120)
        self.timeout = config.get("timeout_sec", 30)

        if api_key is None:
            api_key = os.environ.get("FRED_API_KEY", "")
        if api_key:
            self.fred = Fred(api_key=api_key)
        else:
            self.fred = None
            print("[WARN] FRED_API_KEY not set. FRED series will use the public CSV endpoint.")

    # -------------------------------------------------------
    # FRED
    # -------------------------------------------------------

    def fetch_fred_series(self, series_id: str) -> Optional[pd.Series]:
        """FRED 시리즈 (API → CSV 순서로 시도)"""
        end = datetime.now()
        start = end - timedelta(days=self.lookback_days)

        if self.fred:
            try:
                data = self.fred.get_series(series_id, start, end)
                data = data.dropna()
                if not data.empty:
                    return data
                print(f"[FRED WARN] {series_id}: API returned no observations")
            except Exception as e:
                print(f"[FRED ERROR] {series_id}: {e}")

        try:
            return self._fetch_fredgraph_csv(series_id, start)
        except Exception as e:
            print(f"[FRED CSV ERROR] {series_id}: {e}")
            return None

    def _fetch_fredgraph_csv(self, series_id: str, start: datetime) -> Optional[pd.Series]:
        """API 키 없이 fredgraph.csv에서 가져오기"""
        resp = requests.get(
            FREDGRAPH_CSV_URL,
            params={"id": series_id, "cosd": start.strftime("%Y-%m-%d")},
            timeout=self.timeout,
        )
        resp.raise_for_status()

        text = resp.text
        if not text or text.lstrip().lower().startswith(("<!doctype html", "<html")):
            raise RuntimeError("fredgraph returned HTML instead of CSV")

        df = pd.read_csv(io.StringIO(text))
        if len(df.columns) < 2:
            raise RuntimeError(f"unexpected CSV columns: {list(df.columns)}")

        # 첫 컬럼은 날짜 (DATE 또는 observation_date)
        date_col = df.columns[0]
        value_col = series_id if series_id in df.columns else df.columns[1]
        series = pd.Series(
            pd.to_numeric(df[value_col], errors="coerce").values,
            index=pd.to_datetime(df[date_col], errors="coerce"),
        )
        series = series[series.index.notna()].dropna()
        series = series[series.index >= pd.Timestamp(start.date())]
        return series if not series.empty else None

    def fetch_fred_indicator(self, indicator_id: str) -> Optional[dict]:
        series_id = self.fred_series.get(indicator_id)
        if not series_id:
            return None

        series = self.fetch_fred_series(series_id)
        if series is None or series.empty:
            return None

        return self._series_reading(
            series,
            title=f"FRED: {series_id}",
            uri=FRED_SERIES_URL.format(series_id=series_id),
        )

    # -------------------------------------------------------
    # yfinance
    # -------------------------------------------------------

    def fetch_vix(self) -> Optional[dict]:
        """VIX 최근 종가 + 추이"""
        try:
            df = yf.download(self.vix_ticker, period="3mo", progress=False)
            if isinstance(df.columns, pd.MultiIndex):
                df.columns = df.columns.get_level_values(0)
            if df.empty:
                return None

            return self._series_reading(
                df["Close"].dropna(),
                title=f"Yahoo Finance: {self.vix_ticker}",
                uri=YAHOO_QUOTE_URL.format(ticker=self.vix_ticker),
            )
        except Exception as e:
            print(f"[VIX ERROR] {e}")
            return None

    def fetch_pe_ratio(self) -> Optional[dict]:
        """S&P 500 trailing P/E (SPY 기준)"""
        try:
            info = yf.Ticker(self.pe_ticker).info or {}
            pe = info.get("trailingPE")
            if pe is None:
                return None

            return self._point_reading(
                float(pe),
                title=f"Yahoo Finance: {self.pe_ticker} trailing P/E",
                uri=YAHOO_QUOTE_URL.format(ticker=self.pe_ticker),
            )
        except Exception as e:
            print(f"[P/E ERROR] {e}")
            return None

    def fetch_put_call(self) -> Optional[dict]:
        """최근 만기 옵션체인 거래량 기준 풋콜 비율"""
        try:
            ticker = yf.Ticker(self.put_call_ticker)
            expiries = ticker.options
            if not expiries:
                return None

            chain = ticker.option_chain(expiries[0])
            put_volume = float(chain.puts["volume"].fillna(0).sum())
            call_volume = float(chain.calls["volume"].fillna(0).sum())
            if call_volume <= 0:
                return None

            return self._point_reading(
                round(put_volume / call_volume, 3),
                title=f"Yahoo Finance: {self.put_call_ticker} options {expiries[0]}",
                uri=YAHOO_QUOTE_URL.format(ticker=self.put_call_ticker) + "/options",
            )
        except Exception as e:
            print(f"[PUT/CALL ERROR] {e}")
            return None

    # -------------------------------------------------------
    # 전체 수집
    # -------------------------------------------------------

    def fetch_indicator(self, indicator_id: str) -> Optional[dict]:
        """단일 지표 라이브 수집 (실패 시 None)"""
        if indicator_id == "vix":
            return self.fetch_vix()
        if indicator_id == "pe-ratio":
            return self.fetch_pe_ratio()
        if indicator_id == "put-call":
            return self.fetch_put_call()
        if indicator_id in self.fred_series:
            return self.fetch_fred_indicator(indicator_id)

        print(f"[WARN] No live source configured for {indicator_id}")
        return None

    def fetch_all(self, indicator_ids=None) -> dict:
        """
        전체 지표 수집: 모든 id에 대해 reading 반환
        {"vix": {"value": 18.4, "history": (...), "sources": (...), "live": True}, ...}
        """
        if indicator_ids is None:
            indicator_ids = list(FALLBACK_VALUES)

        readings = {}
        for indicator_id in indicator_ids:
            reading = self.fetch_indicator(indicator_id)
            if reading is None or not _is_finite(reading.get("value")):
                print(f"[FALLBACK] {indicator_id}: using {FALLBACK_VALUES[indicator_id]}")
                reading = fallback_reading(indicator_id)
            readings[indicator_id] = reading

        live = [k for k, v in readings.items() if v["live"]]
        print(f"[Market] {len(live)}/{len(readings)} indicators live")
        return readings

    # -------------------------------------------------------
    # 내부 메서드
    # -------------------------------------------------------

    def _series_reading(self, series: pd.Series, title: str, uri: str) -> dict:
        tail = series.tail(self.history_days)
        history = tuple(
            (pd.Timestamp(idx).strftime("%Y-%m-%d"), round(float(val), 4))
            for idx, val in tail.items()
        )
        return {
            "value": round(float(series.iloc[-1]), 4),
            "history": history,
            "sources": ({"title": title, "uri": uri},),
            "live": True,
        }

    def _point_reading(self, value: float, title: str, uri: str) -> dict:
        return {
            "value": value,
            "history": (),
            "sources": ({"title": title, "uri": uri},),
            "live": True,
        }


def _is_finite(value) -> bool:
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


if __name__ == "__main__":
    from dotenv import load_dotenv
    load_dotenv()

    fetcher = MarketFetcher({"history_days": 10})
    data = fetcher.fetch_all()

    import json
    print(json.dumps(data, indent=2, default=str))
