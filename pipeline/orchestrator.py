"""
리스크 파이프라인: 1회 리프레시
- 지표 수집 → 서브 점수 → 가중 합산 → 리포트 JSON
- (옵션) LLM 요약 + 알림 발송
"""
import json
from datetime import datetime
from pathlib import Path
from typing import Optional

import yaml

from alerts.notifier import Notifier
from insights.risk_analyst import RiskAnalyst
from market_data.fallback import FALLBACK_NOTE
from market_data.market_fetcher import MarketFetcher
from risk_engine.aggregator import RiskAggregator, RiskData
from risk_engine.indicators import build_catalog
from risk_engine.risk_levels import risk_band

DEFAULT_REPORT_DIR = "data/reports"
LATEST_REPORT_NAME = "latest.json"
FALLBACK_SOURCE_URI = "https://fred.stlouisfed.org/docs/api/api_key.html"


class RiskPipeline:
    """수집 → 점수 → 리포트 통합 실행"""

    def __init__(self, config_path: str = "config/settings.yaml", config: Optional[dict] = None):
        if config is None:
            with open(config_path, "r", encoding="utf-8") as f:
                config = yaml.safe_load(f) or {}
        self.config = config

        # 설정 오류는 여기서 ConfigurationFault로 실패
        catalog = build_catalog(self.config.get("indicators"))
        self.aggregator = RiskAggregator(catalog)

        self.fetcher = MarketFetcher(self.config.get("market_data", {}))
        self.analyst = RiskAnalyst(self.config.get("insights", {}))
        self.notifier = Notifier(self.config.get("alerts", {}))

        pipeline_cfg = self.config.get("pipeline", {})
        self.report_dir = Path(pipeline_cfg.get("report_dir", DEFAULT_REPORT_DIR))
        self.alert_threshold = pipeline_cfg.get("alert_threshold", 60)

    def score(self, readings: dict) -> RiskData:
        """수집 결과 → RiskData (I/O 없음)"""
        observed = []
        sources = []
        for indicator_id in self.aggregator.indicator_ids:
            reading = readings[indicator_id]
            observed.append(self.aggregator.observe(
                indicator_id, reading["value"], reading.get("history", ()),
            ))
            sources.extend(reading.get("sources", ()))

        if not any(r.get("live") for r in readings.values()):
            sources.append({"title": FALLBACK_NOTE, "uri": FALLBACK_SOURCE_URI})

        return self.aggregator.aggregate(observed, sources)

    def run(self, analyze: bool = False, notify: bool = True) -> dict:
        """전체 파이프라인 실행"""
        print(f"\n{'='*60}")
        print("  Market Risk Index")
        print(f"  {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        print(f"{'='*60}\n")

        print("[Phase 1] 지표 수집...")
        print("-" * 40)
        readings = self.fetcher.fetch_all(self.aggregator.indicator_ids)

        print("\n[Phase 2] 리스크 점수 산출...")
        print("-" * 40)
        risk_data = self.score(readings)
        report = self.build_report(risk_data, readings)

        for ind in risk_data.indicators:
            tag = "LIVE" if readings[ind.id].get("live") else "FALLBACK"
            print(f"  {ind.name:22s} {ind.value:>8}{ind.unit:1s} → {ind.sub_score:3d} ({tag})")
        print(f"  Total Score: {risk_data.total_score} ({report['risk_level']})")
        if report["all_fallback"]:
            print("  [WARN] No live indicators, report is built entirely from fallback values")

        if analyze:
            print("\n[Phase 3] LLM 요약...")
            print("-" * 40)
            report["analysis"] = self.analyst.summarize(risk_data, report["risk_level"])
            print(f"  {report['analysis'] or 'LLM unavailable'}")

        self._save_report(report)

        if notify:
            self.notifier.send(self.notifier.format_report(report))
            if risk_data.total_score >= self.alert_threshold:
                self.notifier.send(self.notifier.format_level_alert(report, self.alert_threshold))

        return report

    def build_report(self, risk_data: RiskData, readings: dict) -> dict:
        band = risk_band(risk_data.total_score)
        live = [k for k in self.aggregator.indicator_ids if readings[k].get("live")]
        fallback = [k for k in self.aggregator.indicator_ids if not readings[k].get("live")]
        driver = risk_data.primary_driver

        return {
            "timestamp": datetime.now().isoformat(),
            "risk": risk_data.to_dict(),
            "risk_level": band.level.value,
            "risk_color": band.color,
            "primary_driver": driver.to_dict() if driver else None,
            "live_indicators": live,
            "fallback_indicators": fallback,
            "all_fallback": not live,
            "analysis": None,
        }

    def load_latest(self) -> Optional[dict]:
        """설정된 report_dir의 최신 리포트"""
        return load_latest_report(str(self.report_dir))

    def _save_report(self, report: dict):
        """리포트 JSON 저장 (타임스탬프 파일 + latest.json)"""
        self.report_dir.mkdir(parents=True, exist_ok=True)

        date_str = datetime.now().strftime("%Y%m%d_%H%M%S")
        filepath = self.report_dir / f"report_{date_str}.json"
        payload = json.dumps(report, indent=2, ensure_ascii=False, default=str)

        filepath.write_text(payload, encoding="utf-8")
        (self.report_dir / LATEST_REPORT_NAME).write_text(payload, encoding="utf-8")

        print(f"\nReport saved: {filepath}")


def load_latest_report(report_dir: str = DEFAULT_REPORT_DIR) -> Optional[dict]:
    """대시보드용 최신 리포트 (없으면 None)"""
    path = Path(report_dir) / LATEST_REPORT_NAME
    if not path.exists():
        return None
    return json.loads(path.read_text(encoding="utf-8"))


if __name__ == "__main__":
    import argparse
    from dotenv import load_dotenv

    load_dotenv()

    parser = argparse.ArgumentParser(description="Market Risk Index")
    parser.add_argument("--config", default="config/settings.yaml")
    parser.add_argument("--analyze", action="store_true", help="LLM summary via Ollama")
    parser.add_argument("--no-notify", action="store_true")
    args = parser.parse_args()

    pipeline = RiskPipeline(args.config)
    pipeline.run(analyze=args.analyze, notify=not args.no_notify)
