"""
알림 시스템: Slack / Telegram 발송
- 리스크 리포트 요약, 고위험 경고, 대체값 사용 경고
- 채널 미설정 시 콘솔 출력
"""
import os
from datetime import datetime

import requests

TOP_CONTRIBUTORS = 3
TELEGRAM_API_URL = "https://api.telegram.org/bot{token}/sendMessage"
# Telegram sendMessage 본문 최대 길이
TELEGRAM_MAX_CHARS = 4096


class Notifier:
    """리스크 리포트 알림 (Slack webhook / Telegram bot / 콘솔)"""

    def __init__(self, config: dict):
        slack_cfg = config.get("slack", {})
        telegram_cfg = config.get("telegram", {})

        # 비밀값은 .env 우선, 없으면 settings.yaml
        self.slack_enabled = slack_cfg.get("enabled", False)
        self.slack_webhook = os.environ.get("SLACK_WEBHOOK_URL", slack_cfg.get("webhook_url", ""))

        self.telegram_enabled = telegram_cfg.get("enabled", False)
        self.telegram_token = os.environ.get("TELEGRAM_BOT_TOKEN", telegram_cfg.get("bot_token", ""))
        self.telegram_chat_id = os.environ.get("TELEGRAM_CHAT_ID", telegram_cfg.get("chat_id", ""))

        self.timeout = config.get("timeout_sec", 10)

    # -------------------------------------------------------
    # 메시지 포맷
    # -------------------------------------------------------

    def format_report(self, report: dict) -> str:
        """리포트를 알림 메시지로 포맷"""
        risk = report.get("risk")
        if not risk:
            return "No risk data."

        lines = [
            "*US Stock Risk Index*",
            f"_{datetime.now().strftime('%Y-%m-%d %H:%M')}_",
            "",
            f"Risk Score: *{risk['total_score']}/100* ({report.get('risk_level', 'N/A')})",
            "",
        ]

        contributions = risk.get("contributions", [])[:TOP_CONTRIBUTORS]
        if contributions:
            lines.append("*Top Contributors:*")
            for c in contributions:
                lines.append(f"  - {c['name']}: {c['impact']:.1f} pts")
            lines.append("")

        if report.get("all_fallback"):
            lines.append("⚠️ *All indicators are fallback values* (live data unavailable)")
        elif report.get("fallback_indicators"):
            lines.append(f"Fallback used: {', '.join(report['fallback_indicators'])}")

        if report.get("analysis"):
            lines.append("")
            lines.append(report["analysis"])

        return "\n".join(lines).rstrip()

    def format_level_alert(self, report: dict, threshold: int) -> str:
        """임계값 이상 고위험 경고"""
        risk = report.get("risk") or {}
        score = risk.get("total_score")
        if score is None or score < threshold:
            return ""

        lines = [
            "🚨 *Market Risk Alert*",
            f"Risk Score {score} >= {threshold} ({report.get('risk_level', 'N/A')})",
        ]
        driver = report.get("primary_driver")
        if driver:
            lines.append(f"Primary driver: {driver['name']} ({driver['impact']:.1f} pts)")

        for ind in risk.get("indicators", []):
            if ind["sub_score"] >= threshold:
                lines.append(f"  {ind['name']}: {ind['value']}{ind['unit']} (sub-score {ind['sub_score']})")

        return "\n".join(lines)

    # -------------------------------------------------------
    # 발송
    # -------------------------------------------------------

    def send(self, message: str) -> list:
        """활성화된 채널로 발송, 성공한 채널 이름 목록 반환"""
        if not message:
            return []

        delivered = []
        if self.slack_enabled and self._send_slack(message):
            delivered.append("slack")
        if self.telegram_enabled and self._send_telegram(message):
            delivered.append("telegram")

        if not self.slack_enabled and not self.telegram_enabled:
            print("\n[ALERT]")
            print(message)
            delivered.append("console")
        return delivered

    def _send_slack(self, message: str) -> bool:
        if not self.slack_webhook:
            print("[WARN] Slack webhook URL not configured")
            return False
        return self._post("SLACK", self.slack_webhook, {"text": message})

    def _send_telegram(self, message: str) -> bool:
        if not self.telegram_token or not self.telegram_chat_id:
            print("[WARN] Telegram bot token/chat_id not configured")
            return False

        if len(message) > TELEGRAM_MAX_CHARS:
            message = message[:TELEGRAM_MAX_CHARS - 3] + "..."
        payload = {
            "chat_id": self.telegram_chat_id,
            "text": message,
            "parse_mode": "Markdown",
        }
        return self._post("TELEGRAM", TELEGRAM_API_URL.format(token=self.telegram_token), payload)

    def _post(self, tag: str, url: str, payload: dict) -> bool:
        """JSON POST. 실패는 로그만 남기고 False (리프레시는 계속)"""
        try:
            resp = requests.post(url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            print(f"[{tag} ERROR] {e}")
            return False

        if resp.status_code != 200:
            print(f"[{tag} ERROR] {resp.status_code}: {resp.text}")
            return False
        return True
