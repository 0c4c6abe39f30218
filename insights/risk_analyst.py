"""
리스크 요약 - 로컬 LLM (Ollama) 기반
- 종합 점수 + 지표별 서브 점수 → 3문장 시장 리스크 요약
- 429 응답 시 쿨다운 동안 호출 중단
"""
import time
from typing import Optional

import ollama

from risk_engine.aggregator import RiskData
from risk_engine.risk_levels import classify

RATE_LIMITED_MESSAGE = "LLM server rate limited. Please retry later."


class RiskAnalyst:
    """로컬 LLM을 활용한 리스크 요약"""

    SUMMARY_PROMPT = """Based on these live US market risk metrics:
Total Risk Score: {total_score}/100
Status: {level}

Live Metrics:
{metrics}

Primary risk driver: {primary_driver}

Write a professional 3-sentence summary highlighting the primary risk driver and the immediate outlook for US equities."""

    def __init__(self, config: dict, clock=time.monotonic):
        self.model = config.get("model", "llama3.1:8b")
        self.temperature = config.get("temperature", 0.3)
        self.max_tokens = config.get("max_tokens", 512)
        self.cooldown_sec = config.get("rate_limit_cooldown_sec", 300)
        self._clock = clock
        self._rate_limited_until = 0.0

    def build_prompt(self, risk_data: RiskData, level: Optional[str] = None) -> str:
        if level is None:
            level = classify(risk_data.total_score).value

        metrics = "\n".join(
            f"- {ind.name}: {ind.value}{ind.unit} (Sub-score: {ind.sub_score}/100)"
            for ind in risk_data.indicators
        )
        driver = risk_data.primary_driver
        return self.SUMMARY_PROMPT.format(
            total_score=risk_data.total_score,
            level=level,
            metrics=metrics,
            primary_driver=f"{driver.name} ({driver.impact:.1f} pts)" if driver else "N/A",
        )

    def is_rate_limited(self) -> bool:
        return self._clock() < self._rate_limited_until

    def record_rate_limit(self):
        self._rate_limited_until = self._clock() + self.cooldown_sec

    def summarize(self, risk_data: RiskData, level: Optional[str] = None) -> Optional[str]:
        """3문장 요약 (LLM 사용 불가 시 None)"""
        if self.is_rate_limited():
            return RATE_LIMITED_MESSAGE

        prompt = self.build_prompt(risk_data, level)
        try:
            response = ollama.chat(
                model=self.model,
                messages=[
                    {
                        "role": "system",
                        "content": "You are a market strategist. Respond with plain prose only.",
                    },
                    {"role": "user", "content": prompt},
                ],
                options={
                    "temperature": self.temperature,
                    "num_predict": self.max_tokens,
                },
            )
            content = response["message"]["content"].strip()
            return content or None

        except ollama.ResponseError as e:
            if e.status_code == 429:
                self.record_rate_limit()
                print(f"[LLM WARN] rate limited, cooling down {self.cooldown_sec}s")
                return RATE_LIMITED_MESSAGE
            print(f"[LLM ERROR] {e}")
            return None
        except Exception as e:
            print(f"[LLM ERROR] {e}")
            return None
