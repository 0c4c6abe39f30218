"""
Risk Engine: 종합 점수 → 리스크 등급 (게이지 색상 포함)
"""
from dataclasses import dataclass
from enum import Enum

from risk_engine.errors import InputShapeFault


class RiskLevel(str, Enum):
    VERY_LOW = "Very Low"
    LOW = "Low"
    MODERATE = "Moderate"
    ELEVATED = "Elevated"
    EXTREME = "Extreme Risk"


@dataclass(frozen=True)
class RiskBand:
    min: int
    max: int
    level: RiskLevel
    color: str


# 경계값은 아래 구간에 속함 (20 → Very Low)
RISK_BANDS = (
    RiskBand(0, 20, RiskLevel.VERY_LOW, "#22c55e"),
    RiskBand(20, 40, RiskLevel.LOW, "#84cc16"),
    RiskBand(40, 60, RiskLevel.MODERATE, "#eab308"),
    RiskBand(60, 80, RiskLevel.ELEVATED, "#f97316"),
    RiskBand(80, 100, RiskLevel.EXTREME, "#ef4444"),
)


def risk_band(score: float) -> RiskBand:
    for band in RISK_BANDS:
        if band.min <= score <= band.max:
            return band
    raise InputShapeFault(f"risk score out of range [0, 100]: {score}")


def classify(score: float) -> RiskLevel:
    """종합 점수의 리스크 등급"""
    return risk_band(score).level
