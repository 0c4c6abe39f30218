"""
Risk Engine: 지표 카탈로그
- 6개 지표 (VIX, 장단기 금리차, 하이일드 스프레드, P/E, 풋콜 비율, TED 스프레드)
- 캘리브레이션 구간 / 리스크 방향 / 가중치 정의
- 설정 오류는 생성 시점에 ConfigurationFault
"""
import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from risk_engine.errors import ConfigurationFault
from risk_engine.normalizer import Direction, to_direction


class Category(str, Enum):
    VOLATILITY = "Volatility"
    CREDIT_STRESS = "Credit/Stress"
    VALUATION = "Valuation"
    LIQUIDITY = "Liquidity"
    MACRO = "Macro"


@dataclass(frozen=True)
class IndicatorSpec:
    """지표 정적 정의"""
    id: str
    name: str
    category: Category
    unit: str
    direction: Direction
    calibration_min: float
    calibration_max: float
    weight: float
    description: str = ""
    explanation: str = ""

    def __post_init__(self):
        object.__setattr__(self, "direction", to_direction(self.direction))
        try:
            object.__setattr__(self, "category", Category(self.category))
        except ValueError:
            raise ConfigurationFault(
                f"{self.id}: unknown category {self.category!r}"
            ) from None

        for bound in (self.calibration_min, self.calibration_max):
            if not math.isfinite(bound):
                raise ConfigurationFault(f"{self.id}: calibration bound must be finite, got {bound}")
        if self.calibration_min == self.calibration_max:
            raise ConfigurationFault(
                f"{self.id}: calibration_min == calibration_max ({self.calibration_min})"
            )
        if not math.isfinite(self.weight) or self.weight < 0:
            raise ConfigurationFault(f"{self.id}: weight must be a non-negative number, got {self.weight}")


INDICATOR_CATALOG = (
    IndicatorSpec(
        id="vix",
        name="VIX (Fear Index)",
        category=Category.VOLATILITY,
        unit="",
        direction=Direction.HIGHER_IS_RISKY,
        calibration_min=10.0,
        calibration_max=35.0,
        weight=0.25,
        description="CBOE Volatility Index tracking S&P 500 options implied volatility.",
        explanation="High VIX indicates market expectation of large price swings and investor fear.",
    ),
    IndicatorSpec(
        id="yield-curve",
        name="10Y-2Y Yield Spread",
        category=Category.MACRO,
        unit="%",
        direction=Direction.LOWER_IS_RISKY,
        calibration_min=-0.5,
        calibration_max=2.0,
        weight=0.15,
        description="The difference between 10-year and 2-year Treasury yields.",
        explanation="Inversion (negative spread) historically precedes economic recessions.",
    ),
    IndicatorSpec(
        id="hy-spread",
        name="High Yield OAS",
        category=Category.CREDIT_STRESS,
        unit="%",
        direction=Direction.HIGHER_IS_RISKY,
        calibration_min=2.5,
        calibration_max=6.0,
        weight=0.20,
        description="Risk premium demanded for holding low-rated corporate debt.",
        explanation="Widening spreads indicate rising credit risk and tightening financial conditions.",
    ),
    IndicatorSpec(
        id="pe-ratio",
        name="S&P 500 P/E Ratio",
        category=Category.VALUATION,
        unit="x",
        direction=Direction.HIGHER_IS_RISKY,
        calibration_min=15.0,
        calibration_max=25.0,
        weight=0.20,
        description="Current price divided by trailing 12-month earnings.",
        explanation="High valuation ratios relative to historical averages suggest a stretched market.",
    ),
    IndicatorSpec(
        id="put-call",
        name="Put/Call Ratio",
        category=Category.VOLATILITY,
        unit="",
        direction=Direction.HIGHER_IS_RISKY,
        calibration_min=0.5,
        calibration_max=1.2,
        weight=0.10,
        description="Ratio of trading volume of put options to call options.",
        explanation="An extremely high ratio suggests panic, while extremely low suggests complacency.",
    ),
    IndicatorSpec(
        id="ted-spread",
        name="TED Spread",
        category=Category.LIQUIDITY,
        unit="%",
        direction=Direction.HIGHER_IS_RISKY,
        calibration_min=0.1,
        calibration_max=1.0,
        weight=0.10,
        description="Difference between interbank lending rates and short-term US Treasury bills.",
        explanation="Increases in the TED spread signal lower liquidity and higher counterparty risk.",
    ),
)

WEIGHT_SUM_TOLERANCE = 1e-6

# 설정 파일에서 덮어쓸 수 있는 필드
OVERRIDABLE_FIELDS = ("calibration_min", "calibration_max", "weight", "direction")


def validate_catalog(catalog) -> tuple:
    """카탈로그 전체 검증 (id 중복, 가중치 합)"""
    catalog = tuple(catalog)
    if not catalog:
        raise ConfigurationFault("indicator catalog is empty")

    seen = set()
    for spec in catalog:
        if not isinstance(spec, IndicatorSpec):
            raise ConfigurationFault(f"catalog entry is not an IndicatorSpec: {spec!r}")
        if spec.id in seen:
            raise ConfigurationFault(f"duplicate indicator id: {spec.id}")
        seen.add(spec.id)

    # 합 > 1.0 이면 종합 점수가 100을 넘을 수 있음 → 설정 오류
    # 합 < 1.0 은 점수가 비례적으로 낮아질 뿐 (경고만)
    total_weight = sum(spec.weight for spec in catalog)
    if total_weight > 1.0 + WEIGHT_SUM_TOLERANCE:
        raise ConfigurationFault(
            f"indicator weights sum to {total_weight:.4f}; must not exceed 1.0"
        )
    if total_weight < 1.0 - WEIGHT_SUM_TOLERANCE:
        print(f"[WARN] Indicator weights sum to {total_weight:.4f}, not 1.0. "
              f"Total score will be proportionally off.")

    return catalog


def build_catalog(overrides: Optional[dict] = None, base=INDICATOR_CATALOG) -> tuple:
    """
    settings.yaml의 indicators 섹션으로 캘리브레이션/가중치 덮어쓰기
    overrides: {"vix": {"calibration_min": 12, "weight": 0.3}, ...}
    """
    overrides = overrides or {}
    known = {spec.id for spec in base}
    unknown = sorted(set(overrides) - known)
    if unknown:
        raise ConfigurationFault(f"unknown indicator ids in overrides: {', '.join(unknown)}")

    catalog = []
    for spec in base:
        changes = overrides.get(spec.id) or {}
        bad_fields = sorted(set(changes) - set(OVERRIDABLE_FIELDS))
        if bad_fields:
            raise ConfigurationFault(f"{spec.id}: cannot override {', '.join(bad_fields)}")
        # replace()가 __post_init__을 다시 돌려 검증
        catalog.append(replace(spec, **changes) if changes else spec)

    return validate_catalog(catalog)


def get_spec(catalog, indicator_id: str) -> IndicatorSpec:
    for spec in catalog:
        if spec.id == indicator_id:
            return spec
    raise KeyError(indicator_id)
