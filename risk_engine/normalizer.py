"""
Risk Engine: 서브 점수 정규화
- 원시 지표값 → 0~100 리스크 스케일 (선형 보간 + 방향 반전 + clamp)
"""
import math
from enum import Enum

from risk_engine.errors import ConfigurationFault, InputShapeFault


class Direction(str, Enum):
    """값이 어느 쪽으로 움직일 때 위험한지"""
    HIGHER_IS_RISKY = "higher_is_risky"
    LOWER_IS_RISKY = "lower_is_risky"


def round_half_up(x: float) -> int:
    """0.5는 올림 (Python 기본 round는 banker's rounding)"""
    return int(math.floor(x + 0.5))


def to_direction(direction) -> Direction:
    try:
        return Direction(direction)
    except ValueError:
        raise ConfigurationFault(f"unknown direction: {direction!r}") from None


def normalize(value: float, min_value: float, max_value: float, direction) -> int:
    """
    캘리브레이션 구간 [min, max]를 0~100에 선형 매핑
    lower_is_risky면 반전, 구간 밖은 0 또는 100으로 clamp
    """
    direction = to_direction(direction)
    if min_value == max_value:
        raise ConfigurationFault(
            f"calibration range is empty: min == max == {min_value}"
        )
    if not math.isfinite(value):
        raise InputShapeFault(f"indicator value must be finite, got {value}")

    linear = (value - min_value) / (max_value - min_value) * 100
    if direction is Direction.LOWER_IS_RISKY:
        linear = 100 - linear

    clamped = min(max(linear, 0.0), 100.0)
    return round_half_up(clamped)
