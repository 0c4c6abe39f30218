"""
Risk Engine: 가중 합산 → 종합 리스크 점수
- 지표별 서브 점수 × 가중치 합 → 0~100 종합 점수
- 기여도(impact) 내림차순 정렬 → 주요 리스크 요인
- 순수 함수: I/O 없음, 상태 없음
"""
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from risk_engine.errors import InputShapeFault
from risk_engine.indicators import INDICATOR_CATALOG, IndicatorSpec, get_spec, validate_catalog
from risk_engine.normalizer import normalize, round_half_up


@dataclass(frozen=True)
class SourceCitation:
    title: str
    uri: str

    def to_dict(self) -> dict:
        return {"title": self.title, "uri": self.uri}


@dataclass(frozen=True)
class ObservedIndicator:
    """리프레시 1회분 지표 관측값 (정의 + 최신값 + 서브 점수)"""
    spec: IndicatorSpec
    value: float
    sub_score: int
    history: tuple = ()

    @property
    def id(self) -> str:
        return self.spec.id

    @property
    def name(self) -> str:
        return self.spec.name

    @property
    def weight(self) -> float:
        return self.spec.weight

    @property
    def category(self):
        return self.spec.category

    @property
    def unit(self) -> str:
        return self.spec.unit

    @property
    def direction(self):
        return self.spec.direction

    def to_dict(self) -> dict:
        return {
            "id": self.spec.id,
            "name": self.spec.name,
            "category": self.spec.category.value,
            "unit": self.spec.unit,
            "direction": self.spec.direction.value,
            "calibration_min": self.spec.calibration_min,
            "calibration_max": self.spec.calibration_max,
            "weight": self.spec.weight,
            "description": self.spec.description,
            "explanation": self.spec.explanation,
            "value": self.value,
            "sub_score": self.sub_score,
            "history": [{"date": d, "value": v} for d, v in self.history],
        }


@dataclass(frozen=True)
class Contribution:
    id: str
    name: str
    impact: float

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "impact": self.impact}


@dataclass(frozen=True)
class RiskData:
    """종합 리스크 결과: 매 리프레시마다 새로 생성"""
    total_score: int
    last_updated: str
    indicators: tuple
    contributions: tuple
    sources: tuple = field(default_factory=tuple)

    @property
    def primary_driver(self) -> Optional[Contribution]:
        return self.contributions[0] if self.contributions else None

    def to_dict(self) -> dict:
        return {
            "total_score": self.total_score,
            "last_updated": self.last_updated,
            "indicators": [ind.to_dict() for ind in self.indicators],
            "contributions": [c.to_dict() for c in self.contributions],
            "sources": [s.to_dict() for s in self.sources],
        }


def observe(spec: IndicatorSpec, value: float, history=()) -> ObservedIndicator:
    """지표 정의 + 원시값 → 서브 점수 계산된 관측값"""
    sub_score = normalize(value, spec.calibration_min, spec.calibration_max, spec.direction)
    return ObservedIndicator(
        spec=spec,
        value=value,
        sub_score=sub_score,
        history=tuple((str(d), float(v)) for d, v in history),
    )


def aggregate(indicators, sources=()) -> RiskData:
    """가중 합산 + 기여도 랭킹 (가중치는 재정규화하지 않음)"""
    indicators = tuple(indicators)

    weighted_sum = sum(ind.sub_score * ind.weight for ind in indicators)
    total_score = round_half_up(weighted_sum)

    contributions = [
        Contribution(id=ind.id, name=ind.name, impact=ind.sub_score * ind.weight)
        for ind in indicators
    ]
    # sorted는 stable: 동점이면 입력 순서 유지
    contributions = sorted(contributions, key=lambda c: c.impact, reverse=True)

    return RiskData(
        total_score=total_score,
        last_updated=datetime.now(timezone.utc).isoformat(),
        indicators=indicators,
        contributions=tuple(contributions),
        sources=tuple(_to_citation(s) for s in sources),
    )


def _to_citation(source) -> SourceCitation:
    if isinstance(source, SourceCitation):
        return source
    if not isinstance(source, dict):
        raise InputShapeFault(f"source must be a SourceCitation or dict, got {source!r}")
    return SourceCitation(title=source.get("title", "Market Source"), uri=source.get("uri", "#"))


class RiskAggregator:
    """카탈로그에 묶인 집계기: 생성 시 설정 검증, 집계 시 입력 형태 검증"""

    def __init__(self, catalog=None):
        self.catalog = validate_catalog(INDICATOR_CATALOG if catalog is None else catalog)
        self.indicator_ids = [spec.id for spec in self.catalog]

    def observe(self, indicator_id: str, value: float, history=()) -> ObservedIndicator:
        try:
            spec = get_spec(self.catalog, indicator_id)
        except KeyError:
            raise InputShapeFault(f"unknown indicator id: {indicator_id}") from None
        return observe(spec, value, history)

    def aggregate(self, indicators, sources=()) -> RiskData:
        indicators = tuple(indicators)
        self._check_shape(indicators)
        return aggregate(indicators, sources)

    def _check_shape(self, indicators: tuple):
        """지표 세트가 카탈로그와 정확히 일치하는지 확인"""
        if len(indicators) != len(self.catalog):
            raise InputShapeFault(
                f"expected {len(self.catalog)} indicators, got {len(indicators)}"
            )

        seen = set()
        for ind in indicators:
            if not isinstance(ind, ObservedIndicator):
                raise InputShapeFault(f"not an ObservedIndicator: {ind!r}")
            if ind.id not in self.indicator_ids:
                raise InputShapeFault(f"unknown indicator id: {ind.id}")
            if ind.id in seen:
                raise InputShapeFault(f"duplicate indicator id: {ind.id}")
            seen.add(ind.id)

            if isinstance(ind.value, bool) or not isinstance(ind.value, (int, float)) \
                    or not math.isfinite(ind.value):
                raise InputShapeFault(f"{ind.id}: value must be a finite number, got {ind.value!r}")
            if isinstance(ind.sub_score, bool) or not isinstance(ind.sub_score, int) \
                    or not 0 <= ind.sub_score <= 100:
                raise InputShapeFault(f"{ind.id}: sub_score must be an integer in [0, 100], got {ind.sub_score!r}")

            # 카탈로그 정의로 관측한 값만 허용 (캘리브레이션/가중치 바꿔치기 방지)
            spec = get_spec(self.catalog, ind.id)
            if ind.spec != spec:
                raise InputShapeFault(f"{ind.id}: observed under a different spec than the catalog's")
            expected = normalize(ind.value, spec.calibration_min, spec.calibration_max, spec.direction)
            if ind.sub_score != expected:
                raise InputShapeFault(
                    f"{ind.id}: sub_score {ind.sub_score} does not match value {ind.value} (expected {expected})"
                )
