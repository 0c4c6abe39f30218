"""
리스크 엔진 오류 분류
- ConfigurationFault: 캘리브레이션/가중치 설정 오류 (생성 시점에 검출)
- InputShapeFault: 집계 입력 형태 오류 (지표 누락/중복, NaN 값 등)
"""


class RiskEngineError(ValueError):
    """리스크 엔진 공통 예외"""


class ConfigurationFault(RiskEngineError):
    """지표 설정 오류: 첫 사용 전에 발생해야 함"""


class InputShapeFault(RiskEngineError):
    """집계 입력 오류: 조용히 보정하지 않고 즉시 실패"""
