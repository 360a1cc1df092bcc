"""
Exception hierarchy for the evaluation engine.

Evaluation outcomes form a closed set: a caller either receives a complete
SimulationResult or exactly one of ValidationError, EvaluationTimeoutError
or InternalError. All three derive from EvaluationError so request layers
can catch the family and dispatch on `code`.
"""

from typing import Any, Dict, Optional


class EcosimError(Exception):
    """Root of all engine exceptions."""


class DataLoadError(EcosimError):
    """Raised when scenario or config loading fails"""
    pass


class SimulationCancelled(EcosimError):
    """Raised inside the simulator when the cancel signal or deadline fires"""

    def __init__(self, tick: int):
        super().__init__(f"Simulation cancelled before tick {tick}")
        self.tick = tick


class EvaluationError(EcosimError):
    """Base of the evaluation error taxonomy."""

    code = "evaluation_error"

    def to_dict(self) -> Dict[str, Any]:
        return {'code': self.code, 'message': str(self)}


class ValidationError(EvaluationError):
    """
    Input violates a structural or ecological rule.

    Attributes:
        rule: Name of the first violated rule (e.g. "min_species")
        field: Dotted path of the offending field (e.g. "species[1].prey_species")
        detail: Human-readable description
    """

    code = "validation_error"

    def __init__(self, rule: str, field: str, detail: str):
        super().__init__(f"{rule}: {field}: {detail}")
        self.rule = rule
        self.field = field
        self.detail = detail

    def to_dict(self) -> Dict[str, Any]:
        return {
            'code': self.code,
            'rule': self.rule,
            'field': self.field,
            'detail': self.detail,
        }


class EvaluationTimeoutError(EvaluationError, TimeoutError):
    """Evaluation exceeded its deadline; the in-flight work was abandoned."""

    code = "timeout"

    def __init__(self, timeout_ms: float, phase: Optional[str] = None):
        super().__init__(f"Evaluation exceeded deadline of {timeout_ms:g} ms (phase={phase})")
        self.timeout_ms = timeout_ms
        self.phase = phase

    def to_dict(self) -> Dict[str, Any]:
        return {
            'code': self.code,
            'timeout_ms': self.timeout_ms,
            'phase': self.phase,
        }


class InternalError(EvaluationError):
    """Unexpected failure during simulation or scoring. Never retried."""

    code = "internal_error"

    def __init__(self, message: str, phase: Optional[str] = None):
        super().__init__(message)
        self.phase = phase

    def to_dict(self) -> Dict[str, Any]:
        return {
            'code': self.code,
            'message': str(self),
            'phase': self.phase,
        }
