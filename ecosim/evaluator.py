"""
Evaluation orchestrator.

Runs validate -> simulate -> score -> feedback for one submission under a
wall-clock deadline and returns either a complete SimulationResult or one
typed error.

PHASES (one EvaluationRun per call)
-----------------------------------
    PENDING -> VALIDATING -> SIMULATING -> SCORING -> COMPLETED
    any non-terminal phase -> TIMED_OUT | FAILED

Validation runs inline on the calling thread; it is pure and near-instant,
so a malformed submission is rejected whatever the deadline. Simulation and
scoring run on a worker thread raced against the deadline. When the
deadline wins, the cancel event is set, the worker stops before its next
tick, and whatever it produces is discarded. Unexpected errors in the
worker become InternalError and are not retried.
"""

import concurrent.futures
import threading
import time
from dataclasses import replace
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Union

from .config import EngineConfig
from .data_types import SimulationState, SimulationResult, SimulationStatus, ValidatedState
from .errors import (
    EvaluationError, ValidationError, EvaluationTimeoutError, InternalError, SimulationCancelled
)
from .feedback import generate_feedback, summarize
from .loader import parse_state
from .metrics import compute_metrics, compute_score
from .simulator import simulate
from .validator import validate


class EvaluationPhase(str, Enum):
    PENDING = 'PENDING'
    VALIDATING = 'VALIDATING'
    SIMULATING = 'SIMULATING'
    SCORING = 'SCORING'
    COMPLETED = 'COMPLETED'
    TIMED_OUT = 'TIMED_OUT'
    FAILED = 'FAILED'


TERMINAL_PHASES = {EvaluationPhase.COMPLETED, EvaluationPhase.TIMED_OUT, EvaluationPhase.FAILED}

_NEXT_PHASE = {
    EvaluationPhase.PENDING: EvaluationPhase.VALIDATING,
    EvaluationPhase.VALIDATING: EvaluationPhase.SIMULATING,
    EvaluationPhase.SIMULATING: EvaluationPhase.SCORING,
    EvaluationPhase.SCORING: EvaluationPhase.COMPLETED,
}


class EvaluationRun:
    """
    Record of one evaluation: phase history plus exactly one of result/error.

    Phase changes may come from the worker thread (SIMULATING, SCORING) and
    the calling thread (everything else), so transitions are lock-guarded.
    """

    def __init__(self, timeout_ms: float):
        self.timeout_ms = timeout_ms
        self.phase = EvaluationPhase.PENDING
        self.history: List[EvaluationPhase] = [EvaluationPhase.PENDING]
        self.result: Optional[SimulationResult] = None
        self.error: Optional[EvaluationError] = None
        self.started_at = time.monotonic()
        self.elapsed_ms: float = 0.0
        self._lock = threading.Lock()

    @property
    def done(self) -> bool:
        return self.phase in TERMINAL_PHASES

    def advance(self, phase: EvaluationPhase):
        """Move to `phase`. Only the next phase in sequence or a terminal failure is allowed."""
        with self._lock:
            if self.phase in TERMINAL_PHASES:
                raise InternalError(f"Evaluation already {self.phase.value}, cannot enter {phase.value}",
                                    phase=self.phase.value)

            allowed = phase in (EvaluationPhase.TIMED_OUT, EvaluationPhase.FAILED) \
                or _NEXT_PHASE.get(self.phase) == phase
            if not allowed:
                raise InternalError(f"Illegal transition {self.phase.value} -> {phase.value}",
                                    phase=self.phase.value)

            self.phase = phase
            self.history.append(phase)
            if phase in TERMINAL_PHASES:
                self.elapsed_ms = (time.monotonic() - self.started_at) * 1000.0

    def complete(self, result: SimulationResult):
        self.advance(EvaluationPhase.COMPLETED)
        self.result = result

    def fail(self, error: EvaluationError, phase: EvaluationPhase = EvaluationPhase.FAILED):
        self.advance(phase)
        self.error = error


class Evaluator:
    """
    Stateless evaluation entry point.

    One Evaluator may serve many concurrent calls: each call gets its own
    EvaluationRun, worker thread, cancel event, and intermediate values.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config if config is not None else EngineConfig()

    def _log(self, message: str):
        if self.config.verbose:
            print(message)

    def _simulate_and_score(
        self,
        run: EvaluationRun,
        validated: ValidatedState,
        cancel_event: threading.Event,
        deadline: float
    ) -> SimulationResult:
        """Worker body: SIMULATING then SCORING. Raises SimulationCancelled on deadline."""
        config = self.config

        run.advance(EvaluationPhase.SIMULATING)
        trajectory = simulate(validated, config.ticks, config, cancel_event=cancel_event, deadline=deadline)

        if cancel_event.is_set():
            raise SimulationCancelled(trajectory.ticks)

        run.advance(EvaluationPhase.SCORING)
        metrics = compute_metrics(trajectory, config)
        score, breakdown = compute_score(metrics, config)
        feedback = generate_feedback(metrics, validated, config)

        return SimulationResult(
            state=replace(validated.state, status=SimulationStatus.COMPLETED),
            metrics=metrics,
            score=score,
            breakdown=breakdown,
            feedback=feedback,
            summary=summarize(score, feedback),
            timestamp=datetime.now(timezone.utc).isoformat(),
            ticks=trajectory.ticks,
        )

    def run(
        self,
        raw_state: Union[SimulationState, dict],
        timeout_ms: Optional[float] = None
    ) -> EvaluationRun:
        """
        Evaluate a submission and return the run record.

        Domain errors are stored on the run instead of raised.

        Args:
            raw_state: SimulationState or raw mapping from the request layer
            timeout_ms: Deadline in milliseconds (defaults to config.attempt_timeout_ms)

        Returns:
            EvaluationRun in a terminal phase
        """
        if timeout_ms is None:
            timeout_ms = self.config.attempt_timeout_ms

        run = EvaluationRun(timeout_ms)
        deadline = run.started_at + max(0.0, timeout_ms) / 1000.0

        # VALIDATING (inline)
        run.advance(EvaluationPhase.VALIDATING)
        try:
            state = raw_state if isinstance(raw_state, SimulationState) else parse_state(raw_state)
            validated = validate(state, self.config)
        except ValidationError as e:
            run.fail(e)
            self._log(f"[FAIL] Validation rejected submission: {e}")
            return run
        except Exception as e:
            error = InternalError(f"{type(e).__name__}: {e}", phase=run.phase.value)
            error.__cause__ = e
            run.fail(error)
            self._log(f"[FAIL] Validation crashed: {error}")
            return run

        # SIMULATING / SCORING (worker, raced against the deadline)
        cancel_event = threading.Event()
        executor = concurrent.futures.ThreadPoolExecutor(max_workers=1, thread_name_prefix="ecosim-eval")
        try:
            future = executor.submit(self._simulate_and_score, run, validated, cancel_event, deadline)
            try:
                result = future.result(timeout=max(0.0, deadline - time.monotonic()))
                if time.monotonic() > deadline:
                    raise SimulationCancelled(result.ticks)
            except (concurrent.futures.TimeoutError, SimulationCancelled):
                cancel_event.set()
                run.fail(EvaluationTimeoutError(timeout_ms, phase=run.phase.value), EvaluationPhase.TIMED_OUT)
                self._log(f"[WARN] Evaluation of {validated.state.id} abandoned after {timeout_ms:g} ms")
                return run
            except EvaluationError as e:
                cancel_event.set()
                run.fail(e)
                self._log(f"[FAIL] Evaluation of {validated.state.id} failed: {e}")
                return run
            except Exception as e:
                cancel_event.set()
                error = InternalError(f"{type(e).__name__}: {e}", phase=run.phase.value)
                error.__cause__ = e
                run.fail(error)
                self._log(f"[FAIL] Evaluation of {validated.state.id} failed: {error}")
                return run
        finally:
            executor.shutdown(wait=False)

        run.complete(result)
        self._log(f"[OK] Evaluation of {validated.state.id} completed: score={result.score:.1f}, "
                  f"{len(result.feedback)} feedback entries, {run.elapsed_ms:.1f} ms")
        return run

    def evaluate(
        self,
        raw_state: Union[SimulationState, dict],
        timeout_ms: Optional[float] = None
    ) -> SimulationResult:
        """
        Evaluate a submission.

        Args:
            raw_state: SimulationState or raw mapping from the request layer
            timeout_ms: Deadline in milliseconds (defaults to config.attempt_timeout_ms)

        Returns:
            Complete SimulationResult

        Raises:
            ValidationError: Submission violates a rule
            EvaluationTimeoutError: Deadline elapsed before completion
            InternalError: Unexpected failure during simulation or scoring
        """
        run = self.run(raw_state, timeout_ms)
        if run.error is not None:
            raise run.error
        return run.result


def evaluate(
    raw_state: Union[SimulationState, dict],
    timeout_ms: Optional[float] = None,
    config: Optional[EngineConfig] = None
) -> SimulationResult:
    """Module-level shortcut for Evaluator(config).evaluate(...)"""
    return Evaluator(config).evaluate(raw_state, timeout_ms)
