"""
Engine configuration.

EngineConfig carries every limit and coefficient an evaluation depends on,
so tests and callers can vary them without touching module constants.
Defaults come from constants.py; overrides come from keyword arguments or a
YAML file validated against ecosim/schemas/engine_config.schema.json.
"""

import math
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Dict, Optional

from . import constants
from .errors import DataLoadError
from .loader import load_yaml, validate_against_schema, DEFAULT_SCHEMA_DIR


@dataclass(frozen=True)
class EngineConfig:
    """Limits, timing, and scoring parameters for one Evaluator"""
    # Structural limits
    min_species: int = constants.MIN_SPECIES_COUNT
    max_species: int = constants.MAX_SPECIES_COUNT
    max_playable_depth: float = constants.MAX_PLAYABLE_DEPTH
    infer_competition: bool = constants.INFER_COMPETITION

    # Timing
    attempt_timeout_ms: float = constants.ATTEMPT_TIMEOUT_MS
    duration: float = constants.SIMULATION_DURATION
    tick_dt: float = constants.TICK_DT

    # Metrics
    stability_window: int = constants.STABILITY_WINDOW
    stability_cv_scale: float = constants.STABILITY_CV_SCALE
    extinction_threshold: float = constants.EXTINCTION_THRESHOLD
    runaway_multiplier: float = constants.RUNAWAY_MULTIPLIER

    # Scoring and feedback
    score_weights: Dict[str, float] = field(
        default_factory=lambda: dict(constants.SCORE_WEIGHTS))
    feedback_thresholds: Dict[str, float] = field(
        default_factory=lambda: dict(constants.FEEDBACK_THRESHOLDS))

    # Output
    verbose: bool = False
    log_interval: int = constants.SIMULATION_LOG_INTERVAL

    @property
    def ticks(self) -> int:
        """Tick count for the configured duration"""
        return ticks_for_duration(self.duration, self.tick_dt)

    def with_overrides(self, **overrides) -> 'EngineConfig':
        """Copy with selected fields replaced (unknown keys raise TypeError)"""
        return replace(self, **overrides)


def ticks_for_duration(duration: float, dt: float) -> int:
    """Number of ticks needed to cover `duration` at step `dt` (at least 1)"""
    if dt <= 0:
        raise ValueError(f"tick_dt must be positive, got {dt}")
    # Round first so 20.0 / 0.1 gives 200, not 201
    return max(1, math.ceil(round(duration / dt, 9)))


def config_from_dict(data: dict) -> EngineConfig:
    """Build EngineConfig from a plain mapping, merging partial weight/threshold maps"""
    known = {f.name for f in fields(EngineConfig)}
    unknown = set(data) - known
    if unknown:
        raise DataLoadError(f"Unknown config keys: {', '.join(sorted(unknown))}")

    base = EngineConfig()
    kwargs = dict(data)
    if 'score_weights' in kwargs:
        kwargs['score_weights'] = {**base.score_weights, **kwargs['score_weights']}
    if 'feedback_thresholds' in kwargs:
        kwargs['feedback_thresholds'] = {**base.feedback_thresholds, **kwargs['feedback_thresholds']}

    return replace(base, **kwargs)


def load_config(file_path: Path, schema_dir: Optional[Path] = DEFAULT_SCHEMA_DIR) -> EngineConfig:
    """Load engine configuration from YAML"""
    file_path = Path(file_path)
    data = load_yaml(file_path) or {}

    # Validate if schema available
    if schema_dir:
        schema_path = Path(schema_dir) / "engine_config.schema.json"
        validate_against_schema(data, schema_path, file_path)

    return config_from_dict(data.get('engine', {}))
