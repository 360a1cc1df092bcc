"""
Ecosim Evaluation Engine

Validates a player's ecosystem (species, environment, interactions),
simulates its population dynamics deterministically under a deadline, and
scores the outcome with structured feedback.

Architecture: validate -> simulate -> score -> feedback. Each stage accepts
only the previous stage's output type.
"""

from .config import EngineConfig, load_config
from .data_types import (
    Species, EnvironmentParameters, SpeciesInteraction, SimulationState,
    ValidatedState, Trajectory, TickSnapshot, Metrics, FeedbackEntry,
    SimulationResult, SpeciesType, InteractionType, SimulationStatus
)
from .errors import (
    EcosimError, DataLoadError, EvaluationError, ValidationError,
    EvaluationTimeoutError, InternalError
)
from .evaluator import Evaluator, EvaluationPhase, evaluate
from .loader import parse_state, load_scenario
from .validator import validate
from .simulator import simulate
from .metrics import compute_metrics, compute_score
from .feedback import generate_feedback

__version__ = "0.1.0"
