"""
Feedback generation.

Maps each metric below its threshold to one FeedbackEntry naming the weak
area, the species involved, and the target value. Entries are ordered
worst-first. Pure functions; no I/O.
"""

from typing import Dict, List, Optional, Tuple

from .config import EngineConfig
from .constants import FEEDBACK_AREA_ORDER, TOLERANCE_PROFILES
from .data_types import Metrics, ValidatedState, FeedbackEntry, TrendDirection
from .simulator import environmental_stress


def _names(validated: ValidatedState, species_ids: List[str]) -> str:
    by_id = validated.state.species_by_id()
    return ", ".join(by_id[sid].name if sid in by_id else sid for sid in species_ids)


def _sustainability_message(metrics: Metrics, validated: ValidatedState, config: EngineConfig) -> str:
    extinct = [t.species_id for t in metrics.population_trends if t.direction == TrendDirection.EXTINCT]
    runaway = [
        t.species_id for t in metrics.population_trends
        if t.direction != TrendDirection.EXTINCT and t.final > config.runaway_multiplier * t.initial
    ]

    parts = []
    if extinct:
        parts.append(f"Extinction: {_names(validated, extinct)} died out before the end of the run.")
    if runaway:
        parts.append(f"Overpopulation: {_names(validated, runaway)} grew more than "
                     f"{config.runaway_multiplier:g}x and risks collapsing the food web.")
    if not parts:
        parts.append("Some species ended outside a healthy population range.")
    parts.append("Check that every consumer has enough prey and that predators are not too strong.")
    return " ".join(parts)


def _stability_message(metrics: Metrics, validated: ValidatedState) -> str:
    moving = [
        t.species_id for t in metrics.population_trends
        if t.direction in (TrendDirection.DECLINING, TrendDirection.EXTINCT, TrendDirection.GROWING)
    ]
    message = "Populations have not settled into a steady state by the end of the run."
    if moving:
        message += f" Still changing: {_names(validated, moving)}."
    return message + " Balance reproduction rates against energy requirements to damp oscillations."


def _biodiversity_message(metrics: Metrics, validated: ValidatedState) -> str:
    alive = [t for t in metrics.population_trends if t.final > 0]
    if len(alive) <= 1:
        return ("Only one species survives, so the ecosystem has no diversity left. "
                "Add species that can coexist and give consumers more than one food source.")
    dominant = max(alive, key=lambda t: t.final)
    return (f"The population is dominated by {_names(validated, [dominant.species_id])}. "
            "Aim for a more even distribution across species.")


_FACTOR_LABELS = {
    'temperature': 'Temperature',
    'salinity': 'Salinity',
    'light_level': 'Light level',
    'depth': 'Depth',
}


def _environment_message(validated: ValidatedState) -> str:
    env = validated.environment
    stress = {s.id: environmental_stress(s, env) for s in validated.species}

    # Factor with the largest total stress, then the species it hurts most
    totals = {factor: sum(per_species[factor] for per_species in stress.values())
              for factor in TOLERANCE_PROFILES['PRODUCER']}
    worst = max(totals, key=lambda factor: totals[factor])
    victim = max(validated.species, key=lambda s: stress[s.id][worst])

    optimum = TOLERANCE_PROFILES[victim.type.value][worst][0]
    value = getattr(env, worst)
    direction = "high" if value > optimum else "low"

    return (f"High environmental stress detected. {_FACTOR_LABELS[worst]} ({value:g}) is too {direction} "
            f"for {victim.name}. Review environmental parameters.")


def _trophic_message() -> str:
    return ("Little of the energy produced reaches consumers and decomposers. "
            "Add consumers that feed on your producers or strengthen existing predation links.")


def generate_feedback(
    metrics: Metrics,
    validated: ValidatedState,
    config: Optional[EngineConfig] = None
) -> Tuple[FeedbackEntry, ...]:
    """
    Build feedback for every metric strictly below its threshold.

    Args:
        metrics: Output of metrics.compute_metrics()
        validated: State the metrics were computed for (species names)
        config: Engine config holding feedback_thresholds

    Returns:
        Entries ordered by ascending metric value (worst first); empty when
        every metric meets its threshold
    """
    if config is None:
        config = EngineConfig()

    thresholds: Dict[str, float] = config.feedback_thresholds
    values = metrics.values()

    messages = {
        'sustainability_rating': lambda: _sustainability_message(metrics, validated, config),
        'stability_score': lambda: _stability_message(metrics, validated),
        'biodiversity_index': lambda: _biodiversity_message(metrics, validated),
        'trophic_efficiency': _trophic_message,
        'environment_score': lambda: _environment_message(validated),
    }

    weak = [area for area in FEEDBACK_AREA_ORDER if area in thresholds and values[area] < thresholds[area]]
    weak.sort(key=lambda area: (values[area], FEEDBACK_AREA_ORDER.index(area)))

    return tuple(
        FeedbackEntry(
            area=area,
            message=messages[area](),
            target_value=thresholds[area],
            current_value=values[area],
        )
        for area in weak
    )


def summarize(score: float, feedback: Tuple[FeedbackEntry, ...]) -> str:
    """Short overall summary for a scored run"""
    if not feedback:
        return "Excellent ecosystem management! The system shows high stability and balance."
    if score >= 80:
        return "Strong ecosystem overall, with a few areas left to fine-tune."
    if score >= 60:
        return "Good ecosystem balance, but there's room for improvement in species interactions."
    return "The ecosystem needs attention to achieve better stability."
