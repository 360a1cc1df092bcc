"""
Ecosystem quality metrics.

Reduces a Trajectory to five scalars in [0, 1] plus per-species trends,
and combines them into the 0-100 score.

    biodiversity_index     Shannon evenness of final populations, H / ln(S)
    stability_score        mean over species of 1 / (1 + k * cv) on the trailing window
    sustainability_rating  fraction of species inside the healthy band at the end
    trophic_efficiency     consumer+decomposer intake / producer intake,
                           relative to the ten-percent reference transfer
    environment_score      mean environmental suitability (feedback only, not scored)

    score = 100 * (w_balance * mean(biodiversity, trophic)
                   + w_survival * sustainability
                   + w_stability * stability)
"""

import math
from typing import List, Optional, Tuple

import numpy as np

from .config import EngineConfig
from .constants import TROPHIC_REFERENCE_RATIO, TREND_TOLERANCE
from .data_types import (
    Trajectory, Metrics, PopulationTrend, ScoreBreakdown,
    SpeciesType, TrendDirection
)


def biodiversity_index(trajectory: Trajectory) -> float:
    """Shannon evenness over final-tick populations; 0 when one or no species survives"""
    final = np.array([trajectory.final.populations[sid] for sid in trajectory.species_ids], dtype=np.float64)
    total_species = len(final)
    alive = final[final > 0]

    if len(alive) <= 1 or total_species <= 1:
        return 0.0

    proportions = alive / alive.sum()
    shannon = float(-(proportions * np.log(proportions)).sum())
    return float(np.clip(shannon / math.log(total_species), 0.0, 1.0))


def stability_score(trajectory: Trajectory, window: int, cv_scale: float) -> float:
    """
    Mean per-species stability over the trailing `window` ticks.

    Each species scores 1 / (1 + cv_scale * cv) where cv is the coefficient
    of variation of its population; species extinct anywhere in the window
    score 0.
    """
    window = max(2, min(window, len(trajectory.snapshots)))
    recent = trajectory.snapshots[-window:]

    scores = []
    for species_id in trajectory.species_ids:
        series = np.array([snap.populations[species_id] for snap in recent], dtype=np.float64)
        if np.any(series <= 0):
            scores.append(0.0)
            continue
        cv = float(series.std() / series.mean())
        scores.append(1.0 / (1.0 + cv_scale * cv))

    return float(np.mean(scores)) if scores else 0.0


def healthy(final: float, initial: float, extinction_threshold: float, runaway_multiplier: float) -> bool:
    """Population neither extinct nor past runaway growth"""
    return extinction_threshold <= final <= runaway_multiplier * initial


def sustainability_rating(trajectory: Trajectory, extinction_threshold: float, runaway_multiplier: float) -> float:
    """Fraction of species whose final population sits in the healthy band"""
    species_ids = trajectory.species_ids
    if not species_ids:
        return 0.0

    healthy_count = sum(
        1 for sid in species_ids
        if healthy(trajectory.final.populations[sid], trajectory.initial_populations[sid],
                   extinction_threshold, runaway_multiplier)
    )
    return healthy_count / len(species_ids)


def trophic_efficiency(trajectory: Trajectory) -> float:
    """Energy assimilated by consumers and decomposers per unit of primary production, normalized"""
    produced = 0.0
    retained = 0.0
    for snap in trajectory.snapshots[1:]:
        for species_id, intake in snap.energy_intake.items():
            if trajectory.species_types[species_id] == SpeciesType.PRODUCER:
                produced += intake
            else:
                retained += intake

    if produced <= 0:
        return 0.0

    ratio = retained / produced
    return float(min(1.0, ratio / TROPHIC_REFERENCE_RATIO))


def environment_score(trajectory: Trajectory) -> float:
    """Mean environmental suitability across species; 1.0 when none was recorded"""
    if not trajectory.suitability:
        return 1.0
    return float(np.clip(np.mean(list(trajectory.suitability.values())), 0.0, 1.0))


def population_trends(trajectory: Trajectory) -> Tuple[PopulationTrend, ...]:
    """First-to-last movement of every species, in submission order"""
    trends: List[PopulationTrend] = []
    for species_id in trajectory.species_ids:
        initial = trajectory.initial_populations[species_id]
        final = trajectory.final.populations[species_id]
        change = (final - initial) / initial if initial > 0 else 0.0

        if final <= 0:
            direction = TrendDirection.EXTINCT
        elif change > TREND_TOLERANCE:
            direction = TrendDirection.GROWING
        elif change < -TREND_TOLERANCE:
            direction = TrendDirection.DECLINING
        else:
            direction = TrendDirection.STABLE

        trends.append(PopulationTrend(
            species_id=species_id,
            initial=initial,
            final=final,
            change=change,
            direction=direction,
        ))
    return tuple(trends)


def compute_metrics(trajectory: Trajectory, config: Optional[EngineConfig] = None) -> Metrics:
    """
    Compute all metrics for a trajectory.

    Args:
        trajectory: Output of simulator.simulate()
        config: Engine config (defaults used if None)

    Returns:
        Metrics with every scalar in [0, 1]
    """
    if config is None:
        config = EngineConfig()

    if not isinstance(trajectory, Trajectory):
        raise TypeError(f"compute_metrics requires a Trajectory, got {type(trajectory).__name__}")

    return Metrics(
        biodiversity_index=biodiversity_index(trajectory),
        stability_score=stability_score(trajectory, config.stability_window, config.stability_cv_scale),
        sustainability_rating=sustainability_rating(
            trajectory, config.extinction_threshold, config.runaway_multiplier),
        trophic_efficiency=trophic_efficiency(trajectory),
        population_trends=population_trends(trajectory),
        environment_score=environment_score(trajectory),
    )


def compute_score(metrics: Metrics, config: Optional[EngineConfig] = None) -> Tuple[float, ScoreBreakdown]:
    """
    Combine metrics into the 0-100 score.

    Returns:
        (score, breakdown) where breakdown holds each weighted component
    """
    if config is None:
        config = EngineConfig()

    weights = config.score_weights
    total_weight = sum(weights.values())
    if total_weight <= 0:
        raise ValueError("score weights must sum to a positive value")

    balance = (metrics.biodiversity_index + metrics.trophic_efficiency) / 2.0

    breakdown = ScoreBreakdown(
        balance=100.0 * weights['balance'] * balance / total_weight,
        survival=100.0 * weights['survival'] * metrics.sustainability_rating / total_weight,
        stability=100.0 * weights['stability'] * metrics.stability_score / total_weight,
    )

    score = breakdown.balance + breakdown.survival + breakdown.stability
    score = round(float(np.clip(score, 0.0, 100.0)), 1)
    return score, breakdown
