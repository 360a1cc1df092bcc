"""
Evaluate the bundled scenarios and print scores, metrics, and feedback.

Usage:
    python scripts/run_scenarios.py                 # every scenario in data/scenarios
    python scripts/run_scenarios.py kelp_forest     # selected scenarios by file stem
"""

import sys
import time
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from ecosim.config import load_config
from ecosim.evaluator import Evaluator
from ecosim.loader import load_scenario_registry


DATA_ROOT = Path(__file__).parent.parent / "data"


def print_run(name: str, run):
    print(f"[{name}] {run.phase.value} in {run.elapsed_ms:.1f}ms")

    if run.error is not None:
        print(f"  [FAIL] {run.error.to_dict()}")
        return

    result = run.result
    print(f"  Score: {result.score:.1f} "
          f"(balance={result.breakdown.balance:.1f}, survival={result.breakdown.survival:.1f}, "
          f"stability={result.breakdown.stability:.1f})")
    for metric, value in result.metrics.values().items():
        print(f"    {metric:<22} {value:.3f}")
    for trend in result.metrics.population_trends:
        print(f"    {trend.species_id:<22} {trend.initial:8.1f} -> {trend.final:8.1f}  {trend.direction.value}")
    for entry in result.feedback:
        print(f"  [WARN] {entry.area} {entry.current_value:.3f} < {entry.target_value:.3f}: {entry.message}")
    print(f"  {result.summary}")


def main():
    print("=" * 80)
    print("Ecosystem Scenario Evaluation")
    print("=" * 80)
    print()

    config = load_config(DATA_ROOT / "config" / "engine.yaml")
    registry = load_scenario_registry(DATA_ROOT / "scenarios")

    selected = sys.argv[1:] or list(registry)
    unknown = [name for name in selected if name not in registry]
    if unknown:
        print(f"[FAIL] Unknown scenarios: {', '.join(unknown)} (available: {', '.join(registry)})")
        sys.exit(1)

    evaluator = Evaluator(config)
    summary = []

    start = time.perf_counter()
    for name in selected:
        run = evaluator.run(registry[name])
        print_run(name, run)
        print()
        summary.append((name, run))
    total_ms = (time.perf_counter() - start) * 1000.0

    print("=" * 80)
    print("| Scenario        | Outcome    | Score |")
    print("|-----------------|------------|-------|")
    for name, run in summary:
        score = f"{run.result.score:5.1f}" if run.result else "    -"
        print(f"| {name:<15} | {run.phase.value:<10} | {score} |")
    print()
    print(f"{len(summary)} scenarios in {total_ms:.1f}ms")
    print("=" * 80)


if __name__ == '__main__':
    main()
