#!/usr/bin/env python3
"""
Run the synthetic business scenarios through both attribution models.

Prints, for every scenario, the detected lift and confidence of the full
and simple models next to the outcome the scenario expects.
"""

import argparse
import json
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from influencer_lift.engine import run_full_attribution, run_simple_attribution  # noqa: E402
from influencer_lift.models.attribution import AttributionResult  # noqa: E402
from influencer_lift.models.scenario import TestScenario  # noqa: E402
from influencer_lift.scenarios import generate_test_scenarios  # noqa: E402


def meets_expectation(scenario: TestScenario, result: AttributionResult) -> list[str]:
    """Return the ways a result misses the scenario's expected outcome."""
    expected = scenario.expected
    misses = []

    if expected.lift_pct_range is not None:
        low, high = expected.lift_pct_range
        if not low <= result.lift_pct <= high:
            misses.append(f"lift {result.lift_pct:+.1f}% outside [{low}, {high}]")
    if expected.positive_lift and result.total_lift_revenue <= 0:
        misses.append("no positive lift")
    if expected.min_confidence is not None and result.confidence < expected.min_confidence:
        misses.append(f"confidence {result.confidence.value} below {expected.min_confidence.value}")
    if expected.max_confidence is not None and result.confidence > expected.max_confidence:
        misses.append(f"confidence {result.confidence.value} above {expected.max_confidence.value}")

    return misses


def summarise(result: AttributionResult) -> dict:
    return {
        "lift_pct": round(result.lift_pct, 2),
        "attributed_revenue": round(result.total_attributed_revenue, 2),
        "confidence": result.confidence.value,
        "baseline": result.baseline_method.value,
        "windows": len(result.windows),
    }


def main():
    """Main entry point for the stress test."""
    parser = argparse.ArgumentParser(
        description="Stress-test the attribution engine on synthetic scenarios",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Canonical growing, new and declining scenarios
  python scripts/run_stress_test.py

  # Include the variants and a different seed
  python scripts/run_stress_test.py --variants --seed 7

  # Machine-readable output
  python scripts/run_stress_test.py --json
        """,
    )
    parser.add_argument("--seed", type=int, default=42, help="Scenario seed (default: 42)")
    parser.add_argument(
        "--variants", action="store_true", help="Also run the variant scenarios"
    )
    parser.add_argument("--json", action="store_true", help="Print results as JSON")
    args = parser.parse_args()

    scenarios = generate_test_scenarios(args.seed, include_variants=args.variants)

    report = []
    for scenario in scenarios:
        full = run_full_attribution(scenario.input)
        simple = run_simple_attribution(scenario.input)
        report.append(
            {
                "scenario_id": scenario.scenario_id,
                "injected_lift_pct": scenario.injected_lift_pct,
                "expected": scenario.expected.model_dump(mode="json"),
                "full": summarise(full),
                "simple": summarise(simple),
                "misses": meets_expectation(scenario, full),
            }
        )

    failures = [r for r in report if r["misses"]]

    if args.json:
        print(json.dumps(report, indent=2))
        return 1 if failures else 0

    for entry in report:
        print(f"\n{'=' * 72}")
        print(f"{entry['scenario_id']}  (injected {entry['injected_lift_pct']:+.0f}%)")
        print(f"{'=' * 72}")
        for model in ("full", "simple"):
            s = entry[model]
            print(
                f"  {model:<6}  lift {s['lift_pct']:+7.2f}%  "
                f"attributed {s['attributed_revenue']:>10,.2f}  "
                f"confidence {s['confidence']:<6}  baseline {s['baseline']}"
            )
        if entry["misses"]:
            print("  ❌ " + "; ".join(entry["misses"]))
        else:
            print("  ✅ matches expected outcome")

    print(f"\n{len(report) - len(failures)}/{len(report)} scenarios as expected")
    return 1 if failures else 0


if __name__ == "__main__":
    sys.exit(main())
