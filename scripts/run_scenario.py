"""Run one supplier-scoring scenario (S1-S4) from the command line.

Reads suppliers from a JSON array (or ``{"suppliers": [...]}``) or a
headered CSV, builds the band context from the configured dataset/bands
paths, and prints the scenario statistics and ranking.

Usage:
    python -m scripts.run_scenario s1 data/suppliers.json --margin-min 40
    python -m scripts.run_scenario s2 data/suppliers.json --perturbation -0.2
    python -m scripts.run_scenario s3 data/suppliers.csv --missing-pct 10 --imputation knn
    python -m scripts.run_scenario s4 data/suppliers.json --bands data/bands_v1.json
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from supplyscore.config.settings import get_settings
from supplyscore.observability.logging import configure_logging
from supplyscore.scenarios.models import (
    AblationResult,
    MissingnessResult,
    ScenarioResult,
    ScenarioType,
    SensitivityResult,
    UtilityResult,
)
from supplyscore.scenarios.ranking import Ranking
from supplyscore.scoring.bands import load_band_context, read_records_csv
from supplyscore.scoring.config import ScoringSettings
from supplyscore.service import ScoringService


def load_suppliers(path: Path) -> list[dict[str, object]]:
    """Load raw supplier records from JSON or CSV.

    Raises:
        ValueError: If a JSON file is not a list of objects.
    """
    if path.suffix.lower() == ".csv":
        return read_records_csv(path)

    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("suppliers")
    if not isinstance(data, list) or not all(isinstance(r, dict) for r in data):
        msg = f"{path.name} must contain a list of supplier objects"
        raise ValueError(msg)
    return data


def load_scoring_settings(path: Path | None) -> ScoringSettings:
    if path is None:
        return ScoringSettings()
    with path.open("r", encoding="utf-8") as f:
        return ScoringSettings.model_validate(json.load(f))


def build_params(args: argparse.Namespace) -> dict[str, object]:
    """Collect only the scenario flags the user actually set."""
    scenario = ScenarioType(args.scenario)
    candidates: dict[ScenarioType, dict[str, object]] = {
        ScenarioType.S1: {
            "margin_min": args.margin_min,
            "margin_mode": args.margin_mode,
            "order": args.order,
        },
        ScenarioType.S2: {"perturbation": args.perturbation, "target": args.target},
        ScenarioType.S3: {
            "missing_pct": args.missing_pct,
            "imputation": args.imputation,
            "k": args.k,
            "seed": args.seed,
        },
        ScenarioType.S4: {"use_industry_bands": args.use_industry_bands},
    }
    return {k: v for k, v in candidates[scenario].items() if v is not None}


def _print_ranking(title: str, rankings: list[Ranking], limit: int) -> None:
    print()
    print(f"  {title}")
    print(f"  {'Rank':>4}  {'Supplier':<24} {'Industry':<18} {'Final':>7}")
    print(f"  {'----':>4}  {'-' * 24:<24} {'-' * 18:<18} {'-------':>7}")
    for r in rankings[:limit]:
        row = r.export_row()
        label = (r.name or r.id)[:24]
        print(f"  {r.rank:>4}  {label:<24} {r.industry[:18]:<18} {row['Final Score']:>7}")


def _print_stats(result: ScenarioResult) -> None:
    print()
    if isinstance(result, UtilityResult):
        print(f"  Threshold:            {result.threshold:.2f}")
        print(f"  Kept / excluded:      {len(result.ranking)} / {len(result.excluded_ids)}")
        print(f"  Delta objective:      {result.delta_objective_pct:+.2f}%")
        if result.baseline_mean_emission_intensity is not None:
            print(f"  Mean emission int.:   {result.baseline_mean_emission_intensity:.6f} (baseline)")
        if result.constrained_mean_emission_intensity is not None:
            print(f"                        {result.constrained_mean_emission_intensity:.6f} (constrained)")
    elif isinstance(result, SensitivityResult):
        print(f"  Perturbation:         {result.perturbation:+.2%} ({result.target.value})")
        print(f"  Kendall tau:          {result.kendall_tau:.4f}")
        print(f"  Mean / max shift:     {result.rank_shifts.mean_shift:.2f} / {result.rank_shifts.max_shift}")
    elif isinstance(result, MissingnessResult):
        print(f"  Missing:              {result.missing_pct:.1f}% ({result.imputation.value}, seed {result.seed})")
        print(f"  Cells nulled:         {result.nulled_cells}")
        print(f"  Top-3 preservation:   {result.top3_preservation:.2f}%")
        print(f"  MAE (final score):    {result.mae:.4f}")
    elif isinstance(result, AblationResult):
        print(f"  Industry bands:       {'on' if result.use_industry_bands else 'off'}")
        print(f"  Kendall tau:          {result.kendall_tau:.4f}")
        print(f"  Disparity D:          {result.disparity.d:.4f} (baseline {result.baseline_disparity.d:.4f})")


def main(argv: list[str] | None = None) -> int:
    """Run a scenario and print its report. Returns the exit code."""
    parser = argparse.ArgumentParser(description="Run a supplier scoring scenario")
    parser.add_argument("scenario", choices=[s.value for s in ScenarioType])
    parser.add_argument("suppliers", type=Path, help="Supplier records (JSON or CSV)")
    parser.add_argument("--dataset", type=Path, default=None, help="Reference dataset CSV")
    parser.add_argument("--bands", type=Path, default=None, help="Precomputed bands JSON")
    parser.add_argument("--settings", type=Path, default=None, help="Scoring settings JSON")
    parser.add_argument("--top", type=int, default=10, help="Rows of ranking to print")
    # S1
    parser.add_argument("--margin-min", type=float, default=None)
    parser.add_argument("--margin-mode", choices=["absolute", "relative_to_max"], default=None)
    parser.add_argument("--order", choices=["final_score", "emission_intensity"], default=None)
    # S2
    parser.add_argument("--perturbation", type=float, default=None)
    parser.add_argument("--target", choices=["final_score", "environmental_weight"], default=None)
    # S3
    parser.add_argument("--missing-pct", type=float, default=None)
    parser.add_argument("--imputation", choices=["industry_mean", "knn"], default=None)
    parser.add_argument("--k", type=int, default=None)
    parser.add_argument("--seed", type=int, default=None)
    # S4
    bands_toggle = parser.add_mutually_exclusive_group()
    bands_toggle.add_argument("--industry-bands", dest="use_industry_bands", action="store_true", default=None)
    bands_toggle.add_argument("--global-bands", dest="use_industry_bands", action="store_false")
    args = parser.parse_args(argv)

    app_settings = get_settings()
    log = configure_logging(app_settings)
    if args.seed is None and args.scenario == ScenarioType.S3.value:
        args.seed = app_settings.SCENARIO_SEED

    dataset = args.dataset or Path(app_settings.DATASET_PATH)
    bands_path = args.bands or Path(app_settings.BANDS_PATH)

    try:
        suppliers = load_suppliers(args.suppliers)
        settings = load_scoring_settings(args.settings)
        bands = load_band_context(dataset, bands_path)
        service = ScoringService(bands=bands, settings=settings)
        result = service.run_scenario(suppliers, args.scenario, build_params(args))
    except (OSError, ValueError) as exc:
        log.error("scenario_failed", scenario=args.scenario, error=str(exc))
        print(f"error: {exc}", file=sys.stderr)
        return 1

    log.info(
        "scenario_complete",
        scenario=result.scenario.value,
        run_id=str(result.run_id),
        ranked=len(result.ranking),
        failures=len(result.failures),
    )

    w = 60
    print("=" * w)
    print(f"  Scenario {result.scenario.value.upper()}  run {result.run_id}")
    print(f"  Bands: {bands.meta.source.value} ({bands.meta.version})")
    print("=" * w)
    _print_stats(result)
    _print_ranking("Baseline", result.baseline, args.top)
    _print_ranking("Scenario", result.ranking, args.top)

    if result.failures:
        print()
        print(f"  Failures ({len(result.failures)}):")
        for failure in result.failures:
            print(f"    ! {failure.supplier_id}: {failure.message}")
    print()
    print("=" * w)
    return 0


if __name__ == "__main__":
    sys.exit(main())
