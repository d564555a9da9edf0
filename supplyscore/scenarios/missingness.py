"""Missing-data simulation and imputation for the S3 scenario.

Works on canonical metric vectors (DerivedMetrics), so the candidate set is
the same regardless of which raw field names a record used. Missingness is
MCAR: one Bernoulli trial per supplier per candidate metric, drawn from a
seeded ``numpy.random.Generator``.

Only the cells nulled by the simulation are imputed here; gaps already in
the source data keep going through the scorer's band-average imputation,
exactly as they do in the baseline.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from supplyscore.scenarios.statistics import knn_impute
from supplyscore.scoring.metrics import DerivedMetrics

MissingMask = frozenset[str]


def inject_missingness(
    items: Sequence[DerivedMetrics],
    metrics: Sequence[str],
    missing_pct: float,
    rng: np.random.Generator,
) -> tuple[list[DerivedMetrics], list[MissingMask]]:
    """Null out each (supplier, metric) cell with probability missing_pct/100.

    A trial is drawn for every cell so the random stream does not depend on
    which values happen to be present. Returns the new vectors and, per
    supplier, the observed metrics that were nulled.
    """
    p = missing_pct / 100
    draws = rng.random((len(items), len(metrics)))
    out: list[DerivedMetrics] = []
    masks: list[MissingMask] = []
    for i, item in enumerate(items):
        nulled = frozenset(
            metric
            for j, metric in enumerate(metrics)
            if draws[i, j] < p and item.values.get(metric) is not None
        )
        masks.append(nulled)
        out.append(item.with_values({m: None for m in nulled}) if nulled else item)
    return out, masks


def _mean(values: list[float]) -> float | None:
    return float(np.mean(values)) if values else None


def impute_industry_mean(
    items: Sequence[DerivedMetrics],
    masks: Sequence[MissingMask],
    metrics: Sequence[str],
) -> list[DerivedMetrics]:
    """Fill masked cells with the industry mean of observed values.

    Falls back to the population mean, and leaves the cell empty when no
    supplier observes the metric.
    """
    by_industry: dict[str, dict[str, list[float]]] = {}
    population: dict[str, list[float]] = {m: [] for m in metrics}
    for item in items:
        bucket = by_industry.setdefault(item.industry, {m: [] for m in metrics})
        for metric in metrics:
            value = item.values.get(metric)
            if value is not None:
                bucket[metric].append(value)
                population[metric].append(value)

    population_means = {m: _mean(v) for m, v in population.items()}
    out: list[DerivedMetrics] = []
    for item, mask in zip(items, masks):
        updates: dict[str, float | None] = {}
        for metric in mask:
            fill = _mean(by_industry[item.industry][metric])
            if fill is None:
                fill = population_means[metric]
            if fill is not None:
                updates[metric] = fill
        out.append(item.with_values(updates) if updates else item)
    return out


def impute_knn(
    items: Sequence[DerivedMetrics],
    masks: Sequence[MissingMask],
    metrics: Sequence[str],
    k: int = 5,
) -> list[DerivedMetrics]:
    """Fill masked cells with the mean of the k nearest suppliers.

    Every imputation reads the post-missingness snapshot, so results do not
    depend on the order cells are filled in.
    """
    snapshot = [{m: item.values.get(m) for m in metrics} for item in items]
    out: list[DerivedMetrics] = []
    for i, (item, mask) in enumerate(zip(items, masks)):
        updates: dict[str, float | None] = {}
        for metric in mask:
            fill = knn_impute(snapshot, i, metric, metrics, k)
            if fill is not None:
                updates[metric] = fill
        out.append(item.with_values(updates) if updates else item)
    return out
