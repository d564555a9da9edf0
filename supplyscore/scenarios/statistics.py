"""Statistics for scenario analysis.

Provides:
  kendall_tau(r1, r2) -> float
  mean_absolute_error(a, b) -> float
  mean_absolute_percentage_error(a, b) -> float
  calculate_rank_shifts(r1, r2) -> RankShiftStats
  calculate_disparity(items) -> DisparityStats
  top_k_preservation(original_top, new_top) -> float
  knn_impute(rows, target_index, target_feature, feature_names, k) -> float | None
  knn_impute_matrix(matrix, k) -> np.ndarray

Rankings are any objects with ``id`` and ``rank`` attributes (and
``industry`` for disparity).

Deterministic, no I/O.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Protocol

import numpy as np


class Ranked(Protocol):
    id: str
    rank: int


class RankedInIndustry(Ranked, Protocol):
    industry: str


# ---------------------------------------------------------------------------
# Rank correlation
# ---------------------------------------------------------------------------


def kendall_tau(rankings1: Sequence[Ranked], rankings2: Sequence[Ranked]) -> float:
    """Kendall's tau-a over the ids present in both rankings.

    Tied pairs count as neither concordant nor discordant. Fewer than two
    common ids -> 0.0.
    """
    ranks2 = {r.id: r.rank for r in rankings2}
    common = [(r.rank, ranks2[r.id]) for r in rankings1 if r.id in ranks2]
    n = len(common)
    if n < 2:
        return 0.0

    a = np.array([c[0] for c in common], dtype=np.float64)
    b = np.array([c[1] for c in common], dtype=np.float64)
    iu = np.triu_indices(n, k=1)
    sign = np.sign(np.subtract.outer(a, a)[iu]) * np.sign(np.subtract.outer(b, b)[iu])
    concordant = int(np.sum(sign > 0))
    discordant = int(np.sum(sign < 0))
    return (concordant - discordant) / (n * (n - 1) / 2)


# ---------------------------------------------------------------------------
# Error metrics
# ---------------------------------------------------------------------------


def _paired_arrays(a: Sequence[float], b: Sequence[float]) -> tuple[np.ndarray, np.ndarray]:
    if len(a) != len(b):
        msg = f"Length mismatch: {len(a)} vs {len(b)}"
        raise ValueError(msg)
    return np.asarray(a, dtype=np.float64), np.asarray(b, dtype=np.float64)


def mean_absolute_error(a: Sequence[float], b: Sequence[float]) -> float:
    """MAE; empty input -> 0.0.

    Raises:
        ValueError: If the sequences differ in length.
    """
    actual, predicted = _paired_arrays(a, b)
    if actual.size == 0:
        return 0.0
    return float(np.mean(np.abs(actual - predicted)))


def mean_absolute_percentage_error(a: Sequence[float], b: Sequence[float]) -> float:
    """MAPE in percent; zero actuals divide by 1. Empty input -> 0.0.

    Raises:
        ValueError: If the sequences differ in length.
    """
    actual, predicted = _paired_arrays(a, b)
    if actual.size == 0:
        return 0.0
    denominators = np.where(actual == 0, 1.0, actual)
    return float(100 * np.mean(np.abs(actual - predicted) / np.abs(denominators)))


# ---------------------------------------------------------------------------
# Rank shifts / disparity / top-k
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RankShift:
    id: str
    rank1: int
    rank2: int
    shift: int


@dataclass(frozen=True)
class RankShiftStats:
    mean_shift: float
    max_shift: int
    shifts: list[RankShift] = field(default_factory=list)


def calculate_rank_shifts(
    rankings1: Sequence[Ranked],
    rankings2: Sequence[Ranked],
) -> RankShiftStats:
    """Mean and max |rank1 - rank2| over common ids (order of rankings1)."""
    ranks2 = {r.id: r.rank for r in rankings2}
    shifts = [
        RankShift(id=r.id, rank1=r.rank, rank2=ranks2[r.id], shift=abs(r.rank - ranks2[r.id]))
        for r in rankings1
        if r.id in ranks2
    ]
    if not shifts:
        return RankShiftStats(mean_shift=0.0, max_shift=0)
    values = [s.shift for s in shifts]
    return RankShiftStats(
        mean_shift=sum(values) / len(values),
        max_shift=max(values),
        shifts=shifts,
    )


@dataclass(frozen=True)
class DisparityStats:
    """Disparity D plus the group means it was computed from.

    ``max_gap`` is the spread between the best and worst industry mean
    rank, reported alongside D.
    """

    d: float
    group_means: dict[str, float] = field(default_factory=dict)
    overall_mean: float = 0.0
    max_gap: float = 0.0


def calculate_disparity(items: Sequence[RankedInIndustry]) -> DisparityStats:
    """D = mean over industries of |industry mean rank - overall mean rank|."""
    if not items:
        return DisparityStats(d=0.0)

    by_industry: dict[str, list[int]] = {}
    for item in items:
        by_industry.setdefault(item.industry, []).append(item.rank)

    overall = sum(item.rank for item in items) / len(items)
    group_means = {
        industry: sum(ranks) / len(ranks) for industry, ranks in by_industry.items()
    }
    d = sum(abs(mean - overall) for mean in group_means.values()) / len(group_means)
    means = list(group_means.values())
    return DisparityStats(
        d=d,
        group_means=group_means,
        overall_mean=overall,
        max_gap=max(means) - min(means),
    )


def top_k_preservation(original_top: Sequence[str], new_top: Sequence[str]) -> float:
    """Percentage of original top-k ids still present in the new top-k."""
    if not original_top:
        return 0.0
    original = set(original_top)
    preserved = sum(1 for item in new_top if item in original)
    return preserved / len(original_top) * 100


# ---------------------------------------------------------------------------
# k-nearest-neighbour imputation
# ---------------------------------------------------------------------------


def _rms_distance(
    a: Mapping[str, float | None],
    b: Mapping[str, float | None],
    features: Sequence[str],
) -> float:
    """Root-mean-square difference over pairwise-present features."""
    total = 0.0
    count = 0
    for feature in features:
        v1 = a.get(feature)
        v2 = b.get(feature)
        if v1 is None or v2 is None:
            continue
        total += (v1 - v2) ** 2
        count += 1
    return math.sqrt(total / count) if count else math.inf


def knn_impute(
    rows: Sequence[Mapping[str, float | None]],
    target_index: int,
    target_feature: str,
    feature_names: Sequence[str],
    k: int = 5,
) -> float | None:
    """Mean of the target feature over the k nearest rows that observe it.

    Distance excludes the target feature. Rows with no comparable feature
    are never neighbours. With no finite neighbour the column mean is
    returned, or None when the column is entirely missing.
    """
    if k < 1:
        msg = f"k must be >= 1, got {k}"
        raise ValueError(msg)

    target = rows[target_index]
    features = [f for f in feature_names if f != target_feature]

    candidates: list[tuple[float, float]] = []
    for idx, row in enumerate(rows):
        value = row.get(target_feature)
        if idx == target_index or value is None:
            continue
        distance = _rms_distance(target, row, features)
        if math.isfinite(distance):
            candidates.append((distance, value))

    if candidates:
        candidates.sort(key=lambda c: c[0])
        neighbours = candidates[:k]
        return sum(v for _, v in neighbours) / len(neighbours)

    column = [
        row[target_feature] for row in rows if row.get(target_feature) is not None
    ]
    if not column:
        return None
    return sum(column) / len(column)


def knn_impute_matrix(matrix: np.ndarray, k: int = 5) -> np.ndarray:
    """Fill every NaN cell of a rows x features matrix by kNN.

    All imputations read the input snapshot, never earlier imputations.
    Columns that are entirely NaN stay NaN.
    """
    data = np.asarray(matrix, dtype=np.float64)
    if data.ndim != 2:
        msg = f"Expected a 2-D matrix, got shape {data.shape}"
        raise ValueError(msg)

    features = [str(j) for j in range(data.shape[1])]
    rows = [
        {features[j]: (None if np.isnan(v) else float(v)) for j, v in enumerate(row)}
        for row in data
    ]
    out = data.copy()
    for i, j in zip(*np.where(np.isnan(data))):
        value = knn_impute(rows, int(i), features[j], features, k)
        if value is not None:
            out[i, j] = value
    return out
