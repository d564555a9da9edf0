"""Batch scoring and ordinal ranking of suppliers.

Rankings are 1-based, descending by score; ties keep input order
(``scipy.stats.rankdata(method="ordinal")``). A supplier that fails to
score is logged, recorded as a ScoringFailure and left out of the batch.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field

import numpy as np
from scipy.stats import rankdata

from supplyscore.scoring.metrics import DerivedMetrics, derive_metrics
from supplyscore.scoring.models import ScoreResult
from supplyscore.scoring.scorer import SupplierScorer

logger = logging.getLogger(__name__)

_ID_KEYS = ("id", "_id", "supplier_id", "SupplierID")
_NAME_KEYS = ("name", "SupplierName", "Name")


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SupplierRecord:
    """A raw record with its resolved identity."""

    id: str
    name: str
    record: Mapping[str, object]


@dataclass(frozen=True)
class ScoredSupplier:
    id: str
    name: str
    industry: str
    derived: DerivedMetrics
    result: ScoreResult

    @property
    def final_score(self) -> float:
        return self.result.final_score


@dataclass(frozen=True)
class ScoringFailure:
    supplier_id: str
    name: str
    message: str


@dataclass(frozen=True)
class Ranking:
    id: str
    name: str
    industry: str
    score: float
    rank: int
    result: ScoreResult | None = None

    def export_row(self) -> dict[str, str]:
        """Row for tabular export with scores rendered to 2 decimals."""
        row = {
            "SupplierID": self.id,
            "Rank": str(self.rank),
            "Name": self.name,
            "Industry": self.industry,
        }
        if self.result is not None:
            row.update({
                "Environmental Score": f"{self.result.environmental_score:.2f}",
                "Social Score": f"{self.result.social_score:.2f}",
                "Governance Score": f"{self.result.governance_score:.2f}",
                "Composite Score": f"{self.result.composite_score:.2f}",
                "Risk Penalty": f"{self.result.risk_penalty or 0.0:.2f}",
            })
        row["Final Score"] = f"{self.score:.2f}"
        return row


@dataclass(frozen=True)
class BatchScores:
    scored: list[ScoredSupplier] = field(default_factory=list)
    failures: list[ScoringFailure] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------------


def _first_text(record: Mapping[str, object], keys: tuple[str, ...]) -> str | None:
    for key in keys:
        value = record.get(key)
        if value is not None and str(value).strip():
            return str(value)
    return None


def identify_records(records: Sequence[Mapping[str, object]]) -> list[SupplierRecord]:
    """Resolve id/name for each record; ids fall back to ``supplier-<n>``.

    A repeated id gets a ``#<n>`` suffix so rankings matched by id never
    pair two suppliers with one score.
    """
    identified = []
    seen: set[str] = set()
    for index, record in enumerate(records, start=1):
        supplier_id = _first_text(record, _ID_KEYS) or f"supplier-{index}"
        if supplier_id in seen:
            suffix = 2
            while f"{supplier_id}#{suffix}" in seen:
                suffix += 1
            unique_id = f"{supplier_id}#{suffix}"
            logger.warning(
                "Duplicate supplier id %s at record %d; using %s",
                supplier_id, index, unique_id,
            )
            supplier_id = unique_id
        seen.add(supplier_id)
        name = _first_text(record, _NAME_KEYS) or ""
        identified.append(SupplierRecord(id=supplier_id, name=name, record=record))
    return identified


# ---------------------------------------------------------------------------
# Scoring + ranking
# ---------------------------------------------------------------------------


def score_derived_batch(
    items: Sequence[tuple[SupplierRecord, DerivedMetrics]],
    scorer: SupplierScorer,
) -> BatchScores:
    """Score already-derived metric vectors, capturing per-supplier failures."""
    scored: list[ScoredSupplier] = []
    failures: list[ScoringFailure] = []
    for supplier, derived in items:
        try:
            result = scorer.score_derived(derived).to_result()
        except Exception as exc:
            logger.exception("Scoring failed for supplier %s: %s", supplier.id, exc)
            failures.append(
                ScoringFailure(supplier_id=supplier.id, name=supplier.name, message=str(exc))
            )
            continue
        scored.append(
            ScoredSupplier(
                id=supplier.id,
                name=supplier.name,
                industry=derived.industry,
                derived=derived,
                result=result,
            )
        )
    return BatchScores(scored=scored, failures=failures)


def derive_batch(
    suppliers: Sequence[SupplierRecord],
) -> tuple[list[tuple[SupplierRecord, DerivedMetrics]], list[ScoringFailure]]:
    """Derive metric vectors; a record that cannot be read becomes a failure."""
    derived: list[tuple[SupplierRecord, DerivedMetrics]] = []
    failures: list[ScoringFailure] = []
    for supplier in suppliers:
        try:
            derived.append((supplier, derive_metrics(supplier.record)))
        except Exception as exc:
            logger.exception("Could not read supplier %s: %s", supplier.id, exc)
            failures.append(
                ScoringFailure(supplier_id=supplier.id, name=supplier.name, message=str(exc))
            )
    return derived, failures


def score_batch(
    suppliers: Sequence[SupplierRecord],
    scorer: SupplierScorer,
) -> BatchScores:
    derived, failures = derive_batch(suppliers)
    batch = score_derived_batch(derived, scorer)
    return BatchScores(scored=batch.scored, failures=failures + batch.failures)


def rank_scores(
    scored: Sequence[ScoredSupplier],
    score_of: Callable[[ScoredSupplier], float] | None = None,
) -> list[Ranking]:
    """Rank suppliers descending by score, returned in rank order.

    ``score_of`` defaults to the final score; S2 passes perturbed scores.
    """
    if not scored:
        return []
    score_of = score_of or (lambda s: s.final_score)
    scores = np.array([score_of(s) for s in scored], dtype=np.float64)
    ranks = rankdata(-scores, method="ordinal").astype(int)

    rankings = [
        Ranking(
            id=s.id,
            name=s.name,
            industry=s.industry,
            score=float(score),
            rank=int(rank),
            result=s.result,
        )
        for s, score, rank in zip(scored, scores, ranks)
    ]
    rankings.sort(key=lambda r: r.rank)
    return rankings


def rank_in_order(ordered: Sequence[ScoredSupplier]) -> list[Ranking]:
    """Rank suppliers 1..n in the given order, scored by final score."""
    return [
        Ranking(
            id=s.id,
            name=s.name,
            industry=s.industry,
            score=s.final_score,
            rank=rank,
            result=s.result,
        )
        for rank, s in enumerate(ordered, start=1)
    ]


def top_ids(rankings: Sequence[Ranking], k: int) -> list[str]:
    return [r.id for r in sorted(rankings, key=lambda r: r.rank)[:k]]
