"""Band statistics: per-industry and global min/max/avg for every metric.

A BandContext is built once (from a reference dataset, a precomputed bands
document, or both) and passed explicitly to every scoring call. It is never
mutated after construction.

Provides:
  Band, DatasetMeta, BandContext
  BandContext.from_records(rows) -> BandContext
  BandContext.from_document(doc) -> BandContext
  read_records_csv(path) -> list[dict]
  load_band_context(dataset_path, bands_path) -> BandContext
"""

from __future__ import annotations

import csv
import json
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

import numpy as np

from supplyscore.models.common import BandSource
from supplyscore.scoring.metrics import METRIC_KEYS, derive_metrics, to_number

logger = logging.getLogger(__name__)

# Degenerate bands (min == max) are widened by this much on each side.
BAND_EPSILON = 1e-4

DEFAULT_AVERAGE = 0.5
DEFAULT_DATASET_VERSION = "synthetic-v1"
DEFAULT_BANDS_VERSION = "v1"

_DOCUMENT_META_KEYS = frozenset({"seed", "generatedAt", "version", "bandsVersion"})


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Band:
    """Closed interval [min, max] with an optional average.

    Never degenerate: a band built with min == max is widened by
    BAND_EPSILON on both sides.
    """

    min: float
    max: float
    avg: float | None = None

    def __post_init__(self) -> None:
        if self.min > self.max:
            msg = f"Band min ({self.min}) must be <= max ({self.max})"
            raise ValueError(msg)
        if self.min == self.max:
            object.__setattr__(self, "min", self.min - BAND_EPSILON)
            object.__setattr__(self, "max", self.max + BAND_EPSILON)

    @property
    def width(self) -> float:
        return self.max - self.min

    @property
    def midpoint(self) -> float:
        return (self.min + self.max) / 2


DEFAULT_BAND = Band(0.0, 1.0)


@dataclass(frozen=True)
class DatasetMeta:
    """Provenance of the reference data. Reported, never used in math."""

    version: str = DEFAULT_DATASET_VERSION
    seed: int | str | None = None
    generated_at: str | None = None
    bands_version: str = DEFAULT_BANDS_VERSION
    source: BandSource = BandSource.DEFAULT

    def to_dict(self) -> dict[str, object]:
        return {
            "version": self.version,
            "seed": self.seed,
            "generated_at": self.generated_at,
            "bands_version": self.bands_version,
            "source": self.source.value,
        }


@dataclass(frozen=True)
class BandContext:
    """Read-only band statistics shared by all scoring calls."""

    industry_bands: dict[str, dict[str, Band]] = field(default_factory=dict)
    global_bands: dict[str, Band] = field(default_factory=dict)
    industry_averages: dict[str, dict[str, float]] = field(default_factory=dict)
    global_averages: dict[str, float] = field(default_factory=dict)
    meta: DatasetMeta = field(default_factory=DatasetMeta)

    # ---------------------------------------------------------------
    # Lookups
    # ---------------------------------------------------------------

    def get_band(
        self,
        metric: str,
        industry: str,
        use_industry_bands: bool = True,
    ) -> Band:
        """Industry band (toggle on, observed) -> global band -> [0, 1]."""
        if use_industry_bands:
            band = self.industry_bands.get(industry, {}).get(metric)
            if band is not None:
                return band
        return self.global_bands.get(metric, DEFAULT_BAND)

    def get_average(
        self,
        metric: str,
        industry: str,
        use_industry_bands: bool = True,
    ) -> float:
        """Industry average (toggle on) -> global average -> 0.5."""
        if use_industry_bands:
            avg = self.industry_averages.get(industry, {}).get(metric)
            if avg is not None:
                return avg
        return self.global_averages.get(metric, DEFAULT_AVERAGE)

    @property
    def industries(self) -> list[str]:
        return sorted(self.industry_bands)

    # ---------------------------------------------------------------
    # Constructors
    # ---------------------------------------------------------------

    @classmethod
    def default(cls) -> BandContext:
        """Generic context: every metric on [0, 1] with average 0.5."""
        return cls(
            global_bands={key: DEFAULT_BAND for key in METRIC_KEYS},
            global_averages={key: DEFAULT_AVERAGE for key in METRIC_KEYS},
        )

    @classmethod
    def from_records(
        cls,
        rows: Iterable[Mapping[str, object]],
        meta: DatasetMeta | None = None,
    ) -> BandContext:
        """Aggregate reference rows into per-industry and global statistics.

        Each row goes through derive_metrics, so intensities are computed the
        same way as for scored suppliers.
        """
        by_industry: dict[str, dict[str, list[float]]] = {}
        overall: dict[str, list[float]] = {}

        for row in rows:
            derived = derive_metrics(row)
            bucket = by_industry.setdefault(derived.industry, {})
            for metric in METRIC_KEYS:
                value = derived.values[metric]
                if value is None:
                    continue
                bucket.setdefault(metric, []).append(value)
                overall.setdefault(metric, []).append(value)

        industry_bands: dict[str, dict[str, Band]] = {}
        industry_averages: dict[str, dict[str, float]] = {}
        for industry, metrics in by_industry.items():
            industry_bands[industry] = {}
            industry_averages[industry] = {}
            for metric, values in metrics.items():
                band = _band_from_values(values)
                industry_bands[industry][metric] = band
                industry_averages[industry][metric] = band.avg

        global_bands = {
            metric: _band_from_values(values) for metric, values in overall.items()
        }
        global_averages = {metric: band.avg for metric, band in global_bands.items()}

        return cls(
            industry_bands=industry_bands,
            global_bands=global_bands,
            industry_averages=industry_averages,
            global_averages=global_averages,
            meta=meta or DatasetMeta(source=BandSource.DATASET),
        )

    @classmethod
    def from_document(
        cls,
        doc: Mapping[str, object],
        meta: DatasetMeta | None = None,
    ) -> BandContext:
        """Build a context from a precomputed bands document.

        Accepts ``{seed?, generatedAt?, version?, bands: {industry: {metric:
        {min, max, avg?}}}}`` or the bare ``{industry: {metric: ...}}`` form.
        Global bands are the envelope of the industry bands; global averages
        are the mean of the industry averages (band midpoint when none).

        Raises:
            ValueError: If the document is structurally malformed.
        """
        if not isinstance(doc, Mapping):
            msg = f"Bands document must be an object, got {type(doc).__name__}"
            raise ValueError(msg)

        if "bands" in doc:
            root = doc["bands"]
            if not isinstance(root, Mapping):
                msg = "'bands' must map industries to metric bands"
                raise ValueError(msg)
        else:
            root = {k: v for k, v in doc.items() if k not in _DOCUMENT_META_KEYS}

        industry_bands: dict[str, dict[str, Band]] = {}
        industry_averages: dict[str, dict[str, float]] = {}
        envelopes: dict[str, tuple[float, float]] = {}
        avg_pool: dict[str, list[float]] = {}

        for industry, metrics in root.items():
            if not isinstance(metrics, Mapping):
                msg = f"Industry '{industry}' must map metrics to bands"
                raise ValueError(msg)
            industry_bands[industry] = {}
            industry_averages[industry] = {}
            for metric in METRIC_KEYS:
                entry = metrics.get(metric)
                if entry is None:
                    continue
                if not isinstance(entry, Mapping):
                    msg = f"Band for {industry}/{metric} must be an object"
                    raise ValueError(msg)

                avg = to_number(entry.get("avg"))
                if avg is not None:
                    industry_averages[industry][metric] = avg
                    avg_pool.setdefault(metric, []).append(avg)

                if entry.get("min") is None and entry.get("max") is None:
                    continue
                lo = to_number(entry.get("min"))
                hi = to_number(entry.get("max"))
                if lo is None or hi is None:
                    msg = f"Band for {industry}/{metric} needs numeric min and max"
                    raise ValueError(msg)
                industry_bands[industry][metric] = Band(lo, hi, avg)

                if metric in envelopes:
                    env_lo, env_hi = envelopes[metric]
                    envelopes[metric] = (min(env_lo, lo), max(env_hi, hi))
                else:
                    envelopes[metric] = (lo, hi)

        global_bands = {metric: Band(lo, hi) for metric, (lo, hi) in envelopes.items()}
        global_averages: dict[str, float] = {}
        for metric, band in global_bands.items():
            pool = avg_pool.get(metric)
            global_averages[metric] = float(np.mean(pool)) if pool else band.midpoint

        if meta is None:
            meta = DatasetMeta(
                version=str(doc.get("version", DEFAULT_DATASET_VERSION)),
                seed=doc.get("seed"),
                generated_at=_optional_str(doc.get("generatedAt")),
                bands_version=str(doc.get("bandsVersion", DEFAULT_BANDS_VERSION)),
                source=BandSource.BANDS,
            )

        return cls(
            industry_bands=industry_bands,
            global_bands=global_bands,
            industry_averages=industry_averages,
            global_averages=global_averages,
            meta=meta,
        )


def _band_from_values(values: list[float]) -> Band:
    arr = np.asarray(values, dtype=np.float64)
    return Band(float(arr.min()), float(arr.max()), float(arr.mean()))


def _optional_str(value: object) -> str | None:
    return None if value is None else str(value)


def _mtime_iso(path: Path) -> str:
    return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# File loading
# ---------------------------------------------------------------------------


def _parse_cell(text: str | None) -> object:
    if text is None:
        return None
    text = text.strip()
    if not text:
        return None
    lowered = text.lower()
    if lowered == "true":
        return True
    if lowered == "false":
        return False
    return text


def read_records_csv(path: str | Path) -> list[dict[str, object]]:
    """Read a headered CSV into raw supplier records.

    Empty cells become None, ``true``/``false`` become booleans, everything
    else stays a string (derive_metrics parses numeric strings).
    """
    path = Path(path)
    with path.open("r", encoding="utf-8-sig", newline="") as f:
        reader = csv.DictReader(f)
        return [
            {key.strip(): _parse_cell(value) for key, value in row.items() if key}
            for row in reader
        ]


def load_band_context(
    dataset_path: str | Path | None,
    bands_path: str | Path | None = None,
) -> BandContext:
    """Build the band context from the reference dataset and bands document.

    The bands document takes precedence over the dataset when both exist.
    Missing files fall back (dataset -> generic [0, 1] ranges) with a
    warning. The context is returned only once fully built.

    Raises:
        ValueError: If the bands document exists but is malformed.
    """
    context = BandContext.default()
    dataset_mtime: str | None = None

    if dataset_path is not None and Path(dataset_path).exists():
        path = Path(dataset_path)
        dataset_mtime = _mtime_iso(path)
        rows = read_records_csv(path)
        context = BandContext.from_records(
            rows,
            meta=DatasetMeta(generated_at=dataset_mtime, source=BandSource.DATASET),
        )
        logger.info(
            "Loaded band statistics from %s (%d rows, %d industries)",
            path.name,
            len(rows),
            len(context.industry_bands),
        )
    else:
        logger.warning(
            "ESG dataset not found at %s; using generic ranges", dataset_path
        )

    if bands_path is not None and Path(bands_path).exists():
        path = Path(bands_path)
        with path.open("r", encoding="utf-8") as f:
            try:
                doc = json.load(f)
            except json.JSONDecodeError as exc:
                msg = f"Bands document {path.name} is not valid JSON: {exc}"
                raise ValueError(msg) from exc
        if not isinstance(doc, dict):
            msg = f"Bands document {path.name} must be a JSON object"
            raise ValueError(msg)

        generated_at = _optional_str(doc.get("generatedAt")) or dataset_mtime
        meta = DatasetMeta(
            version=str(doc.get("version", DEFAULT_DATASET_VERSION)),
            seed=doc.get("seed"),
            generated_at=generated_at or _mtime_iso(path),
            bands_version=str(doc.get("bandsVersion", DEFAULT_BANDS_VERSION)),
            source=BandSource.BANDS,
        )
        context = BandContext.from_document(doc, meta=meta)
        logger.info(
            "Loaded precomputed bands from %s (%d industries)",
            path.name,
            len(context.industry_bands),
        )
    elif bands_path is not None:
        logger.warning(
            "Bands document not found at %s; using %s band statistics",
            bands_path,
            context.meta.source,
        )

    return context
