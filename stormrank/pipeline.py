"""
Pipeline (STORMRANK core)
=========================

This is the heart of the project. One run goes through fixed stages:

1) load      -> ensure the CSV is on disk, read it
2) project   -> list of EventRecord (seven fields per row)
3) normalize -> list of ScaledRecord (damage in US$, health/damage derived)
4) aggregate -> dict of category -> CategoryAggregate
5) rank      -> six top-N lists, one per metric
6) report    -> charts, narrative, DOCX (optional, done by the caller)

Every stage consumes the previous stage's complete output and returns a
new structure. If a stage fails, a StageError names it.
"""

from __future__ import annotations
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence
import logging

from .aggregate import aggregate, count_empty, totals
from .errors import StageError, StormRankError
from .loader import DATASET_URL, DEFAULT_CSV_PATH, ensure_dataset, project_records, read_raw_records
from .models import CategoryAggregate, EventRecord, ScaledRecord
from .rank import TOP_N, rank_all
from .units import scale_records

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StormAnalysis:
    """Everything a report needs: the records and what was derived from them."""
    records: List[EventRecord]
    scaled: List[ScaledRecord]
    aggregates: Dict[str, CategoryAggregate]
    rankings: Dict[str, List[CategoryAggregate]]
    empty_records: int
    source: Optional[Path] = None


@contextmanager
def stage(name: str) -> Iterator[None]:
    """Wrap the errors of one stage into a StageError naming it."""
    logger.debug("Stage %s started", name)
    try:
        yield
    except StageError:
        raise
    except (StormRankError, OSError, ValueError, KeyError) as e:
        raise StageError(name, str(e)) from e


def analyze_records(records: Sequence[EventRecord], top_n: int = TOP_N,
                    source: Optional[Path] = None) -> StormAnalysis:
    """Run normalize -> aggregate -> rank over already projected records."""
    records = list(records)
    with stage("normalize"):
        scaled = scale_records(records)
    with stage("aggregate"):
        aggregates = aggregate(scaled)
        grand = totals(aggregates.values())
        logger.info("Totals: %s", ", ".join(f"{k}={v:,.0f}" for k, v in grand.items()))
        empty = count_empty(scaled)
        if empty:
            logger.warning("%s of %s records report no casualties and no damage",
                           f"{empty:,}", f"{len(scaled):,}")
    with stage("rank"):
        rankings = rank_all(aggregates, top_n)
    return StormAnalysis(
        records=records,
        scaled=scaled,
        aggregates=aggregates,
        rankings=rankings,
        empty_records=empty,
        source=source,
    )


def run(csv_path=DEFAULT_CSV_PATH, url: str = DATASET_URL, top_n: int = TOP_N) -> StormAnalysis:
    """Full batch run from file (or URL) to rankings."""
    with stage("load"):
        path = ensure_dataset(csv_path, url)
        df = read_raw_records(path)
    with stage("project"):
        records = project_records(df)
    logger.info("Projected %s records", f"{len(records):,}")
    return analyze_records(records, top_n=top_n, source=path)
