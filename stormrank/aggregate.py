"""
Aggregation (category -> CategoryAggregate)
===========================================

One pass over the scaled records. Each record is added into the bucket of
its event category; a bucket is created, zeroed, the first time its
category is seen.

Buckets live in a plain dict, so iteration order is first-seen order.
The ranker relies on that order to break ties the same way on every run.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Iterable, List
import csv
import json
import logging

from .models import CategoryAggregate, ScaledRecord, Number

logger = logging.getLogger(__name__)

SUM_FIELDS = ("fatalities", "injuries", "property_damage", "crop_damage", "health", "damage")


@dataclass
class _Bucket:
    """Mutable running totals for one category (internal)."""
    fatalities: Number = 0
    injuries: Number = 0
    property_damage: Number = 0
    crop_damage: Number = 0
    health: Number = 0
    damage: Number = 0
    events: int = 0

    def add(self, r: ScaledRecord) -> None:
        self.fatalities += r.fatalities
        self.injuries += r.injuries
        self.property_damage += r.property_damage
        self.crop_damage += r.crop_damage
        self.health += r.health
        self.damage += r.damage
        self.events += 1


def aggregate(records: Iterable[ScaledRecord]) -> Dict[str, CategoryAggregate]:
    """Group records by category and sum every numeric field.

    Returns:
        dict of category -> CategoryAggregate, in first-seen order.
    """
    buckets: Dict[str, _Bucket] = {}
    for r in records:
        b = buckets.get(r.category)
        if b is None:
            b = buckets[r.category] = _Bucket()
        b.add(r)

    out = {
        cat: CategoryAggregate(
            category=cat,
            fatalities=b.fatalities,
            injuries=b.injuries,
            property_damage=b.property_damage,
            crop_damage=b.crop_damage,
            health=b.health,
            damage=b.damage,
            events=b.events,
        )
        for cat, b in buckets.items()
    }
    logger.info("Aggregated %d event categories", len(out))
    return out


def totals(rows: Iterable) -> Dict[str, Number]:
    """Sum SUM_FIELDS over records or aggregates.

    Summing the records and summing the aggregates must give the same totals.
    """
    acc: Dict[str, Number] = {f: 0 for f in SUM_FIELDS}
    for r in rows:
        for f in SUM_FIELDS:
            acc[f] += getattr(r, f)
    return acc


def count_empty(records: Iterable[ScaledRecord]) -> int:
    """Number of records with no casualties and no damage at all."""
    return sum(1 for r in records if not r.health and not r.damage)


def export_aggregates(aggregates: Dict[str, CategoryAggregate], path: str) -> None:
    """Write all aggregates to CSV or JSON, chosen by file suffix."""
    fields = ["category", "events", *SUM_FIELDS]
    rows: List[CategoryAggregate] = list(aggregates.values())
    if path.lower().endswith(".json"):
        payload = [{f: getattr(a, f) for f in fields} for a in rows]
        with open(path, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)
    elif path.lower().endswith(".csv"):
        with open(path, "w", newline="", encoding="utf-8") as f:
            w = csv.writer(f)
            w.writerow(fields)
            for a in rows:
                w.writerow([getattr(a, fld) for fld in fields])
    else:
        raise ValueError("export path must end in .csv or .json")
    logger.info("Exported %d categories to %s", len(rows), path)
