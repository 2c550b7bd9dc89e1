"""
Data model (EventRecord / ScaledRecord / CategoryAggregate)
==========================================================

Each row of the storm CSV is projected into an `EventRecord`. The
normalizer turns it into a `ScaledRecord` (damage in raw US$, plus the
two derived metrics), and the aggregator folds those into one
`CategoryAggregate` per event category.

All records are immutable (`frozen=True`): every stage builds a new list
or mapping instead of editing the previous one.
"""

from dataclasses import dataclass
from typing import Union

Number = Union[int, float]

# Ranking metrics, in report order (health panel first, then economic).
METRICS = ("health", "injuries", "fatalities", "damage", "property_damage", "crop_damage")

METRIC_LABELS = {
    "health": "Fatalities + Injuries",
    "injuries": "Injuries",
    "fatalities": "Fatalities",
    "damage": "Total Damage (US$)",
    "property_damage": "Property Damage (US$)",
    "crop_damage": "Crop Damage (US$)",
}


@dataclass(frozen=True)
class EventRecord:
    """The seven fields kept from one raw storm row."""
    category: str
    fatalities: Number
    injuries: Number
    # amounts as reported, scaled by the unit code later
    property_damage: Number
    property_unit: str
    crop_damage: Number
    crop_unit: str


@dataclass(frozen=True)
class ScaledRecord:
    category: str
    fatalities: Number
    injuries: Number
    # stored in US$
    property_damage: Number
    crop_damage: Number
    health: Number
    damage: Number


@dataclass(frozen=True)
class CategoryAggregate:
    """Sums over every ScaledRecord sharing one event category."""
    category: str
    fatalities: Number
    injuries: Number
    property_damage: Number
    crop_damage: Number
    health: Number
    damage: Number
    # number of records folded into this bucket
    events: int = 0

    def value(self, metric: str) -> Number:
        """Return the summed value of one ranking metric."""
        if metric not in METRICS:
            raise ValueError(f"metric must be one of: {', '.join(METRICS)}")
        return getattr(self, metric)
