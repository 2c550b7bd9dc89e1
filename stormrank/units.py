"""
Unit normalization
==================

NOAA reports damage as an amount plus a one-letter exponent code
(PROPDMGEXP / CROPDMGEXP). We map the code to a multiplier and rescale
the amount to raw US$.

Only K, M and B are recognised. Everything else (blank, lowercase,
digits, '+', '?') scales by 1.
"""

from __future__ import annotations
from typing import Dict, Iterable, List
import logging

from .models import EventRecord, ScaledRecord, Number

logger = logging.getLogger(__name__)

UNIT_MULTIPLIERS: Dict[str, int] = {
    "K": 1_000,
    "M": 1_000_000,
    "B": 1_000_000_000,
}


def unit_multiplier(code: str) -> int:
    """Return the multiplier for a unit code (1 when unrecognised)."""
    if code is None:
        return 1
    return UNIT_MULTIPLIERS.get(str(code).strip(), 1)


def scale_amount(amount: Number, code: str) -> Number:
    return amount * unit_multiplier(code)


def scale_record(rec: EventRecord) -> ScaledRecord:
    """Rescale both damage amounts and derive `health` and `damage`."""
    prop = scale_amount(rec.property_damage, rec.property_unit)
    crop = scale_amount(rec.crop_damage, rec.crop_unit)
    return ScaledRecord(
        category=rec.category,
        fatalities=rec.fatalities,
        injuries=rec.injuries,
        property_damage=prop,
        crop_damage=crop,
        health=rec.fatalities + rec.injuries,
        damage=prop + crop,
    )


def scale_records(records: Iterable[EventRecord]) -> List[ScaledRecord]:
    out = [scale_record(r) for r in records]
    logger.info("Scaled damage amounts for %d records", len(out))
    return out
