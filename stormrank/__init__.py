"""
STORMRANK package
=================

This package ranks NOAA storm event categories by their impact on
population health and by their economic consequences.

- The CLI entry point is in `stormrank/cli.py`.
- Dataset fetching, parsing and projection are in `stormrank/loader.py`.
- Unit normalization is in `stormrank/units.py`.
- Grouping and ranking are in `stormrank/aggregate.py` and `stormrank/rank.py`.
- Charts, narrative and the DOCX report are in `stormrank/report.py`.
"""

__version__ = '0.3.0'
