from __future__ import annotations

"""
STORMRANK report generator
--------------------------
This module turns the six top-N rankings into:

- two chart panels (PNG), three bar charts each:
  "population health" (health, injuries, fatalities) and
  "economic consequences" (damage, property damage, crop damage);
- a short narrative per panel naming the top 3 categories;
- a DOCX document bundling both, plus ranking tables.

Design goals:
- Presentation only: no numbers are recomputed here.
- Keep the rest of STORMRANK importable without matplotlib/python-docx
  (lazy imports, like a plugin).
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional, Sequence, Tuple
import logging
import os

from .models import CategoryAggregate, METRIC_LABELS, METRICS

if TYPE_CHECKING:
    from .pipeline import StormAnalysis

logger = logging.getLogger(__name__)

# (panel key, panel title, metrics); the first metric drives the narrative
PANELS: Tuple[Tuple[str, str, Tuple[str, ...]], ...] = (
    ("health", "population health", ("health", "injuries", "fatalities")),
    ("economic", "economic consequences", ("damage", "property_damage", "crop_damage")),
)

MONEY_METRICS = ("damage", "property_damage", "crop_damage")

Rankings = Mapping[str, Sequence[CategoryAggregate]]


# -----------------------------
# Configuration / citation types
# -----------------------------

@dataclass
class DatasetCitation:
    """Minimal dataset citation metadata for the DOCX report."""
    database_name: str = "NOAA Storm Events Database"
    institutional_author: str = "U.S. National Oceanic and Atmospheric Administration (NOAA)"
    website: str = "https://www.ncdc.noaa.gov/stormevents/"
    file_name: Optional[str] = None


@dataclass
class ReportConfig:
    """High-level knobs to control how the report is written."""
    title: str = "Storm Event Impact Report"
    subtitle: str = "Most harmful event types for population health and the economy"
    dataset_name: str = "NOAA storm data (1950-2011)"
    citation: DatasetCitation = field(default_factory=DatasetCitation)

    # How many categories the narrative names per panel
    narrative_top: int = 3

    dpi: int = 150


# -----------------------------
# Formatting helpers
# -----------------------------

def format_value(metric: str, v) -> str:
    if metric in MONEY_METRICS:
        return f"US$ {v:,.0f}"
    return f"{v:,.0f}"


def _phrase(metric: str) -> str:
    return METRIC_LABELS[metric].split(" (")[0].lower()


def _join(names: List[str]) -> str:
    if len(names) <= 1:
        return "".join(names)
    return ", ".join(names[:-1]) + " and " + names[-1]


def _pyplot():
    try:
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
    except ImportError as e:
        raise ImportError(
            "Missing dependency: matplotlib.\n"
            "Install it with: python -m pip install matplotlib"
        ) from e
    return plt


# -----------------------------
# Charts
# -----------------------------

def render_panels(rankings: Rankings, out_dir, *, prefix: str = "panel", dpi: int = 150) -> List[Path]:
    """Draw one PNG per panel, three bar charts side by side.

    Returns:
        paths of the written images, in PANELS order.
    """
    plt = _pyplot()
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    paths: List[Path] = []
    for key, title, metrics in PANELS:
        fig, axes = plt.subplots(1, len(metrics), figsize=(6 * len(metrics), 5.5))
        for ax, metric in zip(axes, metrics):
            rows = rankings.get(metric, [])
            ax.bar([a.category for a in rows], [a.value(metric) for a in rows],
                   color="C0" if key == "health" else "C1")
            ax.set_title(f"Top {len(rows)} event types by {METRIC_LABELS[metric]}")
            ax.set_xlabel("Event type")
            ax.set_ylabel(METRIC_LABELS[metric])
            ax.tick_params(axis="x", labelrotation=45)
            for label in ax.get_xticklabels():
                label.set_horizontalalignment("right")
        fig.suptitle(f"Impact on {title}")
        fig.tight_layout()
        path = out_dir / f"{prefix}_{key}.png"
        fig.savefig(path, dpi=dpi)
        plt.close(fig)
        logger.info("Wrote chart panel %s", path)
        paths.append(path)
    return paths


# -----------------------------
# Narrative
# -----------------------------

def build_narrative(rankings: Rankings, top: int = 3) -> Dict[str, str]:
    """Return one paragraph per panel naming the top `top` categories."""
    out: Dict[str, str] = {}
    for key, title, metrics in PANELS:
        head = metrics[0]
        rows = list(rankings.get(head, []))[:top]
        if not rows:
            out[key] = f"No event types were available to assess {title}."
            continue
        named = [f"{a.category} ({format_value(head, a.value(head))})" for a in rows]
        text = (f"For {title}, the most harmful event "
                f"{'types are' if len(rows) > 1 else 'type is'} {_join(named)}, "
                f"ranked by {_phrase(head)}.")
        leaders = []
        for m in metrics[1:]:
            ranked = rankings.get(m, [])
            if ranked:
                leaders.append(f"{ranked[0].category} leads by {_phrase(m)}")
        if leaders:
            text += " " + "; ".join(leaders) + "."
        out[key] = text
    return out


def format_rankings(rankings: Rankings) -> str:
    """Plain-text tables for the terminal."""
    lines: List[str] = []
    for metric in METRICS:
        rows = rankings.get(metric, [])
        lines.append(f"Top {len(rows)} by {METRIC_LABELS[metric]}:")
        for pos, a in enumerate(rows, 1):
            lines.append(f"  {pos}. {a.category:<30} {format_value(metric, a.value(metric))}")
        lines.append("")
    return "\n".join(lines).rstrip() + "\n"


# -----------------------------
# DOCX report
# -----------------------------

def generate_docx_report(
    analysis: "StormAnalysis",
    out_path: str,
    *,
    config: Optional[ReportConfig] = None,
) -> str:
    """
    Write the DOCX report (and its panel PNGs next to it).

    Returns the report path.
    """
    config = config or ReportConfig()

    try:
        from docx import Document
        from docx.shared import Pt, Inches
        from docx.enum.text import WD_ALIGN_PARAGRAPH
    except ImportError as e:
        raise ImportError(
            "Missing dependency: python-docx.\n"
            "Install it with: python -m pip install python-docx"
        ) from e

    out_dir = os.path.dirname(out_path) or "."
    os.makedirs(out_dir, exist_ok=True)
    stem = Path(out_path).stem
    panel_paths = render_panels(analysis.rankings, out_dir, prefix=stem, dpi=config.dpi)
    narrative = build_narrative(analysis.rankings, top=config.narrative_top)

    doc = Document()
    style = doc.styles["Normal"]
    style.font.name = "Calibri"
    style.font.size = Pt(11)

    def _center_title(text: str, size: int, bold: bool = False, italic: bool = False) -> None:
        p = doc.add_paragraph()
        r = p.add_run(text)
        r.bold = bold
        r.italic = italic
        r.font.size = Pt(size)
        p.alignment = WD_ALIGN_PARAGRAPH.CENTER

    def _kv(key: str, value: str) -> None:
        p = doc.add_paragraph()
        r = p.add_run(f"{key}: ")
        r.bold = True
        p.add_run(value)

    _center_title(config.title, 22, bold=True)
    _center_title(config.subtitle, 12, italic=True)

    doc.add_paragraph("")
    _kv("Dataset", config.dataset_name)
    _kv("Records", f"{len(analysis.records):,}")
    _kv("Event types", f"{len(analysis.aggregates):,}")

    cit = config.citation
    doc.add_heading("Dataset citation", level=1)
    if cit.file_name:
        doc.add_paragraph(f"Data file used: {cit.file_name}")
    doc.add_paragraph(f"{cit.institutional_author}. {cit.database_name}. {cit.website}.")

    # Panels + narrative
    for (key, title, metrics), path in zip(PANELS, panel_paths):
        doc.add_heading(f"Impact on {title}", level=1)
        doc.add_paragraph(narrative[key])
        doc.add_picture(str(path), width=Inches(6.5))

        for metric in metrics:
            rows = analysis.rankings.get(metric, [])
            doc.add_paragraph(f"Top {len(rows)} event types by {METRIC_LABELS[metric]}")
            t = doc.add_table(rows=1, cols=3)
            h = t.rows[0].cells
            h[0].text = "Rank"
            h[1].text = "Event type"
            h[2].text = METRIC_LABELS[metric]
            for pos, a in enumerate(rows, 1):
                r = t.add_row().cells
                r[0].text = str(pos)
                r[1].text = a.category
                r[2].text = format_value(metric, a.value(metric))
            doc.add_paragraph("")

    doc.add_heading("Data quality", level=1)
    doc.add_paragraph(
        f"{analysis.empty_records:,} of {len(analysis.records):,} records report no fatalities, "
        "no injuries and no damage. They are kept and add zero to every total. "
        "Damage unit codes other than K, M and B (including blanks) are read as plain US$."
    )

    from . import __version__ as version
    from datetime import datetime as _dt
    doc.add_heading("Reproducibility footer", level=1)
    doc.add_paragraph(f"STORMRANK version: {version}")
    doc.add_paragraph(f"Report generated at: {_dt.now().isoformat(timespec='seconds')}")
    doc.add_paragraph("Ties in a ranking keep the order in which event types first appear in the file.")

    doc.save(out_path)
    logger.info("Report written to %s", out_path)
    return out_path
