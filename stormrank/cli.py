"""
STORMRANK Command Line Interface (CLI)
======================================

Run the whole batch once:

    python -m stormrank.cli
    python -m stormrank.cli --csv data/StormData.csv --report out/storm_report.docx

Every flag has a default, so the bare command downloads the dataset on the
first run, reuses it afterwards, prints the rankings and narrative, and
writes the DOCX report.
"""

from __future__ import annotations
import argparse
import logging
import sys
from typing import List, Optional

from .aggregate import export_aggregates
from .errors import StormRankError
from .loader import DATASET_URL, DEFAULT_CSV_PATH
from .pipeline import run, stage
from .rank import TOP_N
from .report import DatasetCitation, ReportConfig, build_narrative, format_rankings, generate_docx_report


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="stormrank",
                                 description="Rank storm event types by health and economic impact.")
    ap.add_argument("--csv", default=str(DEFAULT_CSV_PATH), help="Local path of the storm CSV (cached)")
    ap.add_argument("--url", default=DATASET_URL, help="Where to fetch the CSV when it is absent")
    ap.add_argument("--report", default="storm_report.docx", help="DOCX report path ('' to skip)")
    ap.add_argument("--top", type=int, default=TOP_N, help="Categories per ranking")
    ap.add_argument("--export", default=None, help="Also write all aggregates to a .csv or .json file")
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the STORMRANK CLI.

    1) Run the pipeline (load -> rank)
    2) Print rankings and narrative
    3) Write the report / export if asked
    """
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    if args.top < 1:
        print("Error: --top must be >= 1", file=sys.stderr)
        return 2

    try:
        analysis = run(args.csv, url=args.url, top_n=args.top)

        print(format_rankings(analysis.rankings))
        for text in build_narrative(analysis.rankings).values():
            print(text)
            print()

        if args.export:
            with stage("report"):
                export_aggregates(analysis.aggregates, args.export)
            print(f"Aggregates exported to {args.export}")

        if args.report:
            cfg = ReportConfig(citation=DatasetCitation(file_name=analysis.source.name if analysis.source else None))
            with stage("report"):
                generate_docx_report(analysis, args.report, config=cfg)
            print(f"Report written to {args.report}")
    except StormRankError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
