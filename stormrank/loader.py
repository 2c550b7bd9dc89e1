"""
Dataset loader (download -> CSV -> EventRecord list)
====================================================

This module makes sure the NOAA storm CSV is on disk, reads it with
pandas and projects each row into an `EventRecord`.

Key ideas:
- The file is fetched only when neither the CSV nor its compressed archive
  is present locally. Later runs read the cached CSV and never touch the
  network.
- Column names are matched loosely (case and punctuation ignored) and a
  few aliases are tried, because NOAA exports differ between releases.
- Blank numeric cells count as 0, but a value that is not a number at all
  is a parse error: we never guess.
"""

from __future__ import annotations
from pathlib import Path
from typing import Dict, List, Union
import bz2
import csv
import gzip
import logging
import os
import re
import shutil

import pandas as pd
import requests

from .errors import FetchError, ParseError
from .models import EventRecord, Number

logger = logging.getLogger(__name__)

DATASET_URL = "https://d396qusza40orc.cloudfront.net/repdata%2Fdata%2FStormData.csv.bz2"
DEFAULT_CSV_PATH = Path("data") / "StormData.csv"
DOWNLOAD_TIMEOUT = 120  # seconds
CHUNK_SIZE = 1 << 16

_OPENERS = {".bz2": bz2.open, ".gz": gzip.open}

# EventRecord field -> accepted column names (first match wins)
COLUMNS: Dict[str, tuple] = {
    "category": ("EVTYPE", "EVENT_TYPE", "Event Type"),
    "fatalities": ("FATALITIES", "DEATHS"),
    "injuries": ("INJURIES",),
    "property_damage": ("PROPDMG", "PROPERTY_DAMAGE", "Property Damage"),
    "property_unit": ("PROPDMGEXP", "PROPERTY_DAMAGE_EXP", "Property Damage Exp"),
    "crop_damage": ("CROPDMG", "CROP_DAMAGE", "Crop Damage"),
    "crop_unit": ("CROPDMGEXP", "CROP_DAMAGE_EXP", "Crop Damage Exp"),
}

PathLike = Union[str, os.PathLike]


# -----------------------------
# Fetch / decompress
# -----------------------------

def _archive_suffix(url: str) -> str:
    for suffix in _OPENERS:
        if url.lower().endswith(suffix):
            return suffix
    return ""


def download_file(url: str, out_path: PathLike, timeout: float = DOWNLOAD_TIMEOUT) -> Path:
    """Stream `url` to `out_path`.

    The body is written to a `.part` file first, so an interrupted download
    never looks like a cached copy. Any network or HTTP error raises
    FetchError; there is no retry.
    """
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    tmp = out_path.with_name(out_path.name + ".part")
    logger.info("Downloading %s", url)
    try:
        with requests.get(url, timeout=timeout, stream=True) as response:
            response.raise_for_status()
            with open(tmp, "wb") as f:
                for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
        tmp.replace(out_path)
    except requests.RequestException as e:
        raise FetchError(f"could not download {url}: {e}") from e
    finally:
        tmp.unlink(missing_ok=True)
    logger.info("Saved %s (%s bytes)", out_path, f"{out_path.stat().st_size:,}")
    return out_path


def decompress_file(archive: PathLike, out_path: PathLike) -> Path:
    """Decompress a .bz2 or .gz archive into `out_path`."""
    archive = Path(archive)
    out_path = Path(out_path)
    opener = _OPENERS.get(archive.suffix.lower())
    if opener is None:
        raise ParseError(f"unsupported archive type: {archive.name}")
    tmp = out_path.with_name(out_path.name + ".part")
    logger.info("Decompressing %s", archive)
    try:
        with opener(archive, "rb") as f_in, open(tmp, "wb") as f_out:
            shutil.copyfileobj(f_in, f_out)
        tmp.replace(out_path)
    except (OSError, EOFError) as e:
        raise ParseError(f"corrupt archive {archive}: {e}") from e
    finally:
        tmp.unlink(missing_ok=True)
    return out_path


def ensure_dataset(csv_path: PathLike = DEFAULT_CSV_PATH, url: str = DATASET_URL,
                   timeout: float = DOWNLOAD_TIMEOUT) -> Path:
    """Return a local path to the decompressed CSV, fetching it if needed.

    Order of preference:
    1) `csv_path` already exists -> use it as is
    2) the compressed archive next to it exists -> decompress it
    3) download `url` (then decompress if it is an archive)
    """
    csv_path = Path(csv_path)
    if csv_path.exists():
        logger.info("Using cached dataset %s", csv_path)
        return csv_path

    suffix = _archive_suffix(url)
    if not suffix:
        return download_file(url, csv_path, timeout=timeout)

    archive = csv_path.with_name(csv_path.name + suffix)
    if not archive.exists():
        download_file(url, archive, timeout=timeout)
    return decompress_file(archive, csv_path)


# -----------------------------
# Parse / project
# -----------------------------

def _norm(s: str) -> str:
    return re.sub(r"[^a-z0-9]+", "", str(s).lower())


def _col(df: pd.DataFrame, *names: str) -> str:
    cols = list(df.columns)
    for n in names:
        if n in cols:
            return n
    norm_map = {_norm(c): c for c in cols}
    for n in names:
        nn = _norm(n)
        if nn in norm_map:
            return norm_map[nn]
    raise ParseError(f"Missing required column. Tried={names}. Available={cols}")


def _to_str(x) -> str:
    if pd.isna(x): return ""
    return str(x).strip()


def _to_number(x, row: int, column: str) -> Number:
    """Convert a cell to int (when integral) or float; blanks become 0."""
    if pd.isna(x):
        return 0
    if isinstance(x, str):
        x = x.strip()
        if not x:
            return 0
    try:
        v = float(x)
    except (TypeError, ValueError) as e:
        raise ParseError(f"row {row}: column {column!r} is not a number: {x!r}") from e
    return int(v) if v.is_integer() else v


def check_field_counts(path: PathLike) -> int:
    """Make sure every row has as many fields as the header.

    pandas pads short rows with NaN, so a truncated line would otherwise
    turn into an event with zero casualties and zero damage.

    Returns the number of data rows.
    """
    opener = _OPENERS.get(Path(path).suffix.lower(), open)
    rows = 0
    with opener(path, "rt", encoding="utf-8", newline="") as f:
        reader = csv.reader(f)
        header = next(reader, None)
        if header is None:
            raise ParseError(f"{path} is empty")
        for row in reader:
            if not row:
                continue
            if len(row) != len(header):
                raise ParseError(
                    f"{path}: line {reader.line_num} has {len(row)} fields, expected {len(header)}")
            rows += 1
    return rows


def read_raw_records(path: PathLike) -> pd.DataFrame:
    """Read the header-delimited CSV (optionally .bz2/.gz) into a DataFrame.

    Only empty cells count as missing: text such as "NA" or "None" is kept
    as is, so it stays a category of its own.
    """
    try:
        check_field_counts(path)
        df = pd.read_csv(path, low_memory=False, keep_default_na=False, na_values=[""])
    except FileNotFoundError:
        raise
    except (csv.Error, pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError, OSError, EOFError) as e:
        raise ParseError(f"could not parse {path}: {e}") from e
    df.rename(columns={c: str(c).strip() for c in df.columns}, inplace=True)
    logger.info("Loaded %s rows from %s", f"{len(df):,}", path)
    return df


def project_records(df: pd.DataFrame) -> List[EventRecord]:
    """Keep the seven needed columns of every row, in file order."""
    cols = {field: _col(df, *names) for field, names in COLUMNS.items()}
    sub = df[[cols[f] for f in COLUMNS]]

    records: List[EventRecord] = []
    for i, cat, fat, inj, prop, prop_unit, crop, crop_unit in sub.itertuples(index=True, name=None):
        records.append(EventRecord(
            category=_to_str(cat),
            fatalities=_to_number(fat, i, cols["fatalities"]),
            injuries=_to_number(inj, i, cols["injuries"]),
            property_damage=_to_number(prop, i, cols["property_damage"]),
            property_unit=_to_str(prop_unit),
            crop_damage=_to_number(crop, i, cols["crop_damage"]),
            crop_unit=_to_str(crop_unit),
        ))
    return records

