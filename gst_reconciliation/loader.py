"""Utilities for turning purchase order and sales tax exports into records."""

from __future__ import annotations

import logging
import math
import re
from pathlib import Path
from typing import List

import pandas as pd

from .models import Record

logger = logging.getLogger(__name__)

PURCHASE_ORDER_KEYWORDS = ("Store Code", "Invoice Number", "Suppiler Name", "Item Id", "Material Code")
SALES_TAX_KEYWORDS = ("Store Code", "Receipt Id", "Item Id", "Material Code", "Bar Code")
HEADER_KEYWORDS = tuple(dict.fromkeys(PURCHASE_ORDER_KEYWORDS + SALES_TAX_KEYWORDS))
HEADER_SCAN_LIMIT = 20

_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_LEADING_NUMBER = re.compile(r"-?(?:\d+\.?\d*|\.\d+)")


class DataValidationError(RuntimeError):
    """Raised when the input file is invalid."""


def split_line(line: str, delimiter: str = ",") -> List[str]:
    """Split one delimited line into fields.

    A double quote toggles quoted mode, a doubled quote inside a quoted field
    yields one literal quote and the delimiter is literal text while quoted.
    An unterminated quote simply runs to the end of the line.
    """

    fields: List[str] = []
    current: List[str] = []
    in_quotes = False
    index = 0
    length = len(line)
    while index < length:
        char = line[index]
        if char == '"':
            if in_quotes and index + 1 < length and line[index + 1] == '"':
                current.append('"')
                index += 1
            else:
                in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(char)
        index += 1
    fields.append("".join(current))
    return fields


def _detect_header_row(lines: List[str]) -> int:
    header_index = 0
    best_score = 0
    for index, line in enumerate(lines[:HEADER_SCAN_LIMIT]):
        score = sum(1 for keyword in HEADER_KEYWORDS if keyword in line)
        if score > best_score:
            best_score = score
            header_index = index
    return header_index


def parse(text: str, delimiter: str = ",") -> List[Record]:
    """Parse a delimited export into records keyed by its detected header row."""

    lines = [line for line in text.split("\n") if line.strip()]
    if not lines:
        return []

    header_index = _detect_header_row(lines)
    logger.debug("Detected header row at index %d", header_index)
    headers = [header.strip() for header in lines[header_index].split(delimiter)]

    records: List[Record] = []
    for line in lines[header_index + 1:]:
        values = split_line(line, delimiter)
        if len(values) < len(headers) / 2:
            continue
        if all(not value.strip() for value in values):
            continue
        row: Record = {}
        for position, header in enumerate(headers):
            if not header:
                continue
            row[header] = values[position].strip() if position < len(values) else ""
        filled = sum(1 for value in row.values() if value)
        if filled <= 1:
            continue
        records.append(row)

    logger.debug("Parsed %d data rows", len(records))
    return records


def normalize_number(value: object) -> float:
    """Coerce dirty report text such as ``"₹1,234.50"`` into a number.

    Never raises: anything that does not yield a leading number becomes 0.
    """

    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        if isinstance(value, float) and math.isnan(value):
            return 0
        return value
    text = str(value)
    if not text:
        return 0
    match = _LEADING_NUMBER.match(_NON_NUMERIC.sub("", text))
    if not match:
        return 0
    return float(match.group(0))


def read_sheet_text(path: Path, delimiter: str = ",") -> str:
    """Return the first sheet of a workbook (or a CSV file) as delimited text."""

    if not path.exists() or not path.is_file():
        raise DataValidationError(f"Input file not found: {path}")
    suffix = path.suffix.lower()
    if suffix == ".csv":
        return path.read_text(encoding="utf-8-sig")
    if suffix in {".xlsx", ".xlsm"}:
        try:
            dataframe = pd.read_excel(path, sheet_name=0, header=None, dtype=str, engine="openpyxl")
        except ImportError as exc:
            raise DataValidationError(
                "Reading .xlsx workbooks requires the 'openpyxl' dependency."
            ) from exc
        except ValueError as exc:
            raise DataValidationError(f"Could not read workbook {path.name}: {exc}") from exc
        return dataframe.fillna("").to_csv(index=False, header=False, sep=delimiter)
    if suffix == ".xls":
        raise DataValidationError(".xls workbooks are not supported; save the report as .xlsx.")
    raise DataValidationError(f"Unsupported file format: {path.suffix}.")


def load_records(path: Path, delimiter: str = ",") -> List[Record]:
    """Read and parse one exported report."""

    records = parse(read_sheet_text(path, delimiter), delimiter)
    logger.info("Loaded %d records from %s", len(records), path.name)
    return records
