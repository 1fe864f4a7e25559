"""Pre-processing steps for reconciliation inputs."""

from __future__ import annotations

from typing import Dict, Iterable, List, Mapping, Optional

from .loader import normalize_number
from .models import Record

ITEM_ID = "Item Id"
MIN_FILLED_FIELDS = 4


class ReconciliationError(RuntimeError):
    """Base class for inputs the reconciliation cannot work with."""


class InvalidInputError(ReconciliationError):
    """Raised when a record set is not a list of records."""


class EmptyInputError(ReconciliationError):
    """Raised when a record set has no rows."""


class NoValidRecordsError(ReconciliationError):
    """Raised when filtering leaves a record set empty."""


def item_id(record: Record) -> str:
    value = record.get(ITEM_ID)
    if value is None or value == "":
        return ""
    return str(value)


def text_field(record: Record, name: str, default: str = "") -> str:
    value = record.get(name)
    if value is None or value == "":
        return default
    return str(value)


def number_field(record: Record, name: str) -> float:
    return normalize_number(record.get(name))


def validate_inputs(purchase_records: object, sales_records: object) -> None:
    for records in (purchase_records, sales_records):
        if not isinstance(records, (list, tuple)):
            raise InvalidInputError("Invalid data format: expected a list of records.")
        if not all(isinstance(record, Mapping) for record in records):
            raise InvalidInputError("Invalid data format: every record must be a mapping of column to value.")
    if not purchase_records or not sales_records:
        raise EmptyInputError("Empty data provided.")


def _filled_fields(record: Record) -> int:
    return sum(1 for value in record.values() if value is not None and value != "")


def filter_records(records: Iterable[Record]) -> List[Record]:
    """Drop rows without an Item Id or with too little data to be line items."""

    return [
        record
        for record in records
        if item_id(record) and _filled_fields(record) >= MIN_FILLED_FIELDS
    ]


def enrich_purchases(purchase_records: Iterable[Record]) -> List[Record]:
    """Attach the tax-inclusive landed cost per unit to every purchase line."""

    enriched: List[Record] = []
    for record in purchase_records:
        unit_cost = number_field(record, "Unit Cost")
        igst_rate = number_field(record, "IGST Rate")
        enriched.append({**record, "Unit Purchase Amount": unit_cost + unit_cost * igst_rate / 100})
    return enriched


def build_purchase_index(purchase_records: Iterable[Record]) -> Dict[str, Record]:
    """Index purchases by Item Id in input order; the last duplicate wins."""

    index: Dict[str, Record] = {}
    for record in purchase_records:
        key = item_id(record)
        if key:
            index[key] = record
    return index


def normalize_sale_date(text: str) -> Optional[str]:
    """Reorder a DD-MM-YYYY date into YYYY-MM-DD, or None if it has no three parts."""

    parts = text.split("-")
    if len(parts) < 3:
        return None
    return f"{parts[2]}-{parts[1].rjust(2, '0')}-{parts[0].rjust(2, '0')}"
