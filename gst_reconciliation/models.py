"""Data models used by the GST reconciliation pipeline."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List

# A parsed report row: column name -> value, in header order. Parsed values
# are strings; enrichment adds floats and booleans.
Record = Dict[str, object]

_CENT = Decimal("0.01")


def to_fixed(value: float) -> str:
    """Two-decimal text, rounding exact ties away from zero."""

    if not math.isfinite(value):
        return str(value)
    # Adding 0.0 turns -0.0 into 0.0.
    return str(Decimal(value + 0.0).quantize(_CENT, rounding=ROUND_HALF_UP))


def percentage(part: float, whole: float, fallback: str, suffix: str = "") -> str:
    """``part`` as a two-decimal percentage of ``whole``, or ``fallback`` when whole is not positive."""

    if whole > 0:
        return to_fixed(part / whole * 100) + suffix
    return fallback


@dataclass
class RateBucket:
    """GST collected and paid for one combined CGST+SGST rate."""

    rate: float
    cgst_amount: float = 0.0
    sgst_amount: float = 0.0
    total_amount: float = 0.0
    purchase_cgst_amount: float = 0.0
    purchase_sgst_amount: float = 0.0
    purchase_gst_amount: float = 0.0
    net_gst_amount: float = 0.0
    items: int = 0

    @property
    def label(self) -> str:
        return f"{to_fixed(self.rate)}%"


@dataclass
class DateBucket:
    """Quantity and amount sold on a single day."""

    date: str
    quantity: float = 0.0
    amount: float = 0.0


@dataclass
class InvoiceAggregate:
    """Purchase order lines grouped under one invoice number."""

    invoice_number: str
    gross_value: float = 0.0
    total_quantity: float = 0.0
    item_count: int = 0
    supplier_name: str = ""
    invoice_date: str = ""


@dataclass
class SupplierAggregate:
    """Matched sales grouped under one supplier."""

    supplier_name: str
    purchase_amount: float = 0.0
    sale_amount: float = 0.0
    profit: float = 0.0
    profit_percentage: str = "0"
    commission_percentage: str = "0"
    count: int = 0


@dataclass
class ReconciliationSummary:
    """Totals and statistics computed over one reconciliation run."""

    purchase_order_count: int = 0
    sales_tax_count: int = 0
    matched_count: int = 0
    sales_without_purchase_count: int = 0
    unused_purchases_count: int = 0
    total_purchase_amount: float = 0.0
    total_sale_amount: float = 0.0
    total_net_sale_amount: float = 0.0
    total_net_purchase_amount: float = 0.0
    total_cgst_amount: float = 0.0
    total_sgst_amount: float = 0.0
    total_net_profit: float = 0.0
    difference: float = 0.0
    gst_breakdown: List[RateBucket] = field(default_factory=list)
    garment_purchase_quantity: float = 0.0
    garment_sale_quantity: float = 0.0
    fabric_purchase_quantity: float = 0.0
    fabric_sale_quantity: float = 0.0
    profit_percentage: str = "N/A"
    commission_percentage: str = "N/A"
    net_profit_percentage: str = "N/A"


@dataclass
class ReconciliationResult:
    """Aggregated reconciliation output."""

    purchase_records: List[Record] = field(default_factory=list)
    sales_records: List[Record] = field(default_factory=list)
    matched_records: List[Record] = field(default_factory=list)
    sales_without_purchase: List[Record] = field(default_factory=list)
    unused_purchases: List[Record] = field(default_factory=list)
    supplier_grouped: List[SupplierAggregate] = field(default_factory=list)
    invoice_grouped: List[InvoiceAggregate] = field(default_factory=list)
    garment_sales_by_date: List[DateBucket] = field(default_factory=list)
    fabric_sales_by_date: List[DateBucket] = field(default_factory=list)
    summary: ReconciliationSummary = field(default_factory=ReconciliationSummary)
