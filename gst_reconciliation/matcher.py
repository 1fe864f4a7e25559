"""Matching of sales tax lines against purchase orders by Item Id."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Sequence, Set, Tuple

from . import grouping
from .models import RateBucket, ReconciliationResult, ReconciliationSummary, Record, percentage, to_fixed
from .preprocess import (
    ITEM_ID,
    NoValidRecordsError,
    build_purchase_index,
    enrich_purchases,
    filter_records,
    item_id,
    number_field,
    text_field,
    validate_inputs,
)

logger = logging.getLogger(__name__)

PURCHASE_PREFIX = "PO_"
CURRENCY_SYMBOL = "$"
GARMENT_KEYWORD = "garment"
FABRIC_KEYWORD = "fabric"
# Received quantity on this invoice never counts towards fabric purchases.
FABRIC_EXCLUDED_INVOICE = "9000322583"


def _strip_currency(record: Record) -> Record:
    return {
        key: value.replace(CURRENCY_SYMBOL, "") if isinstance(value, str) else value
        for key, value in record.items()
    }


def enrich_sales(sales_records: Iterable[Record], purchase_index: Dict[str, Record]) -> Tuple[List[Record], List[Record]]:
    """Attach purchase cost and sale totals to each sale.

    Returns every enriched sale and, separately, those without a purchase.
    """

    enriched: List[Record] = []
    without_purchase: List[Record] = []
    for record in sales_records:
        key = item_id(record)
        purchase = purchase_index.get(key) if key else None

        quantity = number_field(record, "Qty")
        net_amount = number_field(record, "Net Amount")
        cgst_amount = number_field(record, "CGST Tax Amount")
        sgst_amount = number_field(record, "SGST Tax Amount")
        unit_purchase_amount = number_field(purchase, "Unit Purchase Amount") if purchase else 0

        sale = {
            **_strip_currency(record),
            "Suppiler Name": text_field(purchase, "Suppiler Name") if purchase else "",
            "Unit Purchase Amount": unit_purchase_amount,
            "Total Purchase Amount": unit_purchase_amount * quantity,
            "Total Sale Amount": net_amount + cgst_amount + sgst_amount,
            "Has Matching Purchase": purchase is not None,
        }
        enriched.append(sale)
        if purchase is None:
            without_purchase.append(sale)
    return enriched, without_purchase


def find_unused_purchases(purchase_records: Iterable[Record], sales_records: Iterable[Record]) -> List[Record]:
    """Purchases that no matched sale refers to, regardless of quantities."""

    sold = {item_id(sale) for sale in sales_records if sale.get("Has Matching Purchase")}
    return [purchase for purchase in purchase_records if not item_id(purchase) or item_id(purchase) not in sold]


def prefix_keys(record: Record, prefix: str, exceptions: Sequence[str] = ()) -> Record:
    return {key if key in exceptions else f"{prefix}{key}": value for key, value in record.items()}


def join_matched(sales_records: Iterable[Record], purchase_index: Dict[str, Record]) -> List[Record]:
    """Inner join driven by sales: each sale merged with its PO_-prefixed purchase."""

    matched: List[Record] = []
    for sale in sales_records:
        key = item_id(sale)
        if not key:
            continue
        purchase = purchase_index.get(key)
        if purchase is None:
            continue
        matched.append({**sale, **prefix_keys(purchase, PURCHASE_PREFIX, (ITEM_ID,))})
    return matched


def accumulate_totals(sales_records: Iterable[Record], summary: ReconciliationSummary) -> None:
    """Sum gross, net and GST figures into the summary, bucketing GST by rate."""

    buckets: Dict[str, RateBucket] = {}
    for sale in sales_records:
        quantity = number_field(sale, "Qty")
        net_sale_amount = number_field(sale, "Net Amount")
        unit_gross_purchase = number_field(sale, "Unit Purchase Amount")
        # The purchase is assumed to carry the same rate the sale charges.
        tax_rate = number_field(sale, "CGST Rate") + number_field(sale, "SGST Rate")
        cgst_amount = number_field(sale, "CGST Tax Amount")
        sgst_amount = number_field(sale, "SGST Tax Amount")
        sale_gst = cgst_amount + sgst_amount

        divisor = 1 + tax_rate / 100
        net_purchase_amount = unit_gross_purchase / divisor * quantity if divisor else 0.0
        gross_purchase_amount = unit_gross_purchase * quantity
        purchase_gst = gross_purchase_amount - net_purchase_amount

        if tax_rate > 0:
            label = f"{to_fixed(tax_rate)}%"
            bucket = buckets.setdefault(label, RateBucket(rate=tax_rate))
            bucket.cgst_amount += cgst_amount
            bucket.sgst_amount += sgst_amount
            bucket.total_amount += sale_gst
            bucket.purchase_cgst_amount += purchase_gst / 2
            bucket.purchase_sgst_amount += purchase_gst / 2
            bucket.purchase_gst_amount += purchase_gst
            bucket.net_gst_amount += sale_gst - purchase_gst
            bucket.items += 1

        summary.total_purchase_amount += gross_purchase_amount
        summary.total_sale_amount += number_field(sale, "Total Sale Amount")
        summary.total_cgst_amount += cgst_amount
        summary.total_sgst_amount += sgst_amount
        summary.total_net_sale_amount += net_sale_amount
        summary.total_net_purchase_amount += net_purchase_amount
        summary.total_net_profit += net_sale_amount - net_purchase_amount

    summary.gst_breakdown = sorted(buckets.values(), key=lambda bucket: bucket.rate, reverse=True)


def tag_category(purchase_records: Iterable[Record], keyword: str, excluded_invoice: str = "") -> Tuple[float, Set[str]]:
    """Purchased quantity and Item Ids of purchases whose supplier name contains ``keyword``."""

    quantity = 0.0
    item_ids: Set[str] = set()
    for purchase in purchase_records:
        key = item_id(purchase)
        if not key or keyword not in text_field(purchase, "Suppiler Name").lower():
            continue
        if not excluded_invoice or purchase.get("Invoice Number") != excluded_invoice:
            quantity += number_field(purchase, "Received Qty")
        item_ids.add(key)
    return quantity, item_ids


def reconcile(purchase_records: List[Record], sales_records: List[Record]) -> ReconciliationResult:
    """Match sales against purchase orders and compute every derived report."""

    validate_inputs(purchase_records, sales_records)

    purchases = filter_records(purchase_records)
    sales = filter_records(sales_records)
    logger.info("Filtered purchase order records: %d", len(purchases))
    logger.info("Filtered sales tax records: %d", len(sales))
    if not purchases or not sales:
        raise NoValidRecordsError("No valid data records after filtering empty entries.")

    purchases = enrich_purchases(purchases)
    purchase_index = build_purchase_index(purchases)
    sales, sales_without_purchase = enrich_sales(sales, purchase_index)
    unused_purchases = find_unused_purchases(purchases, sales)
    matched = join_matched(sales, purchase_index)
    logger.info(
        "Matched %d sales, %d without purchase, %d unused purchases",
        len(matched),
        len(sales_without_purchase),
        len(unused_purchases),
    )

    summary = ReconciliationSummary(
        purchase_order_count=len(purchases),
        sales_tax_count=len(sales),
        matched_count=len(matched),
        sales_without_purchase_count=len(sales_without_purchase),
        unused_purchases_count=len(unused_purchases),
    )
    accumulate_totals(sales, summary)
    summary.difference = summary.total_sale_amount - summary.total_purchase_amount
    summary.profit_percentage = percentage(summary.difference, summary.total_purchase_amount, "N/A", "%")
    summary.commission_percentage = percentage(summary.difference, summary.total_sale_amount, "N/A", "%")
    summary.net_profit_percentage = percentage(summary.total_net_profit, summary.total_net_purchase_amount, "N/A", "%")

    summary.garment_purchase_quantity, garment_items = tag_category(purchases, GARMENT_KEYWORD)
    summary.fabric_purchase_quantity, fabric_items = tag_category(
        purchases, FABRIC_KEYWORD, excluded_invoice=FABRIC_EXCLUDED_INVOICE
    )
    summary.garment_sale_quantity, garment_by_date = grouping.bucket_sales_by_date(sales, garment_items)
    summary.fabric_sale_quantity, fabric_by_date = grouping.bucket_sales_by_date(sales, fabric_items)

    return ReconciliationResult(
        purchase_records=purchases,
        sales_records=sales,
        matched_records=matched,
        sales_without_purchase=sales_without_purchase,
        unused_purchases=unused_purchases,
        supplier_grouped=grouping.group_by_supplier(matched),
        invoice_grouped=grouping.group_by_invoice(purchases),
        garment_sales_by_date=garment_by_date,
        fabric_sales_by_date=fabric_by_date,
        summary=summary,
    )
