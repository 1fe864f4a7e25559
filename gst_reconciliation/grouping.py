"""Secondary views computed from enriched purchase and sales records."""

from __future__ import annotations

from typing import Dict, Iterable, List, Set, Tuple

from .models import DateBucket, InvoiceAggregate, Record, SupplierAggregate, percentage
from .preprocess import item_id, normalize_sale_date, number_field, text_field

TOTAL_LABEL = "Total"
UNKNOWN_INVOICE = "Unknown Invoice"
UNKNOWN_SUPPLIER = "Unknown Supplier"
UNKNOWN_DATE = "Unknown Date"


def group_by_invoice(purchase_records: Iterable[Record]) -> List[InvoiceAggregate]:
    """Sum gross value and received quantity per invoice, plus a Total row."""

    invoices: Dict[str, InvoiceAggregate] = {}
    for record in purchase_records:
        invoice_number = text_field(record, "Invoice Number", UNKNOWN_INVOICE)
        invoice = invoices.get(invoice_number)
        if invoice is None:
            invoice = InvoiceAggregate(
                invoice_number=invoice_number,
                supplier_name=text_field(record, "Suppiler Name", UNKNOWN_SUPPLIER),
                invoice_date=text_field(record, "Invoice Date"),
            )
            invoices[invoice_number] = invoice
        invoice.gross_value += number_field(record, "Gross Value")
        invoice.total_quantity += number_field(record, "Received Qty")
        invoice.item_count += 1

    grouped = sorted(invoices.values(), key=lambda invoice: invoice.invoice_number)
    grouped.append(
        InvoiceAggregate(
            invoice_number=TOTAL_LABEL,
            gross_value=sum(invoice.gross_value for invoice in grouped),
            total_quantity=sum(invoice.total_quantity for invoice in grouped),
            item_count=sum(invoice.item_count for invoice in grouped),
        )
    )
    return grouped


def _settle(supplier: SupplierAggregate) -> SupplierAggregate:
    supplier.profit = supplier.sale_amount - supplier.purchase_amount
    supplier.profit_percentage = percentage(supplier.profit, supplier.purchase_amount, "0")
    supplier.commission_percentage = percentage(supplier.profit, supplier.sale_amount, "0")
    return supplier


def group_by_supplier(matched_records: Iterable[Record]) -> List[SupplierAggregate]:
    """Profit per supplier over matched sales, most profitable first, plus a Total row."""

    # Column name is spelled as in the purchase order export.
    suppliers: Dict[str, SupplierAggregate] = {}
    for record in matched_records:
        name = text_field(record, "Suppiler Name", UNKNOWN_SUPPLIER)
        supplier = suppliers.setdefault(name, SupplierAggregate(supplier_name=name))
        supplier.purchase_amount += number_field(record, "Total Purchase Amount")
        supplier.sale_amount += number_field(record, "Total Sale Amount")
        supplier.count += 1

    grouped = [_settle(supplier) for supplier in suppliers.values()]
    grouped.sort(key=lambda supplier: supplier.profit, reverse=True)
    grouped.append(
        _settle(
            SupplierAggregate(
                supplier_name=TOTAL_LABEL,
                purchase_amount=sum(supplier.purchase_amount for supplier in grouped),
                sale_amount=sum(supplier.sale_amount for supplier in grouped),
                count=sum(supplier.count for supplier in grouped),
            )
        )
    )
    return grouped


def sale_date_key(record: Record) -> str:
    raw = text_field(record, "Date")
    if not raw:
        return UNKNOWN_DATE
    normalized = normalize_sale_date(raw)
    if normalized is None:
        return raw
    return normalized


def bucket_sales_by_date(sales_records: Iterable[Record], item_ids: Set[str]) -> Tuple[float, List[DateBucket]]:
    """Sum quantity and gross amount per sale day for sales of the given items.

    Returns the total quantity sold and the day buckets sorted by date.
    """

    quantity_sold = 0.0
    buckets: Dict[str, DateBucket] = {}
    for record in sales_records:
        key = item_id(record)
        if not key or key not in item_ids:
            continue
        quantity = number_field(record, "Qty")
        quantity_sold += quantity
        date = sale_date_key(record)
        bucket = buckets.setdefault(date, DateBucket(date=date))
        bucket.quantity += quantity
        bucket.amount += (
            number_field(record, "Net Amount")
            + number_field(record, "CGST Tax Amount")
            + number_field(record, "SGST Tax Amount")
        )
    return quantity_sold, sorted(buckets.values(), key=lambda bucket: bucket.date)
