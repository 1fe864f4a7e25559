"""Reporting utilities for the reconciliation pipeline."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Sequence, Tuple

from .grouping import TOTAL_LABEL
from .models import (
    DateBucket,
    InvoiceAggregate,
    RateBucket,
    ReconciliationResult,
    ReconciliationSummary,
    Record,
    SupplierAggregate,
    to_fixed,
)

logger = logging.getLogger(__name__)

SUMMARY_FILE = "summary.txt"
RULE = "-" * 41


def _stringify(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return str(value)


def serialize(records: Sequence[Record], delimiter: str = ",") -> str:
    """Render records as delimited text using the first record's columns as header."""

    if not records:
        return ""
    headers = list(records[0].keys())
    rows = [delimiter.join(headers)]
    for record in records:
        values = (_stringify(record.get(header)).replace('"', '""') for header in headers)
        rows.append(delimiter.join(f'"{value}"' for value in values))
    return "\n".join(rows)


def _serialize_invoice(invoice: InvoiceAggregate) -> Record:
    return {
        "invoiceNumber": invoice.invoice_number,
        "grossValue": invoice.gross_value,
        "totalQuantity": invoice.total_quantity,
        "itemCount": invoice.item_count,
        "supplierName": invoice.supplier_name,
        "invoiceDate": invoice.invoice_date,
    }


def _serialize_supplier(supplier: SupplierAggregate) -> Record:
    if supplier.supplier_name == TOTAL_LABEL:
        # The Total row lists count before the derived columns; it sets the
        # header when no supplier matched.
        return {
            "supplierName": supplier.supplier_name,
            "purchaseAmount": supplier.purchase_amount,
            "saleAmount": supplier.sale_amount,
            "count": supplier.count,
            "profit": supplier.profit,
            "profitPercentage": supplier.profit_percentage,
            "commissionPercentage": supplier.commission_percentage,
        }
    return {
        "supplierName": supplier.supplier_name,
        "purchaseAmount": supplier.purchase_amount,
        "saleAmount": supplier.sale_amount,
        "profit": supplier.profit,
        "profitPercentage": supplier.profit_percentage,
        "commissionPercentage": supplier.commission_percentage,
        "count": supplier.count,
    }


def _serialize_rate(bucket: RateBucket) -> Record:
    return {
        "rate": bucket.label,
        "cgstAmount": bucket.cgst_amount,
        "sgstAmount": bucket.sgst_amount,
        "totalAmount": bucket.total_amount,
        "purchaseCgstAmount": bucket.purchase_cgst_amount,
        "purchaseSgstAmount": bucket.purchase_sgst_amount,
        "purchaseGstAmount": bucket.purchase_gst_amount,
        "netGstAmount": bucket.net_gst_amount,
        "items": bucket.items,
    }


def _serialize_date(bucket: DateBucket) -> Record:
    return {"date": bucket.date, "quantity": bucket.quantity, "amount": bucket.amount}


def report_tables(result: ReconciliationResult) -> Dict[str, List[Record]]:
    """Every tabular report of a run, keyed by its output file name."""

    return {
        "updated_purchase_order_data.csv": result.purchase_records,
        "updated_sales_tax_data.csv": result.sales_records,
        "matched_data.csv": result.matched_records,
        "sales_without_purchase.csv": result.sales_without_purchase,
        "unused_purchases.csv": result.unused_purchases,
        "supplier_grouped_data.csv": [_serialize_supplier(item) for item in result.supplier_grouped],
        "invoice_grouped_data.csv": [_serialize_invoice(item) for item in result.invoice_grouped],
    }


def _render_rate(bucket: RateBucket) -> str:
    return "\n".join(
        [
            f"Rate {bucket.label}: ",
            f"   Sale GST: ₹{to_fixed(bucket.total_amount)} "
            f"(CGST: ₹{to_fixed(bucket.cgst_amount)}, SGST: ₹{to_fixed(bucket.sgst_amount)})",
            f"   Purchase GST: ₹{to_fixed(bucket.purchase_gst_amount)} "
            f"(CGST: ₹{to_fixed(bucket.purchase_cgst_amount)}, SGST: ₹{to_fixed(bucket.purchase_sgst_amount)})",
            f"   Net GST: ₹{to_fixed(bucket.net_gst_amount)} ({bucket.items} items)",
        ]
    )


def render_summary(summary: ReconciliationSummary) -> str:
    """Fixed-layout plain text report of a reconciliation run."""

    lines = [
        "",
        "Summary:",
        RULE,
        f"Total Purchase Amount: {to_fixed(summary.total_purchase_amount)}",
        f"Total Sale Amount: {to_fixed(summary.total_sale_amount)}",
        f"Gross Profit (Sale - Purchase): {to_fixed(summary.total_sale_amount - summary.total_purchase_amount)}",
        f"Profit Percentage: {summary.profit_percentage}",
        f"Commission Percentage: {summary.commission_percentage}",
        "",
        "Net Profit Summary:",
        RULE,
        f"Total Net Sale Amount (Without Tax): {to_fixed(summary.total_net_sale_amount)}",
        f"Total Net Purchase Amount (Without Tax): {to_fixed(summary.total_net_purchase_amount)}",
        f"Net Profit (Net Sale - Net Purchase): {to_fixed(summary.total_net_profit)}",
        f"Net Profit Percentage: {summary.net_profit_percentage}",
        "",
        "GST Summary:",
        RULE,
        f"Total CGST: {to_fixed(summary.total_cgst_amount)}",
        f"Total SGST: {to_fixed(summary.total_sgst_amount)}",
        f"Total GST: {to_fixed(summary.total_cgst_amount + summary.total_sgst_amount)}",
        "",
        "GST Breakdown by Rate:",
        RULE,
        "\n".join(_render_rate(bucket) for bucket in summary.gst_breakdown),
        "",
        "Garment Supplier Summary:",
        RULE,
        f"Garment Purchase Quantity: {to_fixed(summary.garment_purchase_quantity)}",
        f"Garment Sale Quantity: {to_fixed(summary.garment_sale_quantity)}",
        "",
        "Fabric Supplier Summary:",
        RULE,
        f"Fabric Purchase Quantity: {to_fixed(summary.fabric_purchase_quantity)}",
        f"Fabric Sale Quantity: {to_fixed(summary.fabric_sale_quantity)}",
        "",
        "Data Statistics:",
        RULE,
        f"Purchase Orders: {summary.purchase_order_count}",
        f"Sales Transactions: {summary.sales_tax_count}",
        f"Matched Records: {summary.matched_count}",
        f"Sales Without Matching Purchase: {summary.sales_without_purchase_count}",
        f"Unused Purchases: {summary.unused_purchases_count}",
        "",
    ]
    return "\n".join(lines)


def write_outputs(result: ReconciliationResult, directory: Path, delimiter: str = ",") -> Dict[str, Path]:
    """Write the seven CSV reports and the text summary into ``directory``."""

    directory.mkdir(parents=True, exist_ok=True)
    written: Dict[str, Path] = {}
    for name, records in report_tables(result).items():
        path = directory / name
        path.write_text(serialize(records, delimiter), encoding="utf-8")
        written[name] = path
    summary_path = directory / SUMMARY_FILE
    summary_path.write_text(render_summary(result.summary), encoding="utf-8")
    written[SUMMARY_FILE] = summary_path
    logger.info("Wrote %d report files to %s", len(written), directory)
    return written


def _ensure_openpyxl() -> Tuple["Workbook", Callable[[int], str]]:
    try:
        from openpyxl import Workbook
        from openpyxl.utils import get_column_letter
    except ModuleNotFoundError as exc:
        raise RuntimeError("Writing Excel reports requires 'openpyxl' to be installed.") from exc
    return Workbook, get_column_letter


def _autosize_columns(worksheet, get_column_letter) -> None:
    widths: Dict[int, int] = {}
    for row in worksheet.iter_rows(values_only=True):
        for index, value in enumerate(row, start=1):
            if value is None:
                continue
            widths[index] = max(widths.get(index, 0), len(str(value)))
    for index, width in widths.items():
        worksheet.column_dimensions[get_column_letter(index)].width = min(width + 2, 80)


def _cell(value: object) -> object:
    if isinstance(value, bool):
        return _stringify(value)
    if value is None or isinstance(value, (int, float, str)):
        return value
    return _stringify(value)


def _write_sheet(workbook, get_column_letter, title: str, rows: Iterable[Record]) -> None:
    sheet = workbook.create_sheet(title)
    rows = list(rows)
    if not rows:
        return
    headers = list(rows[0].keys())
    sheet.append(headers)
    for row in rows:
        sheet.append([_cell(row.get(header, "")) for header in headers])
    _autosize_columns(sheet, get_column_letter)


def write_excel_report(result: ReconciliationResult, path: Path) -> None:
    """Persist every report of a run into one Excel workbook."""

    Workbook, get_column_letter = _ensure_openpyxl()
    workbook = Workbook()
    workbook.remove(workbook.active)

    summary_sheet = workbook.create_sheet("Summary")
    for line in render_summary(result.summary).splitlines():
        summary_sheet.append([line])
    _autosize_columns(summary_sheet, get_column_letter)

    for name, records in report_tables(result).items():
        # Sheet titles are limited to 31 characters.
        _write_sheet(workbook, get_column_letter, name[: -len(".csv")][:31], records)
    _write_sheet(workbook, get_column_letter, "gst_by_rate", (_serialize_rate(b) for b in result.summary.gst_breakdown))
    _write_sheet(workbook, get_column_letter, "garment_sales_by_date", (_serialize_date(b) for b in result.garment_sales_by_date))
    _write_sheet(workbook, get_column_letter, "fabric_sales_by_date", (_serialize_date(b) for b in result.fabric_sales_by_date))

    workbook.save(path)
