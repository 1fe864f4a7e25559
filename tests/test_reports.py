from gst_reconciliation import loader, matcher, reports
from gst_reconciliation.models import RateBucket, ReconciliationSummary, to_fixed

EMPTY_SUMMARY_TEXT = """
Summary:
-----------------------------------------
Total Purchase Amount: 0.00
Total Sale Amount: 0.00
Gross Profit (Sale - Purchase): 0.00
Profit Percentage: N/A
Commission Percentage: N/A

Net Profit Summary:
-----------------------------------------
Total Net Sale Amount (Without Tax): 0.00
Total Net Purchase Amount (Without Tax): 0.00
Net Profit (Net Sale - Net Purchase): 0.00
Net Profit Percentage: N/A

GST Summary:
-----------------------------------------
Total CGST: 0.00
Total SGST: 0.00
Total GST: 0.00

GST Breakdown by Rate:
-----------------------------------------


Garment Supplier Summary:
-----------------------------------------
Garment Purchase Quantity: 0.00
Garment Sale Quantity: 0.00

Fabric Supplier Summary:
-----------------------------------------
Fabric Purchase Quantity: 0.00
Fabric Sale Quantity: 0.00

Data Statistics:
-----------------------------------------
Purchase Orders: 0
Sales Transactions: 0
Matched Records: 0
Sales Without Matching Purchase: 0
Unused Purchases: 0
"""

PURCHASE_CSV = "\n".join(
    [
        "Purchase Order Register",
        "Store Code,Invoice Number,Invoice Date,Suppiler Name,Item Id,Unit Cost,IGST Rate,Received Qty,Gross Value",
        'S1,INV1,01-12-2023,"X Garment Co",A1,100,18,10,"1,180.00"',
        "S1,INV2,02-12-2023,Y Fabric House,B2,50,5,4,210",
    ]
)

SALES_CSV = "\n".join(
    [
        "Store Code,Receipt Id,Item Id,Bar Code,Qty,Net Amount,CGST Rate,SGST Rate,CGST Tax Amount,SGST Tax Amount,Date",
        "S1,R1,A1,890001,5,$50,4.5,4.5,4.5,4.5,01-01-2024",
        "S1,R2,C3,890002,1,100,9,9,9,9,02-01-2024",
    ]
)


def _result():
    return matcher.reconcile(loader.parse(PURCHASE_CSV), loader.parse(SALES_CSV))


def test_render_summary_layout_for_empty_totals():
    assert reports.render_summary(ReconciliationSummary()) == EMPTY_SUMMARY_TEXT


def test_render_summary_rate_lines():
    summary = ReconciliationSummary(
        gst_breakdown=[
            RateBucket(
                rate=9,
                cgst_amount=4.5,
                sgst_amount=4.5,
                total_amount=9,
                purchase_cgst_amount=24.36,
                purchase_sgst_amount=24.36,
                purchase_gst_amount=48.72,
                net_gst_amount=-39.72,
                items=1,
            )
        ]
    )
    text = reports.render_summary(summary)
    assert (
        "GST Breakdown by Rate:\n"
        "-----------------------------------------\n"
        "Rate 9.00%: \n"
        "   Sale GST: ₹9.00 (CGST: ₹4.50, SGST: ₹4.50)\n"
        "   Purchase GST: ₹48.72 (CGST: ₹24.36, SGST: ₹24.36)\n"
        "   Net GST: ₹-39.72 (1 items)\n"
        "\n"
        "Garment Supplier Summary:"
    ) in text


def test_render_summary_from_reconciliation():
    text = reports.render_summary(_result().summary)
    assert "Total Purchase Amount: 590.00\n" in text
    assert "Total Sale Amount: 177.00\n" in text
    assert "Gross Profit (Sale - Purchase): -413.00\n" in text
    assert "Garment Sale Quantity: 5.00\n" in text
    assert "Fabric Purchase Quantity: 4.00\n" in text
    assert "Matched Records: 1\n" in text
    assert "Sales Without Matching Purchase: 1\n" in text
    assert "Unused Purchases: 1\n" in text


def test_render_summary_never_prints_negative_zero():
    text = reports.render_summary(ReconciliationSummary(total_net_profit=-0.0))
    assert "Net Profit (Net Sale - Net Purchase): 0.00\n" in text


def test_amounts_round_exact_halves_up():
    assert to_fixed(0.125) == "0.13"
    assert to_fixed(0.375) == "0.38"
    assert to_fixed(-0.125) == "-0.13"
    assert RateBucket(rate=0.125).label == "0.13%"

    text = reports.render_summary(ReconciliationSummary(total_cgst_amount=0.125, total_sgst_amount=0.375))
    assert "Total CGST: 0.13\n" in text
    assert "Total SGST: 0.38\n" in text
    assert "Total GST: 0.50\n" in text


def test_serialize_empty_input():
    assert reports.serialize([]) == ""


def test_serialize_quotes_every_value():
    records = [
        {"Item Id": "A1", "Description": 'The "best", shirt', "Unit Purchase Amount": 118.0},
        {"Item Id": "A2", "Has Matching Purchase": False},
    ]
    assert reports.serialize(records) == "\n".join(
        [
            "Item Id,Description,Unit Purchase Amount",
            '"A1","The ""best"", shirt","118"',
            '"A2","",""',
        ]
    )


def test_serialize_formats_computed_values():
    record = {"Item Id": "A1", "Flag": True, "Rate": 0.5, "Count": 3, "Missing": None}
    assert reports.serialize([record]).splitlines()[1] == '"A1","true","0.5","3",""'


def test_serialize_parse_round_trip():
    records = [
        {"Item Id": "A1", "Description": "Shirt, blue", "Note": 'said "hi"'},
        {"Item Id": "A2", "Description": "Trousers", "Note": ""},
    ]
    text = reports.serialize(records)
    assert loader.parse(text) == records
    assert reports.serialize(loader.parse(text)) == text


def test_report_tables_cover_every_csv():
    tables = reports.report_tables(_result())
    assert list(tables) == [
        "updated_purchase_order_data.csv",
        "updated_sales_tax_data.csv",
        "matched_data.csv",
        "sales_without_purchase.csv",
        "unused_purchases.csv",
        "supplier_grouped_data.csv",
        "invoice_grouped_data.csv",
    ]
    assert list(tables["supplier_grouped_data.csv"][0]) == [
        "supplierName",
        "purchaseAmount",
        "saleAmount",
        "profit",
        "profitPercentage",
        "commissionPercentage",
        "count",
    ]
    assert tables["invoice_grouped_data.csv"][-1]["invoiceNumber"] == "Total"


def test_write_outputs(tmp_path):
    result = _result()
    written = reports.write_outputs(result, tmp_path / "out")

    assert len(written) == 8
    assert all(path.exists() for path in written.values())
    assert written["summary.txt"].read_text(encoding="utf-8") == reports.render_summary(result.summary)
    matched = written["matched_data.csv"].read_text(encoding="utf-8").splitlines()
    assert len(matched) == 2
    assert "PO_Suppiler Name" in matched[0]
    invoices = loader.parse(written["invoice_grouped_data.csv"].read_text(encoding="utf-8"))
    assert [row["invoiceNumber"] for row in invoices] == ["INV1", "INV2", "Total"]
    assert invoices[0]["grossValue"] == "1180"


def test_write_excel_report(tmp_path):
    from openpyxl import load_workbook

    path = tmp_path / "report.xlsx"
    reports.write_excel_report(_result(), path)

    workbook = load_workbook(path)
    assert workbook.sheetnames[0] == "Summary"
    assert "matched_data" in workbook.sheetnames
    assert "gst_by_rate" in workbook.sheetnames
    sheet = workbook["supplier_grouped_data"]
    assert sheet["A1"].value == "supplierName"
    assert sheet["A2"].value == "X Garment Co"
    assert workbook["gst_by_rate"]["A2"].value == "18.00%"


def test_supplier_report_without_matches_keeps_total_column_order():
    purchases = [{"Store Code": "S1", "Invoice Number": "INV1", "Item Id": "A1", "Unit Cost": "100", "Received Qty": "1"}]
    sales = [{"Store Code": "S1", "Receipt Id": "R1", "Item Id": "Z9", "Qty": "1", "Net Amount": "10"}]
    tables = reports.report_tables(matcher.reconcile(purchases, sales))

    rows = tables["supplier_grouped_data.csv"]
    assert len(rows) == 1
    assert list(rows[0]) == [
        "supplierName",
        "purchaseAmount",
        "saleAmount",
        "count",
        "profit",
        "profitPercentage",
        "commissionPercentage",
    ]
    assert reports.serialize(rows).splitlines() == [
        "supplierName,purchaseAmount,saleAmount,count,profit,profitPercentage,commissionPercentage",
        '"Total","0","0","0","0","0","0"',
    ]
