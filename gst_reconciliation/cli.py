"""Command line interface for the GST reconciliation app."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Sequence

from . import loader, matcher, preprocess, reports
from .models import Record

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _load_purchase_orders(paths: Sequence[Path], delimiter: str) -> List[Record]:
    """Parse every purchase order export and concatenate them in order."""

    combined: List[Record] = []
    for path in paths:
        combined.extend(loader.load_records(path, delimiter))
    logger.info("Combined purchase order records: %d", len(combined))
    return combined


def _ensure_input_file(path: Path, *, description: str, parser: argparse.ArgumentParser) -> Path:
    if not path.exists() or not path.is_file():
        parser.error(f"{description} file not found: {path}")
    return path


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Purchase order x sales tax GST reconciliation")
    parser.add_argument(
        "--purchase-orders",
        required=True,
        nargs="+",
        type=Path,
        help="One or more purchase order reports (.xlsx or .csv).",
    )
    parser.add_argument(
        "--sales-tax",
        required=True,
        type=Path,
        help="Sales tax (point of sale) report (.xlsx or .csv).",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        help="Directory for the CSV reports and summary (defaults to the first purchase order's directory).",
    )
    parser.add_argument(
        "--excel",
        type=Path,
        help="Optional path of an Excel workbook holding every report.",
    )
    parser.add_argument(
        "--delimiter",
        default=",",
        help="Field delimiter of the CSV inputs and outputs.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser


def main(argv: List[str] | None = None) -> int:
    parser = build_argument_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    if len(args.delimiter) != 1:
        parser.error("--delimiter must be a single character.")

    try:
        purchase_paths = [
            _ensure_input_file(path, description="Purchase order", parser=parser)
            for path in args.purchase_orders
        ]
        sales_path = _ensure_input_file(args.sales_tax, description="Sales tax", parser=parser)

        purchase_records = _load_purchase_orders(purchase_paths, args.delimiter)
        sales_records = loader.load_records(sales_path, args.delimiter)

        result = matcher.reconcile(purchase_records, sales_records)

        output_dir: Path = args.output_dir or purchase_paths[0].parent
        reports.write_outputs(result, output_dir, args.delimiter)
        if args.excel:
            args.excel.parent.mkdir(parents=True, exist_ok=True)
            reports.write_excel_report(result, args.excel)
        print(reports.render_summary(result.summary))
        return 0
    except preprocess.ReconciliationError as error:
        parser.error(f"Error processing files: {error}")
    except loader.DataValidationError as error:
        parser.error(str(error))
    except RuntimeError as error:
        parser.error(str(error))
    except OSError as error:
        parser.error(f"Failed to write reports: {error}")

    return 1


if __name__ == "__main__":
    raise SystemExit(main())
