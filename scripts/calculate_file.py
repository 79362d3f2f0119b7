#!/usr/bin/env python
"""
Batch calculation - prices a spreadsheet of products and writes the export.

Usage:
    python scripts/calculate_file.py products.xlsx
    python scripts/calculate_file.py products.csv --period 24 --format csv
"""
import argparse
import logging
import sys
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from rental_tool.config.settings import get_settings
from rental_tool.data.export import export_bytes, export_filename
from rental_tool.data.ingest import load_products
from rental_tool.engine import RentalEngine, ConfigurationError, IngestionError


def main(argv=None):
    parser = argparse.ArgumentParser(description="Compute rental pricing for a product spreadsheet.")
    parser.add_argument('source', type=Path, help="xlsx, xls or csv file with products")
    parser.add_argument('--period', type=int, help="Rental period (months) to export")
    parser.add_argument('--supply-rate', help="Supply rate in percent")
    parser.add_argument('--format', choices=['xlsx', 'csv'], default='xlsx')
    parser.add_argument('--output-dir', type=Path, help="Where to write the export")
    parser.add_argument('-v', '--verbose', action='store_true')
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    settings = get_settings()

    print("=" * 60)
    print("RENTAL PRICING CALCULATION")
    print("=" * 60)
    print()

    try:
        config = settings.default_rate_config()
        if args.supply_rate is not None:
            config = config.with_supply_rate(args.supply_rate)
        if args.period is not None:
            config = config.with_selected_period(args.period)
    except ConfigurationError as e:
        print(f"❌ CONFIGURATION ERROR: {e}")
        return 2

    print(f"[1/3] Reading {args.source}...")
    try:
        report = load_products(args.source)
    except IngestionError as e:
        print(f"\n❌ INGESTION FAILED: {e}")
        return 1

    print(f"  Products: {len(report.products)}")
    for warning in report.warnings:
        print(f"  WARNING: {warning}")

    print()
    print("[2/3] Calculating...")
    result = RentalEngine().compute_all(report.products, config)
    for warning in result.warnings:
        print(f"  WARNING: {warning}")

    period = config.effective_period
    print()
    print(f"[3/3] Exporting {period}-month view...")
    output_dir = args.output_dir or settings.output_dir
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / export_filename(period, fmt=args.format)
    output_path.write_bytes(export_bytes(result.products, period, fmt=args.format))

    print()
    print("=" * 60)
    print("✅ CALCULATION COMPLETE")
    print("=" * 60)
    print()
    print("Summary:")
    print(f"  Supply rate: {config.supply_rate_percent:g}%")
    for p in config.periods:
        print(f"  {p:>2} months: discount {config.discount_rate_percent[p]:g}%, fee {config.fee_rate_percent[p]:g}%")
    print(f"  Total final rental ({period} months): {sum(c.selected.final_total_rental_fee for c in result.products):,}")
    print(f"  Output: {output_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
