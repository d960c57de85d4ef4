"""
Run the NYC Airbnb 2019 listings report end to end.

    nyc-airbnb-report data/airbnb_nyc_2019.csv --out-dir reports/

Loads and cleans the listings, computes every aggregate table, writes each
table as CSV and draws the charts into the output directory.
"""
import argparse
import logging
import os
import sys
from typing import Dict, List, Optional

import pandas as pd

import metrics
import viz
from data_prep import clean_listings, load_listings, review_date_range

logger = logging.getLogger(__name__)


class StageError(RuntimeError):
    """A pipeline stage failed; wraps the original exception."""

    def __init__(self, stage: str, error: Exception):
        super().__init__(f"stage '{stage}' failed: {type(error).__name__}: {error}")
        self.stage = stage
        self.error = error


def _stage(name, fn, *args, **kwargs):
    logger.debug("Running stage %s", name)
    try:
        return fn(*args, **kwargs)
    except Exception as e:
        raise StageError(name, e) from e


def run_pipeline(csv_path: str, *, top_n: int = metrics.TOP_N, year: int = metrics.PRICE_YEAR):
    """
    Load, clean and aggregate. Returns (cleaned listings, dict of aggregate tables).
    The first failing stage aborts the run with a StageError.
    """
    raw = _stage("load", load_listings, csv_path)
    cleaned = _stage("clean", clean_listings, raw)
    logger.info("Loaded %s listings from %s", f"{len(raw):,}", csv_path)

    tables: Dict[str, pd.DataFrame] = {
        "borough_summary": _stage("borough_summary", metrics.borough_summary, cleaned),
        "top_neighbourhoods": _stage("top_neighbourhoods", metrics.top_neighbourhoods, cleaned, n=top_n),
        "monthly_reviews": _stage("monthly_reviews", metrics.monthly_reviews_by_room_type, cleaned),
        "monthly_price": _stage("monthly_price", metrics.monthly_price_by_borough, cleaned, year=year),
        "monthly_price_wide": _stage("monthly_price_wide", metrics.monthly_price_by_borough_wide, cleaned, year=year),
        "room_type_by_borough": _stage("room_type_by_borough", metrics.room_type_by_borough, cleaned),
        "borough_price_stats": _stage("borough_price_stats", metrics.borough_price_stats, cleaned),
    }
    return cleaned, tables


def write_tables(tables: Dict[str, pd.DataFrame], out_dir: str) -> List[str]:
    os.makedirs(out_dir, exist_ok=True)
    paths = []
    for name, table in tables.items():
        path = os.path.join(out_dir, f"{name}.csv")
        table.to_csv(path, index=False, date_format="%Y-%m-%d", float_format="%.6f")
        paths.append(path)
    return paths


def render_report(
    cleaned: pd.DataFrame,
    tables: Dict[str, pd.DataFrame],
    out_dir: str,
    *,
    max_price: Optional[float] = viz.DEFAULT_MAX_PRICE,
) -> List[str]:
    """Draw every chart into out_dir. Returns the written paths."""
    p = lambda name: os.path.join(out_dir, name)
    saved = [
        viz.plot_borough_summary(tables["borough_summary"], p("borough_summary.png"))[2],
        viz.plot_top_neighbourhoods(tables["top_neighbourhoods"], p("top_neighbourhoods.png"))[2],
        viz.plot_room_types_by_borough(tables["room_type_by_borough"], p("room_types_by_borough.png"))[2],
        viz.plot_price_boxplot(cleaned, p("price_boxplot.png"), max_price=max_price)[2],
        viz.plot_price_histogram(cleaned, p("price_histogram.png"), max_price=max_price)[2],
        viz.plot_price_vs_reviews(cleaned, p("price_vs_reviews.png"), max_price=max_price)[2],
        viz.plot_listing_locations(cleaned, p("listing_locations.png"))[2],
        viz.plot_monthly_reviews(tables["monthly_reviews"], p("monthly_reviews.png"))[2],
        viz.plot_monthly_price(tables["monthly_price_wide"], p("monthly_price.png"))[2],
        viz.plot_monthly_price_heatmap(tables["monthly_price_wide"], p("monthly_price_heatmap.png"))[2],
        viz.build_listing_heatmap(metrics.heatmap_points(cleaned), p("listing_heatmap.html"))[1],
    ]
    return [s for s in saved if s]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="NYC Airbnb 2019 listings report")
    parser.add_argument("csv_path", help="Path to the listings CSV (e.g. airbnb_nyc_2019.csv)")
    parser.add_argument("--out-dir", default="reports", help="Where tables and charts are written")
    parser.add_argument("--top-n", type=int, default=metrics.TOP_N,
                        help="How many neighbourhoods to rank (ties at the cutoff are kept)")
    parser.add_argument("--year", type=int, default=metrics.PRICE_YEAR,
                        help="Calendar year for the monthly price tables")
    parser.add_argument("--max-price", type=float, default=viz.DEFAULT_MAX_PRICE,
                        help="Clip distribution charts at this price")
    parser.add_argument("--no-clip", action="store_true",
                        help="Draw distribution charts over the full price range")
    parser.add_argument("--no-charts", action="store_true", help="Only write the aggregate tables")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        cleaned, tables = run_pipeline(args.csv_path, top_n=args.top_n, year=args.year)
    except StageError as e:
        logger.error("Report aborted: %s", e)
        return 1

    earliest, latest = review_date_range(cleaned)
    logger.info("Last reviews range from %s to %s", earliest, latest)

    written = write_tables(tables, args.out_dir)
    if not args.no_charts:
        max_price = None if args.no_clip else args.max_price
        written += render_report(cleaned, tables, args.out_dir, max_price=max_price)
    logger.info("Wrote %d files to %s", len(written), args.out_dir)
    return 0


if __name__ == "__main__":
    sys.exit(main())
