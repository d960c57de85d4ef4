import logging
from typing import List, Optional, Union

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

TOP_N = 10
PRICE_YEAR = 2019


class EmptyInputError(ValueError):
    """An aggregation was requested on a table with no rows."""


def _require_rows(df: pd.DataFrame, what: str) -> None:
    if len(df) == 0:
        raise EmptyInputError(f"{what}: cleaned listings table has no rows")


def _month_start(s: pd.Series) -> pd.Series:
    return s.dt.to_period("M").dt.to_timestamp()


def grouped_reduce(df: pd.DataFrame, by: Union[str, List[str]], **aggs) -> pd.DataFrame:
    """
    Group `df` by `by` and reduce each group with pandas named aggregations,
    e.g. grouped_reduce(df, "room_type", n=("price", "size"), avg=("price", "mean")).

    Missing keys form their own group, so group sizes always add up to len(df).
    Rows come back sorted by the group keys.
    """
    if not aggs:
        raise ValueError("grouped_reduce needs at least one aggregation")
    keys = [by] if isinstance(by, str) else list(by)
    miss = (set(keys) | {col for col, _ in aggs.values()}) - set(df.columns)
    if miss:
        raise ValueError(f"columns not in table: {sorted(miss)}")
    return (df.groupby(keys, dropna=False, sort=True)
              .agg(**aggs)
              .reset_index())


def borough_summary(df: pd.DataFrame) -> pd.DataFrame:
    """Listing count and mean nightly price per borough."""
    _require_rows(df, "borough_summary")
    return grouped_reduce(
        df, "neighbourhood_group",
        listings_count=("price", "size"),
        avg_price=("price", "mean"),
    )


def top_neighbourhoods(df: pd.DataFrame, n: int = TOP_N) -> pd.DataFrame:
    """
    Neighbourhoods with the `n` highest listing counts.

    Ties at the n-th count are all kept, so the result can hold more than
    `n` rows. Sorted by count (desc), then name.
    """
    if not isinstance(n, (int, np.integer)) or isinstance(n, bool) or n < 1:
        raise ValueError(f"n must be a positive integer, got {n!r}")
    _require_rows(df, "top_neighbourhoods")

    counts = grouped_reduce(df, "neighbourhood", listings_count=("price", "size"))
    counts = counts.sort_values(["listings_count", "neighbourhood"],
                                ascending=[False, True], kind="mergesort")
    if len(counts) > n:
        cutoff = counts["listings_count"].iloc[n - 1]
        counts = counts[counts["listings_count"] >= cutoff]
    return counts.reset_index(drop=True)


def monthly_reviews_by_room_type(df: pd.DataFrame) -> pd.DataFrame:
    """Number of listings last reviewed in each (month, room_type); months are month starts."""
    _require_rows(df, "monthly_reviews_by_room_type")
    reviewed = df.loc[df["last_review"].notna(), ["last_review", "room_type"]].copy()
    reviewed["month"] = _month_start(reviewed["last_review"])
    return grouped_reduce(reviewed, ["month", "room_type"], reviews=("last_review", "size"))


def _priced_in_year(df: pd.DataFrame, year: int) -> pd.DataFrame:
    keep = (
        df["last_review"].notna()
        & (df["price"] > 0)
        & (df["last_review"].dt.year == year)
    )
    out = df.loc[keep, ["last_review", "neighbourhood_group", "price"]].copy()
    out["month"] = _month_start(out["last_review"])
    return out


def monthly_price_by_borough(df: pd.DataFrame, year: int = PRICE_YEAR) -> pd.DataFrame:
    """
    Long form: mean price per (month, borough) over listings last reviewed
    in `year` with a positive price.
    """
    _require_rows(df, "monthly_price_by_borough")
    priced = _priced_in_year(df, year)
    logger.debug("%d of %d listings priced and reviewed in %d", len(priced), len(df), year)
    return grouped_reduce(priced, ["month", "neighbourhood_group"], avg_price=("price", "mean"))


def monthly_price_by_borough_wide(df: pd.DataFrame, year: int = PRICE_YEAR) -> pd.DataFrame:
    """
    Wide form of monthly_price_by_borough: a `month` column plus one column per
    borough. Month/borough pairs with no listings are NaN, not 0.
    """
    long = monthly_price_by_borough(df, year=year)
    wide = long.pivot(index="month", columns="neighbourhood_group", values="avg_price")
    wide = wide.sort_index().sort_index(axis=1)
    wide.columns.name = None
    return wide.reset_index()


def room_type_by_borough(df: pd.DataFrame) -> pd.DataFrame:
    """Listing counts, one row per borough and one column per room type (0 when absent)."""
    _require_rows(df, "room_type_by_borough")
    # one indicator column per room type, summed per borough; missing keys kept on both axes
    dummies = pd.get_dummies(df["room_type"], dummy_na=bool(df["room_type"].isna().any()), dtype=int)
    wide = dummies.groupby(df["neighbourhood_group"], dropna=False, sort=True).sum()
    wide.columns.name = None
    return wide.reset_index()


def borough_price_stats(df: pd.DataFrame) -> pd.DataFrame:
    _require_rows(df, "borough_price_stats")
    return grouped_reduce(
        df, "neighbourhood_group",
        listings_count=("price", "size"),
        min_price=("price", "min"),
        q1_price=("price", lambda s: s.quantile(0.25)),
        median_price=("price", "median"),
        q3_price=("price", lambda s: s.quantile(0.75)),
        max_price=("price", "max"),
    )


def heatmap_points(df: pd.DataFrame, weight: Optional[str] = None) -> pd.DataFrame:
    """Coordinates (plus an optional weight column) of listings with a usable location."""
    _require_rows(df, "heatmap_points")
    cols = ["latitude", "longitude"] + ([weight] if weight else [])
    miss = set(cols) - set(df.columns)
    if miss:
        raise ValueError(f"columns not in table: {sorted(miss)}")
    pts = df[cols].dropna()
    if weight:
        pts = pts.rename(columns={weight: "weight"})
    return pts.reset_index(drop=True)
