from __future__ import annotations
import os
from typing import Optional, Tuple, Iterable
import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import folium
from folium.plugins import HeatMap

DEFAULT_MAX_PRICE = 500          # distribution charts clip the long price tail
NYC_CENTER = (40.7128, -74.0060)


def _ensure_dir(p: Optional[str]) -> None:
    if p:
        d = os.path.dirname(p)
        if d and not os.path.exists(d):
            os.makedirs(d, exist_ok=True)


def _require(df: pd.DataFrame, cols: Iterable[str], name: str) -> None:
    missing = set(cols) - set(df.columns)
    if missing:
        raise ValueError(f"{name} is missing columns: {sorted(missing)}")


def _finish(fig: plt.Figure, out_path: Optional[str], show: bool) -> Optional[str]:
    fig.tight_layout()
    saved = None
    if out_path:
        _ensure_dir(out_path)
        fig.savefig(out_path, dpi=150, bbox_inches="tight")
        saved = out_path
    if show:
        plt.show()
    else:
        plt.close(fig)
    return saved


def plot_borough_summary(
    summary: pd.DataFrame,
    out_path: Optional[str] = None,
    show: bool = False,
) -> Tuple[plt.Figure, Tuple[plt.Axes, plt.Axes], Optional[str]]:
    """
    Two bar charts side by side: listings per borough and mean price per borough.
    Expects the output of metrics.borough_summary.
    """
    _require(summary, {"neighbourhood_group", "listings_count", "avg_price"}, "summary")
    labels = summary["neighbourhood_group"].fillna("(missing)").astype(str)

    fig, (ax1, ax2) = plt.subplots(1, 2, figsize=(12, 4))
    ax1.bar(labels, summary["listings_count"])
    ax1.set_title("Listings per borough")
    ax1.set_ylabel("Listings")
    ax2.bar(labels, summary["avg_price"], color="tab:orange")
    ax2.set_title("Average nightly price per borough")
    ax2.set_ylabel("Price (USD)")
    for ax in (ax1, ax2):
        ax.tick_params(axis="x", rotation=30)

    saved = _finish(fig, out_path, show)
    return fig, (ax1, ax2), saved


def plot_top_neighbourhoods(
    top: pd.DataFrame,
    out_path: Optional[str] = None,
    show: bool = False,
) -> Tuple[plt.Figure, plt.Axes, Optional[str]]:
    """Horizontal bars, busiest neighbourhood on top."""
    _require(top, {"neighbourhood", "listings_count"}, "top")
    fig, ax = plt.subplots(figsize=(8, 0.4 * len(top) + 1.5))
    ax.barh(top["neighbourhood"].astype(str)[::-1], top["listings_count"][::-1])
    ax.set_title(f"Top {len(top)} neighbourhoods by listings")
    ax.set_xlabel("Listings")
    saved = _finish(fig, out_path, show)
    return fig, ax, saved


def plot_room_types_by_borough(
    wide: pd.DataFrame,
    out_path: Optional[str] = None,
    show: bool = False,
) -> Tuple[plt.Figure, plt.Axes, Optional[str]]:
    """Stacked bars from metrics.room_type_by_borough."""
    _require(wide, {"neighbourhood_group"}, "wide")
    room_types = [c for c in wide.columns if c != "neighbourhood_group"]
    labels = wide["neighbourhood_group"].fillna("(missing)").astype(str)

    fig, ax = plt.subplots(figsize=(9, 4))
    bottom = np.zeros(len(wide))
    for rt in room_types:
        vals = wide[rt].to_numpy(dtype=float)
        ax.bar(labels, vals, bottom=bottom, label=str(rt))
        bottom += vals
    ax.set_title("Room types per borough")
    ax.set_ylabel("Listings")
    ax.legend(title="Room type")
    saved = _finish(fig, out_path, show)
    return fig, ax, saved


def plot_price_boxplot(
    listings: pd.DataFrame,
    out_path: Optional[str] = None,
    show: bool = False,
    *,
    max_price: Optional[float] = DEFAULT_MAX_PRICE,
) -> Tuple[plt.Figure, plt.Axes, Optional[str]]:
    """Price distribution per borough (cleaned listings, optionally clipped at max_price)."""
    _require(listings, {"neighbourhood_group", "price"}, "listings")
    df = listings[listings["price"].notna()]
    if max_price is not None:
        df = df[df["price"] <= max_price]

    groups = sorted(df["neighbourhood_group"].dropna().unique())
    data = [df.loc[df["neighbourhood_group"] == g, "price"].to_numpy() for g in groups]

    fig, ax = plt.subplots(figsize=(9, 5))
    if data:
        ax.boxplot(data, showfliers=False)
        ax.set_xticks(range(1, len(groups) + 1))
        ax.set_xticklabels(groups)
    title = "Nightly price by borough"
    ax.set_title(title if max_price is None else f"{title} (price <= {max_price:g})")
    ax.set_ylabel("Price (USD)")
    saved = _finish(fig, out_path, show)
    return fig, ax, saved


def plot_price_histogram(
    listings: pd.DataFrame,
    out_path: Optional[str] = None,
    show: bool = False,
    *,
    bins: int = 50,
    max_price: Optional[float] = DEFAULT_MAX_PRICE,
) -> Tuple[plt.Figure, plt.Axes, Optional[str]]:
    _require(listings, {"price"}, "listings")
    prices = listings["price"].dropna()
    if max_price is not None:
        prices = prices[prices <= max_price]

    fig, ax = plt.subplots(figsize=(8, 4))
    ax.hist(prices.to_numpy(), bins=bins)
    ax.set_title("Distribution of nightly prices")
    ax.set_xlabel("Price (USD)")
    ax.set_ylabel("Listings")
    saved = _finish(fig, out_path, show)
    return fig, ax, saved


def plot_price_vs_reviews(
    listings: pd.DataFrame,
    out_path: Optional[str] = None,
    show: bool = False,
    *,
    max_price: Optional[float] = DEFAULT_MAX_PRICE,
) -> Tuple[plt.Figure, plt.Axes, Optional[str]]:
    """Scatter of price against number_of_reviews, one colour per borough."""
    _require(listings, {"neighbourhood_group", "price", "number_of_reviews"}, "listings")
    df = listings.dropna(subset=["price", "number_of_reviews"])
    if max_price is not None:
        df = df[df["price"] <= max_price]

    fig, ax = plt.subplots(figsize=(8, 5))
    for borough, sub in df.groupby("neighbourhood_group", sort=True):
        ax.scatter(sub["price"], sub["number_of_reviews"], s=6, alpha=0.5, label=borough)
    ax.set_title("Price vs. number of reviews")
    ax.set_xlabel("Price (USD)")
    ax.set_ylabel("Number of reviews")
    if len(df):
        ax.legend(title="Borough", markerscale=2)
    saved = _finish(fig, out_path, show)
    return fig, ax, saved


def plot_listing_locations(
    listings: pd.DataFrame,
    out_path: Optional[str] = None,
    show: bool = False,
) -> Tuple[plt.Figure, plt.Axes, Optional[str]]:
    """Longitude/latitude scatter coloured by borough."""
    _require(listings, {"neighbourhood_group", "latitude", "longitude"}, "listings")
    df = listings.dropna(subset=["latitude", "longitude"])

    fig, ax = plt.subplots(figsize=(7, 7))
    for borough, sub in df.groupby("neighbourhood_group", sort=True):
        ax.scatter(sub["longitude"], sub["latitude"], s=2, alpha=0.4, label=borough)
    ax.set_title("Listing locations")
    ax.set_xlabel("Longitude")
    ax.set_ylabel("Latitude")
    if len(df):
        ax.legend(title="Borough", markerscale=4)
    saved = _finish(fig, out_path, show)
    return fig, ax, saved


def plot_monthly_reviews(
    monthly: pd.DataFrame,
    out_path: Optional[str] = None,
    show: bool = False,
) -> Tuple[plt.Figure, plt.Axes, Optional[str]]:
    """One line per room type from metrics.monthly_reviews_by_room_type."""
    _require(monthly, {"month", "room_type", "reviews"}, "monthly")
    fig, ax = plt.subplots(figsize=(11, 4))
    for rt, sub in monthly.groupby("room_type", sort=True):
        sub = sub.sort_values("month")
        ax.plot(sub["month"], sub["reviews"], linewidth=1.4, label=rt)
    ax.set_title("Listings by month of last review")
    ax.set_xlabel("Month")
    ax.set_ylabel("Listings")
    if len(monthly):
        ax.legend(title="Room type")
    saved = _finish(fig, out_path, show)
    return fig, ax, saved


def plot_monthly_price(
    wide: pd.DataFrame,
    out_path: Optional[str] = None,
    show: bool = False,
) -> Tuple[plt.Figure, plt.Axes, Optional[str]]:
    """One line per borough column of metrics.monthly_price_by_borough_wide; gaps stay gaps."""
    _require(wide, {"month"}, "wide")
    boroughs = [c for c in wide.columns if c != "month"]
    fig, ax = plt.subplots(figsize=(11, 4))
    for b in boroughs:
        ax.plot(wide["month"], wide[b], marker="o", markersize=3, linewidth=1.4, label=str(b))
    ax.set_title("Average nightly price by month of last review")
    ax.set_xlabel("Month")
    ax.set_ylabel("Price (USD)")
    if boroughs:
        ax.legend(title="Borough")
    saved = _finish(fig, out_path, show)
    return fig, ax, saved


def plot_monthly_price_heatmap(
    wide: pd.DataFrame,
    out_path: Optional[str] = None,
    show: bool = False,
) -> Tuple[plt.Figure, plt.Axes, Optional[str]]:
    """Month x borough image of the wide price table (blank cells where no data)."""
    _require(wide, {"month"}, "wide")
    boroughs = [c for c in wide.columns if c != "month"]
    vals = np.ma.masked_invalid(wide[boroughs].to_numpy(dtype=float))

    fig, ax = plt.subplots(figsize=(8, 0.35 * len(wide) + 2))
    ax.set_title("Average price heatmap (month x borough)")
    if vals.size:
        im = ax.imshow(vals, aspect="auto")
        ax.set_xticks(range(len(boroughs)))
        ax.set_xticklabels([str(b) for b in boroughs], rotation=30)
        ax.set_yticks(range(len(wide)))
        ax.set_yticklabels(pd.to_datetime(wide["month"]).dt.strftime("%Y-%m"))
        fig.colorbar(im, ax=ax, label="Price (USD)")
    saved = _finish(fig, out_path, show)
    return fig, ax, saved


def build_listing_heatmap(
    points: pd.DataFrame,
    out_html_path: Optional[str] = None,
    *,
    radius: int = 10,
    blur: int = 15,
    zoom_start: int = 11,
    tiles: str = "OpenStreetMap",
) -> Tuple[folium.Map, Optional[str]]:
    """
    Interactive density heatmap (folium) from metrics.heatmap_points.
    A `weight` column, when present, weights each point.
    """
    _require(points, {"latitude", "longitude"}, "points")
    if len(points):
        center = [points["latitude"].mean(), points["longitude"].mean()]
    else:
        center = list(NYC_CENTER)
    m = folium.Map(location=center, zoom_start=zoom_start, tiles=tiles)

    cols = ["latitude", "longitude"] + (["weight"] if "weight" in points.columns else [])
    heat_data = points[cols].astype(float).values.tolist()
    if heat_data:
        HeatMap(heat_data, radius=radius, blur=blur).add_to(m)

    saved = None
    if out_html_path:
        _ensure_dir(out_html_path)
        m.save(out_html_path)
        saved = out_html_path
    return m, saved
