import os

import folium
import pandas as pd
import pytest

import metrics
import viz


def test_borough_summary_chart_saves(cleaned_listings, tmp_path):
    out = tmp_path / "charts" / "boroughs.png"
    fig, (ax1, ax2), saved = viz.plot_borough_summary(
        metrics.borough_summary(cleaned_listings), str(out))
    assert saved == str(out)
    assert os.path.getsize(out) > 0
    assert len(ax1.patches) == 4
    assert ax2.get_title() == "Average nightly price per borough"


def test_chart_without_path_returns_no_file(cleaned_listings):
    fig, ax, saved = viz.plot_top_neighbourhoods(metrics.top_neighbourhoods(cleaned_listings))
    assert saved is None
    assert len(ax.patches) == 5


def test_missing_columns_rejected(cleaned_listings):
    with pytest.raises(ValueError, match="avg_price"):
        viz.plot_borough_summary(cleaned_listings[["neighbourhood_group"]].assign(listings_count=1))


def test_monthly_price_charts(cleaned_listings, tmp_path):
    wide = metrics.monthly_price_by_borough_wide(cleaned_listings)
    _, ax, saved = viz.plot_monthly_price(wide, str(tmp_path / "price.png"))
    assert os.path.exists(saved)
    assert len(ax.get_lines()) == wide.shape[1] - 1
    _, _, saved = viz.plot_monthly_price_heatmap(wide, str(tmp_path / "heat.png"))
    assert os.path.exists(saved)


def test_distribution_charts_clip_prices(cleaned_listings, tmp_path):
    df = cleaned_listings.copy()
    df.loc[0, "price"] = 10_000
    _, ax, _ = viz.plot_price_histogram(df, max_price=500)
    assert sum(p.get_height() for p in ax.patches) == len(df) - 1
    _, ax, saved = viz.plot_price_boxplot(df, str(tmp_path / "box.png"))
    assert [t.get_text() for t in ax.get_xticklabels()] == ["Bronx", "Brooklyn", "Manhattan", "Queens"]
    assert os.path.exists(saved)


def test_scatter_and_line_charts(cleaned_listings, tmp_path):
    _, ax, _ = viz.plot_price_vs_reviews(cleaned_listings)
    assert len(ax.collections) == cleaned_listings["neighbourhood_group"].nunique()
    _, ax, _ = viz.plot_listing_locations(cleaned_listings)
    assert ax.get_xlabel() == "Longitude"
    monthly = metrics.monthly_reviews_by_room_type(cleaned_listings)
    _, ax, saved = viz.plot_monthly_reviews(monthly, str(tmp_path / "monthly.png"))
    assert len(ax.get_lines()) == monthly["room_type"].nunique()
    assert os.path.exists(saved)


def test_room_types_by_borough_stacks(cleaned_listings):
    wide = metrics.room_type_by_borough(cleaned_listings)
    _, ax, _ = viz.plot_room_types_by_borough(wide)
    assert len(ax.patches) == len(wide) * (wide.shape[1] - 1)


def test_listing_heatmap_html(cleaned_listings, tmp_path):
    out = tmp_path / "map" / "heat.html"
    m, saved = viz.build_listing_heatmap(metrics.heatmap_points(cleaned_listings), str(out))
    assert isinstance(m, folium.Map)
    assert saved == str(out)
    assert "HeatMap" in out.read_text() or "heatLayer" in out.read_text()


def test_listing_heatmap_without_points():
    m, saved = viz.build_listing_heatmap(pd.DataFrame(columns=["latitude", "longitude"]))
    assert saved is None
    assert m.location == list(viz.NYC_CENTER)


def test_listing_heatmap_tiles(cleaned_listings, tmp_path):
    out = tmp_path / "heat.html"
    viz.build_listing_heatmap(metrics.heatmap_points(cleaned_listings), str(out))
    assert "tile.openstreetmap.org" in out.read_text()
    out2 = tmp_path / "heat2.html"
    viz.build_listing_heatmap(metrics.heatmap_points(cleaned_listings), str(out2),
                              tiles="CartoDB positron")
    assert "cartocdn" in out2.read_text()
