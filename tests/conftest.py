import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from data_prep import clean_listings

RAW_COLUMNS = [
    "id", "name", "host_id", "host_name", "neighbourhood_group", "neighbourhood",
    "latitude", "longitude", "room_type", "price", "minimum_nights",
    "number_of_reviews", "last_review", "reviews_per_month", "availability_365",
]


@pytest.fixture()
def raw_listings():
    """Small raw table covering the cleaning edge cases."""
    data = {
        "id": [1, 2, 3, 4, 5, 6],
        "name": ["Cozy loft", "Sunny room", "Bed in hall", "Big flat", "Studio", "Couch"],
        "host_id": [10, 20, 30, 40, 50, 60],
        "host_name": ["Ana", "Ben", "Cy", "Di", "Ed", "Flo"],
        "neighbourhood_group": ["Manhattan", "Brooklyn", "Manhattan", "Queens", "Brooklyn", "Bronx"],
        "neighbourhood": ["Harlem", "Williamsburg", "Harlem", "Astoria", "Bushwick", "Mott Haven"],
        "latitude": [40.81, 40.71, 40.80, 40.76, 40.69, 40.81],
        "longitude": [-73.94, -73.95, -73.95, -73.92, -73.92, -73.92],
        "room_type": ["Entire home/apt", "Private room", "Shared room",
                      "Entire home/apt", "Private room", "Shared room"],
        "price": [200, 100, 0, 150, 80, 40],
        "minimum_nights": [1, 2, 1, 3, 1, 1],
        "number_of_reviews": [10, 0, 5, 7, 3, 0],
        "last_review": ["2019-06-15", np.nan, "2019-06-02", "not a date", "2018-12-31", ""],
        "reviews_per_month": [0.5, np.nan, 1.2, 0.3, np.nan, np.nan],
        "availability_365": [300, 0, 100, 50, 365, 10],
    }
    return pd.DataFrame(data)[RAW_COLUMNS]


@pytest.fixture()
def cleaned_listings(raw_listings):
    return clean_listings(raw_listings)


@pytest.fixture()
def write_csv(tmp_path):
    """Write a DataFrame to a CSV file under tmp_path and return its path."""
    def _write(df: pd.DataFrame, name: str = "airbnb_nyc_2019.csv") -> str:
        path = tmp_path / name
        df.to_csv(path, index=False)
        return str(path)
    return _write
