import logging
from typing import Tuple

import pandas as pd

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = [
    "id", "host_id", "name", "host_name",
    "neighbourhood_group", "neighbourhood",
    "latitude", "longitude", "room_type", "price",
    "minimum_nights", "number_of_reviews",
    "last_review", "reviews_per_month", "availability_365",
]

# identifying columns, never needed by the aggregations
DROP_COLUMNS = ["id", "host_id", "name", "host_name"]


class ListingsParseError(ValueError):
    """The listings file exists but is not a usable delimited table."""


def load_listings(path: str) -> pd.DataFrame:
    """
    Load the listings CSV and normalize the column names
    (case-insensitive, surrounding whitespace ignored).
    No date parsing happens here; `last_review` stays text.
    """
    try:
        df = pd.read_csv(path)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise ListingsParseError(f"Could not parse {path}: {e}") from e

    cols = {str(c).strip().lower(): c for c in df.columns}
    missing = [r for r in REQUIRED_COLUMNS if r not in cols]
    if missing:
        raise ListingsParseError(
            f"CSV is missing required columns: {missing}. Found: {list(df.columns)}"
        )
    logger.debug("Loaded %d rows x %d columns from %s", len(df), df.shape[1], path)
    return df.rename(columns={cols[r]: r for r in REQUIRED_COLUMNS})


def parse_review_dates(s: pd.Series) -> pd.Series:
    """
    Parse ISO date text into midnight timestamps.
    Only full YYYY-MM-DD dates count; a trailing time or UTC offset is ignored
    and the calendar date is kept as written. Empty, partial and malformed
    values all become NaT.
    """
    txt = (s.astype("string")
            .str.strip()
            .str.replace(r"[\u200b\u200e\ufeff]", "", regex=True))
    day = txt.str.extract(r"^(\d{4}-\d{2}-\d{2})(?:[T ]\S*)?$", expand=False)
    parsed = pd.to_datetime(day, errors="coerce", format="%Y-%m-%d")

    bad = txt.fillna("").ne("") & parsed.isna()
    if bad.any():
        logger.warning(
            "%d last_review value(s) could not be parsed and were set to missing, e.g. %r",
            int(bad.sum()), txt[bad].iloc[0],
        )
    return parsed


def clean_listings(df: pd.DataFrame) -> pd.DataFrame:
    """
    Cleaned copy of the raw table:
      last_review -> datetime (NaT when empty/invalid),
      reviews_per_month NaN -> 0,
      identifying columns dropped.
    """
    out = df.drop(columns=DROP_COLUMNS)
    out["last_review"] = parse_review_dates(out["last_review"])
    out["reviews_per_month"] = out["reviews_per_month"].fillna(0)
    return out


def review_date_range(df: pd.DataFrame) -> Tuple[pd.Timestamp, pd.Timestamp]:
    """Earliest and latest last_review in the cleaned table (NaT, NaT if none)."""
    dates = df["last_review"].dropna()
    if dates.empty:
        return pd.NaT, pd.NaT
    return dates.min(), dates.max()
