"""
Charlottesville Crime - Crime Data Preprocessor

Cleans the two address fields of the crime reports and derives the address
string used for geocoding.

Transformations:
    - Whitespace trimming on block number and street name
    - Block number parsing (unparseable -> missing)
    - Block number recoding: missing -> 100, 0 -> 100, otherwise unchanged
    - Address construction: "{block} {street} {locality}"

The city reports incidents at hundred-block precision, so a block number of
0 or a blank block number both stand for the first block of the street.

Usage:
    from cville_crime.datasets.crime.preprocess import CrimePreprocessor

    preprocessor = CrimePreprocessor()
    result = preprocessor.run(raw_df, execution_date="2024-01-15")
    processed_df = preprocessor.get_data()
"""

from __future__ import annotations

import logging
import math
from typing import Any

import numpy as np
import pandas as pd

from cville_crime.datasets.base import BasePreprocessor
from cville_crime.datasets.crime.ingest import BLOCK_NUMBER_FIELD, STREET_NAME_FIELD
from cville_crime.shared.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_BLOCK_NUMBER = 100
DEFAULT_LOCALITY = "Charlottesville VA"
INPUT_COLUMNS = ("block_number", "street_name")


# =============================================================================
# Normalizer
# =============================================================================


def _parse_number(value: Any) -> float | None:
    """Parse a block number, returning None for anything that is not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _as_block(number: float) -> int | float:
    return int(number) if float(number).is_integer() else number


def clean_block_number(value: Any, default: int = DEFAULT_BLOCK_NUMBER) -> int | float:
    """
    Normalize a single block number.

    >>> clean_block_number(" 450 ")
    450
    >>> clean_block_number("0")
    100
    >>> clean_block_number(None)
    100
    """
    number = _parse_number(value)
    if number is None or number == 0:
        return default
    return _as_block(number)


def clean_street_name(value: Any) -> str:
    """Trim a street name; missing values become an empty string."""
    if value is None or (isinstance(value, float) and math.isnan(value)) or value is pd.NA:
        return ""
    return str(value).strip()


def normalize_block_numbers(
    series: pd.Series, default: int = DEFAULT_BLOCK_NUMBER
) -> tuple[pd.Series, dict[str, int]]:
    """
    Vectorised block number normalization.

    Returns:
        Tuple of (cleaned series, counts of recoded values by reason)
    """
    numbers = series.map(_parse_number).astype("float64")

    missing = numbers.isna()
    unparseable = missing & series.notna() & (series.astype(str).str.strip() != "")
    zero = numbers == 0

    cleaned = numbers.where(~(missing | zero), float(default))
    if len(cleaned) == 0 or bool(np.all(np.mod(cleaned.to_numpy(), 1) == 0)):
        cleaned = cleaned.astype("int64")

    counts = {
        "missing_block_number": int((missing & ~unparseable).sum()),
        "unparseable_block_number": int(unparseable.sum()),
        "zero_block_number": int(zero.sum()),
    }
    return cleaned.rename(series.name), counts


def normalize_street_names(series: pd.Series) -> pd.Series:
    """Vectorised street name trimming."""
    return series.map(clean_street_name).astype(object).rename(series.name)


# =============================================================================
# Address Builder
# =============================================================================


def build_address(block: int | float, street: str, locality: str = DEFAULT_LOCALITY) -> str:
    """
    Join block number, street name and locality with single spaces.

    >>> build_address(100, "AVON ST")
    '100 AVON ST Charlottesville VA'
    """
    if isinstance(block, float):
        block = _as_block(block)
    return f"{block} {street} {locality}"


def build_addresses(
    df: pd.DataFrame,
    locality: str = DEFAULT_LOCALITY,
    block_col: str = "block_number",
    street_col: str = "street_name",
) -> pd.Series:
    """Build one address string per row of a normalized frame."""
    if df.empty:
        return pd.Series([], index=df.index, dtype=object, name="address")

    addresses = [
        build_address(block, street, locality)
        for block, street in zip(df[block_col], df[street_col], strict=True)
    ]
    return pd.Series(addresses, index=df.index, dtype=object, name="address")


# =============================================================================
# Preprocessor
# =============================================================================


class CrimePreprocessor(BasePreprocessor):
    """
    Preprocessor for Charlottesville crime reports.

    Adds normalized `block_number` / `street_name` columns and the derived
    `address` column. No rows are dropped; report metadata passes through.
    """

    COLUMN_MAPPINGS = {
        BLOCK_NUMBER_FIELD: "block_number",
        STREET_NAME_FIELD: "street_name",
    }

    REQUIRED_COLUMNS = ["block_number", "street_name", "address"]

    def __init__(self, config: Settings | None = None, locality: str | None = None):
        """Initialize crime preprocessor."""
        super().__init__(config)
        self.locality = locality or self.config.geocoding.locality
        self.default_block_number = self.config.crime.default_block_number

    def get_dataset_name(self) -> str:
        """Return dataset name."""
        return "crime"

    def get_required_columns(self) -> list[str]:
        """Return required output columns."""
        return self.REQUIRED_COLUMNS

    def get_column_mappings(self) -> dict[str, str]:
        """Return column name mappings."""
        return self.COLUMN_MAPPINGS

    def transform(self, df: pd.DataFrame) -> pd.DataFrame:
        """
        Normalize address fields and build the address string.

        Args:
            df: Raw DataFrame with renamed columns

        Returns:
            DataFrame with cleaned fields and an `address` column
        """
        if len(df) == 0:
            # An empty snapshot carries no columns at all
            for col in INPUT_COLUMNS:
                if col not in df.columns:
                    df[col] = pd.Series(index=df.index, dtype=object)

        for col in INPUT_COLUMNS:
            if col not in df.columns:
                raise ValueError(f"Missing input column: {col}")

        block_numbers, counts = normalize_block_numbers(
            df["block_number"], default=self.default_block_number
        )
        df["block_number"] = block_numbers
        for reason, count in counts.items():
            self.log_recoded_values(reason, count)
        self.log_transformation("normalize_block_number")

        df["street_name"] = normalize_street_names(df["street_name"])
        self.log_transformation("trim_street_name")

        df["address"] = build_addresses(df, self.locality)
        self.log_transformation("build_address")

        recoded = sum(counts.values())
        if recoded:
            logger.info(
                f"Recoded {recoded} block numbers to {self.default_block_number}",
                extra=counts,
            )

        return df


# =============================================================================
# Convenience Functions
# =============================================================================


def preprocess_crime_data(
    df: pd.DataFrame,
    execution_date: str,
    config: Settings | None = None,
) -> pd.DataFrame:
    """
    Preprocess crime data, raising if preprocessing did not succeed.

    Returns the processed DataFrame.
    """
    preprocessor = CrimePreprocessor(config)
    result = preprocessor.run(df, execution_date)
    if not result.success:
        raise RuntimeError(f"Crime preprocessing failed: {result.error_message}")
    return preprocessor.get_data()
