"""
Unit tests for the crime preprocessor.

Covers block number normalization, street name trimming and address
construction.
"""

import numpy as np
import pandas as pd
import pytest

from cville_crime.datasets.crime.preprocess import (
    CrimePreprocessor,
    build_address,
    build_addresses,
    clean_block_number,
    clean_street_name,
    normalize_block_numbers,
    normalize_street_names,
    preprocess_crime_data,
)


class TestCleanBlockNumber:
    """Recoding rule: missing -> 100, 0 -> 100, everything else unchanged."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("0", 100),
            (None, 100),
            ("450", 450),
            (" 450 ", 450),
            (0, 100),
            (0.0, 100),
            (np.nan, 100),
            ("", 100),
            ("   ", 100),
            ("1200", 1200),
            (300.0, 300),
        ],
    )
    def test_recoding(self, raw, expected):
        """Test the recode table."""
        assert clean_block_number(raw) == expected

    def test_non_numeric_matches_missing(self):
        """Test unparseable input is treated the same as a missing value."""
        assert clean_block_number("abc") == clean_block_number(None) == 100

    def test_integral_values_are_ints(self):
        """Test whole numbers come back as int so addresses read '100', not '100.0'."""
        assert isinstance(clean_block_number("100"), int)

    def test_fractional_value_unchanged(self):
        """Test a non-integral value passes through."""
        assert clean_block_number("12.5") == 12.5

    def test_custom_default(self):
        """Test the replacement value is configurable."""
        assert clean_block_number(None, default=1) == 1


class TestCleanStreetName:
    """Test street name trimming."""

    def test_strips_whitespace(self):
        assert clean_street_name("  AVON ST ") == "AVON ST"

    def test_keeps_internal_spaces(self):
        assert clean_street_name("E MARKET  ST") == "E MARKET  ST"

    def test_missing_becomes_empty(self):
        assert clean_street_name(None) == ""
        assert clean_street_name(np.nan) == ""


class TestNormalizeSeries:
    """Test vectorised normalization."""

    def test_block_numbers(self):
        """Test recoding over a Series with recode counts."""
        series = pd.Series(["0", None, "450", " 12 ", "abc"], name="block_number")

        cleaned, counts = normalize_block_numbers(series)

        assert cleaned.tolist() == [100, 100, 450, 12, 100]
        assert cleaned.dtype == "int64"
        assert cleaned.name == "block_number"
        assert counts == {
            "missing_block_number": 1,
            "unparseable_block_number": 1,
            "zero_block_number": 1,
        }

    def test_block_numbers_do_not_mutate_input(self):
        """Test the input Series is left untouched."""
        series = pd.Series(["0", None, " 12 "])
        original = series.copy()

        normalize_block_numbers(series)

        pd.testing.assert_series_equal(series, original)

    def test_empty_series(self):
        """Test empty input."""
        cleaned, counts = normalize_block_numbers(pd.Series([], dtype=object))
        assert len(cleaned) == 0
        assert sum(counts.values()) == 0

    def test_street_names(self):
        series = pd.Series([" AVON ST", "MAIN ST ", None])
        assert normalize_street_names(series).tolist() == ["AVON ST", "MAIN ST", ""]


class TestBuildAddress:
    """Test address construction."""

    def test_build_address(self):
        assert build_address(100, "AVON ST") == "100 AVON ST Charlottesville VA"

    def test_float_block_renders_as_integer(self):
        assert build_address(100.0, "AVON ST") == "100 AVON ST Charlottesville VA"

    def test_custom_locality(self):
        assert build_address(200, "PARK ST", "Albemarle VA") == "200 PARK ST Albemarle VA"

    def test_deterministic(self):
        assert build_address(300, "E MAIN ST") == build_address(300, "E MAIN ST")

    def test_build_addresses(self):
        """Test one address per row, index preserved."""
        df = pd.DataFrame(
            {"block_number": [100, 200], "street_name": ["MAIN ST", "PARK ST"]},
            index=[10, 11],
        )

        addresses = build_addresses(df)

        assert addresses.tolist() == [
            "100 MAIN ST Charlottesville VA",
            "200 PARK ST Charlottesville VA",
        ]
        assert addresses.index.tolist() == [10, 11]

    def test_build_addresses_empty(self):
        df = pd.DataFrame({"block_number": [], "street_name": []})
        assert build_addresses(df).empty


class TestCrimePreprocessor:
    """Test cases for CrimePreprocessor class."""

    @pytest.fixture
    def preprocessor(self, test_config):
        """Create a CrimePreprocessor instance."""
        return CrimePreprocessor(test_config)

    def test_get_dataset_name(self, preprocessor):
        assert preprocessor.get_dataset_name() == "crime"

    def test_get_column_mappings(self, preprocessor):
        """Test column mappings are defined."""
        mappings = preprocessor.get_column_mappings()
        assert mappings["BlockNumber"] == "block_number"
        assert mappings["StreetName"] == "street_name"

    def test_run_success(self, preprocessor, sample_raw_records):
        """Test successful preprocessing run."""
        result = preprocessor.run(sample_raw_records, execution_date="2024-01-15")

        assert result.success
        assert result.dataset == "crime"
        assert result.rows_input == 3
        assert result.rows_output == 3
        assert result.rows_dropped == 0

    def test_run_builds_addresses(self, preprocessor, sample_raw_records):
        """Test the address column is derived from the cleaned fields."""
        preprocessor.run(sample_raw_records, execution_date="2024-01-15")
        df = preprocessor.get_data()

        assert df["address"].tolist() == [
            "100 MAIN ST Charlottesville VA",
            "100 MAIN ST Charlottesville VA",
            "200 PARK ST Charlottesville VA",
        ]
        assert df["block_number"].tolist() == [100, 100, 200]
        assert df["street_name"].tolist() == ["MAIN ST", "MAIN ST", "PARK ST"]

    def test_run_keeps_report_metadata(self, preprocessor, sample_raw_records):
        """Test untouched columns pass through."""
        preprocessor.run(sample_raw_records, execution_date="2024-01-15")
        df = preprocessor.get_data()

        assert df["Offense"].tolist() == sample_raw_records["Offense"].tolist()
        assert df["RecordID"].tolist() == [1, 2, 3]

    def test_run_does_not_mutate_input(self, preprocessor, sample_raw_records):
        """Test the caller's frame is unchanged."""
        original = sample_raw_records.copy()

        preprocessor.run(sample_raw_records, execution_date="2024-01-15")

        pd.testing.assert_frame_equal(sample_raw_records, original)

    def test_run_reports_recodes(self, preprocessor, sample_raw_records):
        """Test recoded block numbers are counted."""
        result = preprocessor.run(sample_raw_records, execution_date="2024-01-15")

        assert result.recoded_values == {"zero_block_number": 1}
        assert "build_address" in result.transformations_applied

    def test_run_missing_columns(self, preprocessor):
        """Test handling of missing address columns."""
        df = pd.DataFrame({"some_column": [1, 2, 3]})

        result = preprocessor.run(df, execution_date="2024-01-15")

        assert not result.success
        assert result.rows_output == 0
        assert "block_number" in result.error_message

    def test_run_empty_snapshot(self, preprocessor):
        """Test a snapshot with no records yields an empty frame with the output columns."""
        result = preprocessor.run(pd.DataFrame(), execution_date="2024-01-15")
        df = preprocessor.get_data()

        assert result.success
        assert result.rows_output == 0
        assert {"block_number", "street_name", "address"} <= set(df.columns)
        assert df.empty

    def test_locality_from_config(self, test_config, sample_raw_records):
        """Test the locality suffix comes from geocoding settings."""
        preprocessor = CrimePreprocessor(test_config, locality="Albemarle VA")
        preprocessor.run(sample_raw_records, execution_date="2024-01-15")

        assert preprocessor.get_data()["address"].iloc[2] == "200 PARK ST Albemarle VA"


class TestConvenienceFunctions:
    """Test convenience functions."""

    def test_preprocess_crime_data(self, test_config, sample_raw_records):
        df = preprocess_crime_data(sample_raw_records, "2024-01-15", test_config)
        assert "address" in df.columns

    def test_preprocess_crime_data_raises_on_failure(self, test_config):
        with pytest.raises(RuntimeError, match="preprocessing failed"):
            preprocess_crime_data(pd.DataFrame({"x": [1]}), "2024-01-15", test_config)
