"""
Charlottesville Crime - Crime Dataset

Components:
    - CrimeIngester: Downloads the crime GeoJSON from the open data portal
    - CrimePreprocessor: Normalizes address fields and builds address strings

Data Source:
    Charlottesville Police Department Crime Data
    https://opendata.charlottesville.org/datasets/crime-data

Usage:
    from cville_crime.datasets.crime import CrimeIngester, CrimePreprocessor

    ingester = CrimeIngester()
    result = ingester.run(execution_date="2024-01-15")
    raw_df = ingester.get_data()

    preprocessor = CrimePreprocessor()
    result = preprocessor.run(raw_df, execution_date="2024-01-15")
    processed_df = preprocessor.get_data()
"""

from cville_crime.datasets.crime.ingest import (
    CrimeIngester,
    features_to_frame,
    ingest_crime_data,
    load_crime_file,
)
from cville_crime.datasets.crime.preprocess import (
    CrimePreprocessor,
    build_address,
    build_addresses,
    clean_block_number,
    clean_street_name,
    preprocess_crime_data,
)

__all__ = [
    "CrimeIngester",
    "CrimePreprocessor",
    "features_to_frame",
    "load_crime_file",
    "ingest_crime_data",
    "preprocess_crime_data",
    "build_address",
    "build_addresses",
    "clean_block_number",
    "clean_street_name",
]
