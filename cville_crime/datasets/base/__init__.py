"""
Charlottesville Crime - Base Classes for Datasets

Abstract base classes that dataset implementations inherit from.
These provide a consistent interface for:
- Data ingestion (BaseIngester)
- Data preprocessing (BasePreprocessor)

Usage:
    from cville_crime.datasets.base import BaseIngester, BasePreprocessor

    class CrimeIngester(BaseIngester):
        def fetch_data(self) -> pd.DataFrame:
            ...
"""

from cville_crime.datasets.base.ingester import BaseIngester, IngestionResult
from cville_crime.datasets.base.preprocessor import BasePreprocessor, PreprocessingResult

__all__ = [
    "BaseIngester",
    "IngestionResult",
    "BasePreprocessor",
    "PreprocessingResult",
]
