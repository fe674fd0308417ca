"""
Charlottesville Crime - Base Ingester

Abstract base class for dataset ingesters. Provides a consistent interface
for fetching snapshot data from open-data sources with:
- Error handling
- Schema validation of the fetched frame
- Structured result reporting

Usage:
    class CrimeIngester(BaseIngester):
        def fetch_data(self) -> pd.DataFrame:
            ...
        def get_primary_key(self) -> str:
            return "RecordID"
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from cville_crime.shared.config import Settings, get_config

logger = logging.getLogger(__name__)


@dataclass
class IngestionResult:
    """Result of a data ingestion operation."""

    dataset: str
    execution_date: str
    rows_fetched: int
    source: str | None = None
    duration_seconds: float = 0.0
    success: bool = True
    error_message: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert result to dictionary for logging."""
        return {
            "dataset": self.dataset,
            "execution_date": self.execution_date,
            "rows_fetched": self.rows_fetched,
            "source": self.source,
            "duration_seconds": self.duration_seconds,
            "success": self.success,
            "error_message": self.error_message,
            "metadata": self.metadata,
        }


class BaseIngester(ABC):
    """
    Abstract base class for dataset ingestion.

    Subclasses must implement:
    - fetch_data(): Fetch data from the source
    - get_primary_key(): Return the primary key field
    - get_dataset_name(): Return the dataset name
    """

    def __init__(self, config: Settings | None = None):
        """
        Initialize the ingester.

        Args:
            config: Configuration object (uses default if not provided)
        """
        self.config = config or get_config()

    @abstractmethod
    def fetch_data(self) -> pd.DataFrame:
        """
        Fetch data from the source.

        Returns:
            DataFrame containing the fetched records
        """
        pass

    @abstractmethod
    def get_primary_key(self) -> str:
        """
        Get the primary key field name.

        Returns:
            Column name that identifies each record
        """
        pass

    @abstractmethod
    def get_dataset_name(self) -> str:
        """
        Get the dataset name.

        Returns:
            Dataset name (e.g., "crime")
        """
        pass

    def get_required_columns(self) -> list[str]:
        """Columns that must be present in the fetched data."""
        return []

    def get_api_endpoint(self) -> str | None:
        """
        Get the API endpoint for this dataset (optional).

        Returns:
            API endpoint URL or None if not applicable
        """
        return None

    def run(self, execution_date: str) -> IngestionResult:
        """
        Run the ingestion process.

        Args:
            execution_date: Execution date in YYYY-MM-DD format

        Returns:
            IngestionResult with details about the ingestion
        """
        start_time = time.time()
        dataset_name = self.get_dataset_name()

        logger.info(
            f"Starting ingestion for {dataset_name}",
            extra={"dataset": dataset_name, "execution_date": execution_date},
        )

        try:
            df = self.fetch_data()

            is_valid, errors = self.validate_schema(df)
            if not is_valid:
                raise ValueError(f"Schema validation failed: {'; '.join(errors)}")

            duration = time.time() - start_time

            result = IngestionResult(
                dataset=dataset_name,
                execution_date=execution_date,
                rows_fetched=len(df),
                source=self.get_api_endpoint(),
                duration_seconds=duration,
                success=True,
                metadata={
                    "primary_key": self.get_primary_key(),
                    "columns": list(df.columns),
                },
            )

            logger.info(
                f"Ingestion complete for {dataset_name}: {len(df)} rows",
                extra=result.to_dict(),
            )

            # Store the dataframe for downstream access
            self._data = df

            return result

        except Exception as e:
            duration = time.time() - start_time
            logger.error(
                f"Ingestion failed for {dataset_name}: {e}",
                extra={"dataset": dataset_name, "error": str(e)},
                exc_info=True,
            )

            return IngestionResult(
                dataset=dataset_name,
                execution_date=execution_date,
                rows_fetched=0,
                source=self.get_api_endpoint(),
                duration_seconds=duration,
                success=False,
                error_message=str(e),
            )

    def get_data(self) -> pd.DataFrame | None:
        """Get the most recently fetched data."""
        return getattr(self, "_data", None)

    def validate_schema(self, df: pd.DataFrame) -> tuple[bool, list[str]]:
        """
        Perform basic schema validation on fetched data.

        An empty snapshot is valid: with no records there are no columns to
        check, so only non-empty frames are checked for the primary key and
        required columns.

        Args:
            df: DataFrame to validate

        Returns:
            Tuple of (is_valid, list_of_errors)
        """
        errors: list[str] = []

        if len(df) == 0:
            logger.warning(f"No records fetched for {self.get_dataset_name()}")
            return True, errors

        pk = self.get_primary_key()
        if pk not in df.columns:
            errors.append(f"Primary key column '{pk}' not found")

        for col in self.get_required_columns():
            if col not in df.columns:
                errors.append(f"Required column '{col}' not found")

        return len(errors) == 0, errors
