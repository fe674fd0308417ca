from cville_crime.pipeline.merge import (
    JoinReport,
    attach_geocodes,
    build_address_mapping,
    combine_batches,
    distinct_addresses,
    success_ratio,
    unmatched_records,
)
from cville_crime.pipeline.runner import PipelineResult, prepare_records, run_pipeline

__all__ = [
    "JoinReport",
    "attach_geocodes",
    "build_address_mapping",
    "combine_batches",
    "distinct_addresses",
    "success_ratio",
    "unmatched_records",
    "PipelineResult",
    "prepare_records",
    "run_pipeline",
]
