"""Release fetching - GitHub to validated, cached release data.

Services:
- ReleaseFetchOrchestrator: cache check, paginated fetch, validation,
  sanitization, statistics and storage behind one call
"""

from .enums import FetchStage, OutputFormat
from .orchestrator import ReleaseFetchOrchestrator
from .results import ReleaseDataResult
from .validation import (
    parse_release_record,
    sanitize_body,
    sanitize_name,
    sanitize_release,
    validate_release_records,
)

__all__ = [
    "FetchStage",
    "OutputFormat",
    "ReleaseDataResult",
    "ReleaseFetchOrchestrator",
    "parse_release_record",
    "sanitize_body",
    "sanitize_name",
    "sanitize_release",
    "validate_release_records",
]
