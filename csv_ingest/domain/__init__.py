"""
Domain package for csv-ingest.

Exports the data definitions shared by the resolver, parser, writer, and
orchestrator.
"""

from csv_ingest.domain.models import IngestResult, InputSpec, Record

__all__ = [
    "IngestResult",
    "InputSpec",
    "Record",
]
