"""
Sheet Geocoder
===============
Fill the latitude/longitude columns of an Excel address sheet through a
pluggable geocoding provider, in bounded concurrent windows with
per-record retry.

Public API::

    from sheet_geocoder import EnrichmentPipeline, HereBackend, Credentials
"""

from sheet_geocoder.backends import (
    Credentials,
    GeocoderBackend,
    GoogleBackend,
    HereBackend,
    make_backend,
)
from sheet_geocoder.enricher import SheetEnricher
from sheet_geocoder.pipeline import EnrichmentPipeline, Outcome, RunState, RunSummary
from sheet_geocoder.records import AddressRecord, Coordinates, RecordStore
from sheet_geocoder.retry import with_retry
from sheet_geocoder.scheduler import BatchScheduler, TaskResult

__all__ = [
    "AddressRecord",
    "BatchScheduler",
    "Coordinates",
    "Credentials",
    "EnrichmentPipeline",
    "GeocoderBackend",
    "GoogleBackend",
    "HereBackend",
    "Outcome",
    "RecordStore",
    "RunState",
    "RunSummary",
    "SheetEnricher",
    "TaskResult",
    "make_backend",
    "with_retry",
]
__version__ = "1.0.0"
