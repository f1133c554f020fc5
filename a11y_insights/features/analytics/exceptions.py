from typing import Any, List, Optional


class AnalyticsError(Exception):
    """Base error for the analytics warehouse integration."""


class AnalyticsConfigError(AnalyticsError):
    """Required ingestion settings are missing."""

    def __init__(self, errors: List[str]):
        self.errors = errors
        super().__init__("; ".join(errors) or "Analytics is not configured")


class DatasetNotFoundError(AnalyticsError):
    """The target dataset does not exist. Datasets are provisioned outside this service."""


class AnalyticsWriteError(AnalyticsError):
    """
    An insert failed part-way through a payload.

    Chunks committed before the failure are not rolled back; every row carries
    a deterministic insert id, so resubmitting the whole payload is safe.
    """

    def __init__(self, message: str, table: str, inserted: int = 0, cause: Optional[Exception] = None):
        self.table = table
        self.inserted = inserted
        self.cause = cause
        super().__init__(message)


class AnalyticsConnectivityError(AnalyticsWriteError):
    """Auth or transport failure while talking to the warehouse."""


class PartialIngestionError(AnalyticsWriteError):
    """The warehouse rejected rows of a chunk."""

    def __init__(self, message: str, table: str, inserted: int, chunk_index: int, errors: List[Any]):
        self.chunk_index = chunk_index
        self.errors = errors
        super().__init__(message, table=table, inserted=inserted)
