"""
Exceptions raised by the acquisition pipeline.

"No data for this date" and "neither extractor found a row" are not
exceptions: the report fetcher returns ``None`` for both and the date
walker simply moves on to the previous calendar day.
"""

from __future__ import annotations


class TaifexError(Exception):
    """Base class for all upstream-data errors."""


class AcquisitionError(TaifexError):
    """The upstream request failed (non-2xx status or transport error).

    ``status_code`` is ``None`` when no HTTP response was received at all
    (connect error, timeout).
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class SchemaMismatchError(TaifexError):
    """A required column of the bulk feed could not be located.

    This is the signal that TAIFEX renamed or dropped a header, so it is
    surfaced to the caller instead of yielding an empty series.
    """

    def __init__(self, missing_fields: list[str], headers: list[str] | None = None):
        self.missing_fields = list(missing_fields)
        self.headers = list(headers or [])
        super().__init__(
            "TAIFEX field detection failed (headers may have changed): missing "
            + ", ".join(self.missing_fields)
        )
