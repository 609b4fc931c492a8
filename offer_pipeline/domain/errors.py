"""Error taxonomy for the offer pipeline engine."""

from __future__ import annotations


class ConfigurationError(Exception):
    """Offer data does not match the configured stage enumeration.

    Raised for schema drift between source records and the engine. It is fatal:
    aggregation calls abort instead of guessing a bucket.
    """


class InvalidPeriodError(ValueError):
    """A reporting period string is malformed or out of range."""


class InvalidRecordError(ValueError):
    """A source record cannot be turned into an offer or target."""
