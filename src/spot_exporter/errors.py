"""
Error taxonomy.

FetchError is raised by inventory sources and absorbed by the collector into
a failed scrape. ScrapeError is what the exposition layer sees for that scrape.
SchemaError means the metric declarations themselves are broken and the
exporter must not start.
"""


class ExporterError(Exception):
    """Base class for all exporter exceptions."""


class FetchError(ExporterError):
    """Raised when the inventory API call fails or returns something unusable."""


class ScrapeError(ExporterError):
    """Raised when a scrape cannot produce a complete sample set."""


class SchemaError(ExporterError):
    """Raised when metric descriptors are misconfigured (e.g. duplicate names)."""
