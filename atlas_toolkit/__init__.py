"""Service toolkit: health endpoints and probes, transactions, field masks, migration checks, resource identifiers and integration-test helpers."""

__version__ = "0.1.0"