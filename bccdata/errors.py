"""
bccdata/errors.py
-----------------
Exceptions raised by the mapping layer itself.

Driver errors (sqlite3.Error, psycopg2.Error, ...) are never wrapped:
they reach the caller exactly as the driver raised them.
"""


class BccDataError(Exception):
    """Base class for all errors raised by bccdata."""


class ConfigurationError(BccDataError, LookupError):
    """An entity or relationship name is not registered, or a setting is invalid."""


class DataStoreError(BccDataError):
    """The datastore answered, but not with what the layer needs."""


class ScanError(BccDataError):
    """A row that had to exist could not be scanned into an entity."""
