"""
djapi - Thin data access layer over DB-API 2.0 drivers
======================================================

Layers:
    - config:  ambient settings from the environment / `.env`.
    - utils:   logging.
    - errors:  recorded failure taxonomy.
    - db:      connection configuration, prepared statements, result
               cursors and the `RecordAccessor` base class.
"""

from djapi.db.accessor import (
    NO_GENERATED_KEYS,
    RETURN_GENERATED_KEYS,
    Outcome,
    RecordAccessor,
)
from djapi.db.configuration import ConnectionConfig

__all__ = [
    "ConnectionConfig",
    "RecordAccessor",
    "Outcome",
    "NO_GENERATED_KEYS",
    "RETURN_GENERATED_KEYS",
]
