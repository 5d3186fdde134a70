# bulkgpt/errors.py
"""
Error types raised by the store, the exporter and the batch entry point.

Per-prompt transport/service failures are never raised; they come back as
Failure outcomes (see bulkgpt.schemas).
"""

# Error codes (map to API error responses)
E_STORE_UNINITIALIZED = "E_STORE_UNINITIALIZED"
E_PERSISTENCE = "E_PERSISTENCE"
E_EXPORT = "E_EXPORT"
E_EMPTY_BATCH = "E_EMPTY_BATCH"


class BulkGptError(Exception):
    code = "E_INTERNAL"


class StoreNotInitializedError(BulkGptError):
    """The result store was used before initialize() succeeded."""
    code = E_STORE_UNINITIALIZED


class PersistenceError(BulkGptError):
    code = E_PERSISTENCE


class ExportError(BulkGptError):
    code = E_EXPORT


class EmptyBatchError(BulkGptError, ValueError):
    code = E_EMPTY_BATCH
