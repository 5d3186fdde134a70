# bulkgpt/exporter.py
import asyncio
from typing import List

import pandas as pd

from bulkgpt import monitoring
from bulkgpt.db import ResultStore
from bulkgpt.errors import BulkGptError, ExportError

EXPORT_COLUMNS: List[str] = ["id", "gptPrompt", "response", "options"]


async def export_to_csv(store: ResultStore, path: str) -> int:
    """
    Write every stored row to `path` as CSV (header row = EXPORT_COLUMNS),
    overwriting any existing file. Returns the number of data rows written.

    Raises StoreNotInitializedError / PersistenceError if the store cannot be
    read and ExportError if the file cannot be written.
    """
    try:
        rows = await store.read_all()
    except BulkGptError as e:
        monitoring.inc_export("error")
        monitoring.logger.error("Error reading data for CSV export",
                                extra={"path": path, "error_code": e.code})
        raise

    df = pd.DataFrame([r.model_dump() for r in rows], columns=EXPORT_COLUMNS)
    try:
        await asyncio.to_thread(df.to_csv, path, index=False)
    except OSError as e:
        monitoring.inc_export("error")
        monitoring.logger.error("Error writing data to CSV file", extra={"path": path})
        raise ExportError(f"Error writing data to CSV file {path}: {e}") from e

    monitoring.inc_export("success")
    monitoring.logger.info("Successfully wrote data to CSV file", extra={"path": path, "rows": len(rows)})
    return len(rows)
