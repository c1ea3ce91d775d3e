from __future__ import annotations

from surge.storage.csv_store import CSV_COLUMNS, read_results, results_frame, write_results

__all__ = ["CSV_COLUMNS", "read_results", "results_frame", "write_results"]
