from __future__ import annotations

from pathlib import Path
from typing import Iterable

import pandas as pd

from surge.metrics import RequestOutcome

CSV_COLUMNS = ["host", "status_code", "time_millis"]
BODY_COLUMN = "body"


def results_frame(host: str, outcomes: Iterable[RequestOutcome], include_body: bool = False) -> pd.DataFrame:
    columns = CSV_COLUMNS + ([BODY_COLUMN] if include_body else [])
    rows = []
    for o in outcomes:
        row = {"host": host, "status_code": o.status_code, "time_millis": o.elapsed_millis}
        if include_body:
            row[BODY_COLUMN] = o.body or ""
        rows.append(row)
    return pd.DataFrame(rows, columns=columns)


def write_results(
    path: Path,
    host: str,
    outcomes: Iterable[RequestOutcome],
    include_body: bool = False,
) -> int:
    df = results_frame(host, outcomes, include_body)
    df.to_csv(path, index=False)
    return len(df)


def read_results(path: Path) -> pd.DataFrame:
    df = pd.read_csv(path, dtype={"host": str}, keep_default_na=False)
    if BODY_COLUMN in df.columns:
        df[BODY_COLUMN] = df[BODY_COLUMN].astype(str)
    return df
