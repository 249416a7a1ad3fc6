from typing import Iterable, Tuple

import pandas as pd

from farm_abm.strategy.status import STATUS_LABELS, StatusSnapshot

REPORT_COLUMNS = ["Date"] + list(STATUS_LABELS.values())


def snapshots_to_frame(rows: Iterable[Tuple[object, StatusSnapshot]]) -> pd.DataFrame:
    """
    Build a report table from ``(timestamp, snapshot)`` pairs.

    Columns are ``Date`` followed by the snapshot labels in report order.
    Values stay ``Decimal`` so no precision is lost before writing.
    """
    records = []
    for timestamp, snapshot in rows:
        record = {"Date": timestamp}
        record.update(snapshot.as_dict())
        records.append(record)
    return pd.DataFrame.from_records(records, columns=REPORT_COLUMNS)


def write_report(frame: pd.DataFrame, path: str) -> None:
    """Write a report table to CSV, rendering every value with ``str``."""
    frame.astype(str).to_csv(path, index=False)
