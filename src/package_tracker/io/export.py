from __future__ import annotations

from pathlib import Path
from typing import Sequence

import pandas as pd

from package_tracker.models import Package
from package_tracker.rules.status import VIEW_CURRENT, VIEW_HISTORY, filter_view

EXPORT_COLUMNS = [
    "tracking_number",
    "carrier",
    "sender",
    "status",
    "received_date",
    "last_updated",
    "id",
    "original_text",
]

# sheet name -> view
EXPORT_SHEETS = {
    "Current": VIEW_CURRENT,
    "History": VIEW_HISTORY,
}


def packages_frame(packages: Sequence[Package]) -> pd.DataFrame:
    """Tabular view of the collection with a stable column order."""
    rows = [p.to_row() for p in packages]
    df = pd.DataFrame(rows, columns=EXPORT_COLUMNS)
    return df.astype("string")


def export_workbook(packages: Sequence[Package], path: Path) -> Path:
    """
    Write Current / History / All Packages sheets to an .xlsx report.
    Returns the written path.
    """
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(out, engine="openpyxl") as xw:
        for sheet, view in EXPORT_SHEETS.items():
            packages_frame(filter_view(packages, view)).to_excel(
                xw, sheet_name=sheet, index=False)
        packages_frame(packages).to_excel(xw, sheet_name="All Packages", index=False)
    return out
