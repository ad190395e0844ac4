"""
Statement Table Export

Flattens a rendered report document into a pandas DataFrame (one row per
statement row) and into plain text for terminal output.
"""
import logging
from typing import List

import pandas as pd

logger = logging.getLogger(__name__)

# Flat names for the ten numeric cells, month block then YTD block
CELL_COLUMNS = [
    "Month Actual", "Month Actual %", "Month Budget", "Month Budget %", "Month Act v Bud",
    "YTD Actual", "YTD Actual %", "YTD Budget", "YTD Budget %", "YTD Act v Bud",
]


def document_to_dataframe(document) -> pd.DataFrame:
    """
    One DataFrame row per statement row.

    Section and placeholder rows have empty cell columns.
    """
    records = []
    for block in document.sections:
        for row in block.rows:
            cells = row.cells or [""] * len(CELL_COLUMNS)
            record = {
                "Section": block.name,
                "Account": row.account_label,
                "Kind": row.kind.value,
                "Depth": row.depth,
                "Bold": row.bold,
                "Double Lines": row.double_lines,
            }
            record.update(zip(CELL_COLUMNS, cells))
            records.append(record)

    columns = ["Section", "Account", "Kind", "Depth", "Bold", "Double Lines"] + CELL_COLUMNS
    return pd.DataFrame.from_records(records, columns=columns)


def render_text(document, indent: str = "  ") -> str:
    """Header lines followed by the statement as an aligned text table."""
    lines: List[str] = [line.text for line in document.header.lines]

    frame = document_to_dataframe(document)
    if frame.empty:
        return "\n".join(lines)

    frame["Account"] = [
        f"{indent * depth}{label}" for depth, label in zip(frame["Depth"], frame["Account"])
    ]
    table = frame[["Account"] + CELL_COLUMNS].to_string(index=False, justify="left")

    if lines:
        lines.append("")
    lines.append(table)
    return "\n".join(lines)
