# backend/excel_analytics/summary.py
from typing import Any, Dict, Mapping, Sequence

import numpy as np
import pandas as pd


def is_number(value: Any) -> bool:
    """True for int/float cells. Booleans, NaN, infinities and missing values are not numbers."""
    if isinstance(value, (bool, np.bool_)):
        return False
    if isinstance(value, (int, np.integer)):
        return True
    if isinstance(value, (float, np.floating)):
        return bool(np.isfinite(value))
    return False


def column_summary(values: pd.Series) -> Dict[str, Any]:
    numeric = values[values.map(is_number)].astype(float)
    count = int(numeric.size)
    total = float(numeric.sum()) if count else 0.0
    return {"count": count, "sum": total, "average": total / count if count else 0.0}


def summarize(rows: Sequence[Mapping[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """Count/sum/average for every column that holds at least one number.

    Columns are the keys seen in any row, not just the first. Non-numeric
    cells in a numeric column are skipped, never coerced.
    """
    if not rows:
        return {}
    # object dtype keeps ints, bools and text exactly as decoded
    df = pd.DataFrame.from_records([dict(r) for r in rows]).astype(object)
    summary: Dict[str, Dict[str, Any]] = {}
    for col in df.columns:
        stats = column_summary(df[col])
        if stats["count"]:
            summary[str(col)] = stats
    return summary

