"""Helpers de serialisation.

Convertit les objets du domaine (dataclasses, pandas, numpy) en structures
100% JSON-serialisables pour l'API.
"""

from __future__ import annotations

from dataclasses import fields, is_dataclass
from datetime import date, datetime
from typing import Any

import numpy as np
import pandas as pd

from core.detection import DetectionEvent
from core.formatting import format_date, format_distance, format_duration_clock, format_rate, format_split
from services.models import WorkoutRecord, WorkoutSummary


def _is_nan(value: Any) -> bool:
    try:
        return bool(value != value)
    except (TypeError, ValueError):
        return False


def _dt_to_iso(value: Any) -> str | None:
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, (pd.Timestamp, datetime)):
        if pd.isna(value):
            return None
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return None


def df_to_records(df: pd.DataFrame, *, limit: int | None = None) -> list[dict[str, Any]]:
    if df is None:
        return []
    if limit is not None:
        df = df.head(int(limit))
    # IMPORTANT: cast en object pour conserver None dans les colonnes numeriques.
    safe = df.copy().astype(object)
    safe = safe.where(pd.notna(safe), None)
    records = safe.to_dict(orient="records")
    return [{str(k): to_jsonable(v) for k, v in row.items()} for row in records]


def to_jsonable(obj: Any) -> Any:
    """Convertit obj en primitives JSON-serialisables.

    Retourne uniquement dict/list/str/int/float/bool/None.
    """

    if obj is None or obj is pd.NaT:
        return None

    if isinstance(obj, (pd.Timestamp, datetime, date)):
        return _dt_to_iso(obj)

    # Scalaire numpy
    if isinstance(obj, np.generic):
        return to_jsonable(obj.item())

    if isinstance(obj, (str, int, bool)):
        return obj
    if isinstance(obj, float):
        return None if _is_nan(obj) or obj in (float("inf"), float("-inf")) else obj

    if isinstance(obj, dict):
        return {str(k): to_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set)):
        return [to_jsonable(v) for v in obj]

    if isinstance(obj, pd.DataFrame):
        return df_to_records(obj)

    if is_dataclass(obj):
        return {f.name: to_jsonable(getattr(obj, f.name)) for f in fields(obj)}

    return str(obj)


def event_payload(event: DetectionEvent) -> dict[str, Any]:
    return {
        "source": event.source,
        "timestamp_ms": int(event.timestamp),
        "rate_spm": int(event.rate),
        "source_avg": float(event.source_avg),
        "value": float(event.triggering_value),
    }


def summary_payload(summary: WorkoutSummary, *, running: bool = False) -> dict[str, Any]:
    payload = to_jsonable(summary)
    payload.update(
        {
            "running": running,
            "elapsed_display": format_duration_clock(summary.elapsed_s),
            "avg_split_display": format_split(summary.avg_split_s),
            "avg_stroke_rate_display": format_rate(summary.avg_stroke_rate),
        }
    )
    return payload


def workout_payload(record: WorkoutRecord) -> dict[str, Any]:
    payload = record.to_dict()
    payload.update(
        {
            "date_display": format_date(record.date),
            "duration_display": format_duration_clock(record.duration_s),
            "avg_split_display": format_split(record.avg_split_s),
            "distance_display": format_distance(record.distance_m),
        }
    )
    return payload
