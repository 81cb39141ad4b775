from __future__ import annotations

"""Rejeu hors ligne de flux enregistres (accelerometre CSV, trace GPX).

Les deux flux sont fusionnes par horodatage puis injectes dans une seance
neuve, exactement comme en direct.
"""

import io
from typing import IO

import gpxpy
import numpy as np
import pandas as pd

from core import gpx_loader
from core.rates import is_known_method
from core.utils import round_half_up
from services.models import ReplayResult, Settings
from services.session_service import WorkoutSession


EVENT_COLUMNS = ["timestamp_ms", "source", "rate_spm", "source_avg", "value"]


def motion_frame_from_csv(file: IO) -> pd.DataFrame:
    """Lit un export accelerometre: ``timestamp_ms`` + ``magnitude`` ou ``x,y,z``."""
    df = pd.read_csv(file)
    df.columns = [str(c).strip().lower() for c in df.columns]
    if "timestamp_ms" not in df.columns:
        raise ValueError("Colonne timestamp_ms manquante.")

    if "magnitude" not in df.columns:
        if not {"x", "y", "z"}.issubset(df.columns):
            raise ValueError("Colonnes magnitude ou x/y/z attendues.")
        axes = df[["x", "y", "z"]].apply(pd.to_numeric, errors="coerce").fillna(0.0)
        df["magnitude"] = np.sqrt((axes.to_numpy(dtype=float) ** 2).sum(axis=1))

    out = pd.DataFrame(
        {
            "timestamp_ms": pd.to_numeric(df["timestamp_ms"], errors="coerce"),
            "magnitude": pd.to_numeric(df["magnitude"], errors="coerce"),
        }
    )
    return out.dropna(subset=["timestamp_ms"]).reset_index(drop=True)


def _merged_stream(motion_df: pd.DataFrame | None, fixes_df: pd.DataFrame | None) -> pd.DataFrame:
    frames = []
    if motion_df is not None and not motion_df.empty:
        frames.append(
            pd.DataFrame(
                {
                    "timestamp_ms": motion_df["timestamp_ms"].astype("int64"),
                    "kind": "motion",
                    "order": 0,
                    "magnitude": motion_df["magnitude"].astype(float),
                    "lat": np.nan,
                    "lng": np.nan,
                }
            )
        )
    if fixes_df is not None and not fixes_df.empty:
        frames.append(
            pd.DataFrame(
                {
                    "timestamp_ms": fixes_df["timestamp_ms"].astype("int64"),
                    "kind": "gps",
                    "order": 1,
                    "magnitude": np.nan,
                    "lat": fixes_df["lat"].astype(float),
                    "lng": fixes_df["lng"].astype(float),
                }
            )
        )
    if not frames:
        return pd.DataFrame(columns=["timestamp_ms", "kind", "order", "magnitude", "lat", "lng"])
    merged = pd.concat(frames, ignore_index=True)
    # a horodatage egal, l'accelerometre passe avant le GPS
    return merged.sort_values(["timestamp_ms", "order"], kind="stable").reset_index(drop=True)


def _interval_stats(timestamps: pd.Series) -> dict[str, float | int | None]:
    values = timestamps.to_numpy(dtype=float)
    if values.size < 2:
        return {"count": int(values.size), "median_interval_ms": None, "implied_rate_spm": None}
    median = float(np.median(np.diff(values)))
    implied = round_half_up(60_000.0 / median) if median > 0 else None
    return {"count": int(values.size), "median_interval_ms": median, "implied_rate_spm": implied}


def replay(
    motion_df: pd.DataFrame | None = None,
    fixes_df: pd.DataFrame | None = None,
    method: str = "both",
) -> ReplayResult:
    if not is_known_method(method):
        raise ValueError(f"Unknown stroke rate method: {method!r}")

    session = WorkoutSession(Settings(stroke_rate_method=method))
    stream = _merged_stream(motion_df, fixes_df)

    start_ms = int(stream["timestamp_ms"].iloc[0]) if not stream.empty else 0
    end_ms = int(stream["timestamp_ms"].iloc[-1]) if not stream.empty else 0
    session.start(start_ms)

    rows = []
    for row in stream.itertuples(index=False):
        if row.kind == "motion":
            event = session.observe_motion(row.magnitude, row.timestamp_ms)
        else:
            event = session.observe_position(row.lat, row.lng, row.timestamp_ms)
        if event is None:
            continue
        rows.append(
            {
                "timestamp_ms": event.timestamp,
                "source": event.source,
                "rate_spm": event.rate,
                "source_avg": event.source_avg,
                "value": event.triggering_value,
            }
        )

    session.stop(end_ms)
    events = pd.DataFrame(rows, columns=EVENT_COLUMNS)
    intervals = {
        source: _interval_stats(events.loc[events["source"] == source, "timestamp_ms"])
        for source in ("motion", "gps")
    }
    return ReplayResult(events=events, summary=session.summary(end_ms), intervals=intervals)


def replay_gpx_bytes(data: bytes) -> ReplayResult:
    try:
        gpx = gpx_loader.load_gpx(io.BytesIO(data))
    except gpxpy.gpx.GPXException as e:
        raise ValueError(f"Invalid GPX file: {e}") from e
    fixes = gpx_loader.gpx_to_fixes(gpx)
    return replay(fixes_df=fixes, method="gps")
