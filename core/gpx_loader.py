from __future__ import annotations

from typing import IO

import gpxpy
import pandas as pd

FIX_COLUMNS = ["lat", "lng", "timestamp_ms", "elevation"]


def _decode_gpx_bytes(content: bytes) -> str:
    try:
        return content.decode("utf-8")
    except UnicodeDecodeError:
        try:
            return content.decode("latin-1")
        except UnicodeDecodeError:
            return content.decode("utf-8", errors="replace")


def load_gpx(file: IO[bytes]) -> gpxpy.gpx.GPX:
    """
    Lit un fichier GPX (UploadFile ou file-like) et retourne l'objet GPX.
    """
    content = file.read()
    if isinstance(content, (bytes, bytearray)):
        text = _decode_gpx_bytes(bytes(content))
    else:
        text = str(content)
    return gpxpy.parse(text)


def gpx_to_fixes(gpx: gpxpy.gpx.GPX) -> pd.DataFrame:
    """
    Transforme un GPX en positions horodatees (ms epoch) pretes a rejouer.

    Les points sans heure sont ignores: sans horodatage, pas de vitesse.
    Les positions sont triees par horodatage (stable).
    """
    rows = []
    for track in gpx.tracks:
        for segment in track.segments:
            for point in segment.points:
                if point.time is None:
                    continue
                rows.append(
                    {
                        "lat": point.latitude,
                        "lng": point.longitude,
                        "timestamp_ms": int(round(point.time.timestamp() * 1000)),
                        "elevation": point.elevation,
                    }
                )

    if not rows:
        return pd.DataFrame(columns=FIX_COLUMNS)

    df = pd.DataFrame(rows, columns=FIX_COLUMNS)
    return df.sort_values("timestamp_ms", kind="stable").reset_index(drop=True)
