import math
from typing import Union

from core.constants import SPLIT_DISTANCE_M


def mmss_to_seconds(value: str) -> int:
    """
    Convertit une chaîne "M:SS" ou "MM:SS" en nombre de secondes.
    """
    if not isinstance(value, str):
        raise ValueError("La valeur doit être une chaîne.")

    text = value.strip()
    if ":" not in text:
        raise ValueError("Format attendu M:SS.")

    minutes_str, seconds_str = text.split(":", 1)
    minutes = int(minutes_str)
    seconds = int(seconds_str)
    if minutes < 0:
        raise ValueError("Minutes négatives interdites.")
    if seconds < 0 or seconds >= 60:
        raise ValueError("Secondes invalides dans le temps.")
    return minutes * 60 + seconds


def seconds_to_mmss(seconds: Union[int, float]) -> str:
    """
    Convertit un nombre de secondes en format M:SS (les minutes depassent 59 si besoin).
    """
    total_seconds = int(math.floor(seconds))
    minutes = total_seconds // 60
    secs = total_seconds % 60
    return f"{minutes}:{secs:02d}"


def round_half_up(value: float) -> int:
    """
    Arrondi a l'entier le plus proche, les demis vers le haut (2.5 -> 3).
    """
    return int(math.floor(value + 0.5))


def round_to(value: float, decimals: int = 2) -> float:
    multiplier = 10 ** decimals
    return round_half_up(value * multiplier) / multiplier


def split_seconds(avg_speed_m_s: float | None) -> float | None:
    """
    Temps pour parcourir 500 m a la vitesse moyenne donnee (m/s).
    """
    if avg_speed_m_s is None or not math.isfinite(avg_speed_m_s) or avg_speed_m_s <= 0:
        return None
    return SPLIT_DISTANCE_M / avg_speed_m_s
