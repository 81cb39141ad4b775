"""Constantes partagees (sans dependances tierces).

Ce module centralise les seuils et valeurs par defaut utilises dans core/ et services/.
Les valeurs de detection sont des constantes reglees empiriquement: les garder
identiques sauf decision explicite (nouveau bateau, nouveau support de telephone).
"""

from __future__ import annotations


# Detection par accelerometre.
ACCEL_MARGIN: float = 4.0  # au-dessus de la ligne de base, support fixe sur le bateau
MIN_STROKE_INTERVAL_MS: int = 800
ACCEL_WINDOW_MS: int = 10_000
BASELINE_SAMPLE_SIZE: int = 20
STROKE_RATE_WINDOW_MS: int = 10_000
RATE_HISTORY_WINDOW_MS: int = 120_000
MAX_STROKE_RATE: int = 40

# Detection par pics de vitesse GPS.
PEAK_MULTIPLIER: float = 1.10  # +10% au-dessus de la moyenne glissante
MIN_SAMPLES_FOR_DETECTION: int = 5
SPEED_AVERAGE_SAMPLES: int = 10
MIN_TIME_BETWEEN_PEAKS_MS: int = 1_000
SPEED_WINDOW_MS: int = 30_000
PEAK_WINDOW_MS: int = 30_000
MIN_PEAKS_FOR_RATE: int = 2
MAX_GPS_STROKE_RATE: int = 40

# Filtre de bruit GPS (cote appelant, pas dans le detecteur).
MIN_DISTANCE_M: float = 3.0
MIN_SPEED_M_S: float = 0.5  # ~1 noeud

# Mesures.
SPLIT_DISTANCE_M: float = 500.0
EARTH_RADIUS_M: float = 6_371_000.0

# Methodes d'affichage de la cadence.
METHOD_GPS: str = "gps"
METHOD_MOTION: str = "motion"
METHOD_BOTH: str = "both"
STROKE_RATE_METHODS: tuple[str, ...] = (METHOD_GPS, METHOD_MOTION, METHOD_BOTH)
DEFAULT_STROKE_METHOD: str = METHOD_GPS

# Historique des seances.
MAX_STORED_WORKOUTS: int = 100

# Intervalles d'annonce proposes (secondes, 0 = desactive).
ANNOUNCE_INTERVALS_S: tuple[int, ...] = (0, 30, 60, 120, 300)
