from abc import ABC, abstractmethod
from typing import Any, List, Optional
from datetime import datetime
from pathlib import Path
import json
import logging
import time

import pandas as pd

from core import constants
from core.utils import round_half_up
from services.models import Settings, WorkoutRecord, WorkoutStatistics, WorkoutSummary


logger = logging.getLogger("strokescope.storage")


class WorkoutStorage(ABC):
    @abstractmethod
    def save_workout(self, summary: WorkoutSummary) -> WorkoutRecord:
        """Enregistre une seance terminee, retourne l'enregistrement"""
        pass

    @abstractmethod
    def list_workouts(self) -> List[WorkoutRecord]:
        """Liste les seances, la plus recente en premier"""
        pass

    @abstractmethod
    def load_workout(self, workout_id: int) -> WorkoutRecord:
        """Charge une seance par ID"""
        pass

    @abstractmethod
    def delete_workout(self, workout_id: int) -> bool:
        """Supprime une seance"""
        pass

    @abstractmethod
    def clear_all(self) -> None:
        """Supprime tout l'historique"""
        pass

    @abstractmethod
    def load_settings(self) -> Settings:
        """Charge les reglages (valeurs par defaut si absents)"""
        pass

    @abstractmethod
    def save_settings(self, settings: Settings) -> None:
        """Enregistre les reglages"""
        pass


class LocalJsonStorage(WorkoutStorage):
    """Stockage local dans un dossier persistant (fichiers JSON)"""

    WORKOUTS_FILE = "workouts.json"
    LAST_WORKOUT_FILE = "last_workout.json"
    SETTINGS_FILE = "settings.json"

    def __init__(self, data_dir: str = "./data/workouts", max_workouts: int = constants.MAX_STORED_WORKOUTS):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.max_workouts = int(max_workouts)

    def _path(self, name: str) -> Path:
        return self.data_dir / name

    def _read_json(self, name: str, default: Any) -> Any:
        """Lit un fichier JSON; fichier corrompu = valeur par defaut"""
        path = self._path(name)
        if not path.exists():
            return default
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("storage_read_failed", extra={"file": name, "error": str(e)})
            return default

    def _write_json(self, name: str, payload: Any) -> None:
        """Ecriture via fichier temporaire puis remplacement"""
        path = self._path(name)
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, default=str, indent=2)
            tmp_path.replace(path)
        except Exception as e:
            if tmp_path.exists():
                tmp_path.unlink()
            raise RuntimeError(f"Failed to write {name}: {e}")

    def _next_id(self, existing: List[WorkoutRecord]) -> int:
        workout_id = int(time.time() * 1000)
        taken = {w.id for w in existing}
        while workout_id in taken:
            workout_id += 1
        return workout_id

    def save_workout(self, summary: WorkoutSummary) -> WorkoutRecord:
        """Ajoute en tete de l'historique, limite a max_workouts"""
        workouts = self.list_workouts()
        record = WorkoutRecord(
            id=self._next_id(workouts),
            date=datetime.now().isoformat(),
            duration_s=float(summary.elapsed_s),
            distance_m=int(summary.distance_m),
            avg_stroke_rate=int(summary.avg_stroke_rate),
            avg_split_s=summary.avg_split_s,
            stroke_count=int(summary.stroke_count),
            method=summary.method,
        )
        workouts.insert(0, record)
        del workouts[self.max_workouts:]

        self._write_json(self.WORKOUTS_FILE, [w.to_dict() for w in workouts])
        self._write_json(self.LAST_WORKOUT_FILE, record.to_dict())
        logger.info("workout_saved", extra={"workout_id": record.id, "distance_m": record.distance_m})
        return record

    def list_workouts(self) -> List[WorkoutRecord]:
        """Liste toutes les seances"""
        raw = self._read_json(self.WORKOUTS_FILE, [])
        workouts = []
        for item in raw if isinstance(raw, list) else []:
            try:
                workouts.append(WorkoutRecord.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("workout_record_skipped", extra={"error": str(e)})
                continue
        return workouts

    def get_last_workout(self) -> Optional[WorkoutRecord]:
        raw = self._read_json(self.LAST_WORKOUT_FILE, None)
        if not raw:
            return None
        try:
            return WorkoutRecord.from_dict(raw)
        except (KeyError, TypeError, ValueError):
            return None

    def load_workout(self, workout_id: int) -> WorkoutRecord:
        for workout in self.list_workouts():
            if workout.id == workout_id:
                return workout
        raise FileNotFoundError(f"Workout {workout_id} not found")

    def delete_workout(self, workout_id: int) -> bool:
        """Supprime une seance specifique"""
        workouts = self.list_workouts()
        remaining = [w for w in workouts if w.id != workout_id]
        if len(remaining) == len(workouts):
            return False
        self._write_json(self.WORKOUTS_FILE, [w.to_dict() for w in remaining])
        logger.info("workout_deleted", extra={"workout_id": workout_id})
        return True

    def clear_all(self) -> None:
        """Suppression complete de l'historique (les reglages restent)"""
        for name in (self.WORKOUTS_FILE, self.LAST_WORKOUT_FILE):
            path = self._path(name)
            if path.exists():
                path.unlink()

    def statistics(self) -> WorkoutStatistics:
        workouts = self.list_workouts()
        if not workouts:
            return WorkoutStatistics(0, 0, 0, 0, 0, 0)

        df = pd.DataFrame([w.to_dict() for w in workouts])
        total_distance = float(df["distance_m"].sum())
        total_time = float(df["duration_s"].sum())
        rates = pd.to_numeric(df["avg_stroke_rate"], errors="coerce").fillna(0)
        count = len(df)
        return WorkoutStatistics(
            total_workouts=count,
            total_distance_m=round_half_up(total_distance),
            total_time_s=round_half_up(total_time),
            avg_distance_m=round_half_up(total_distance / count),
            avg_duration_s=round_half_up(total_time / count),
            avg_stroke_rate=round_half_up(float(rates.sum()) / count),
        )

    def load_settings(self) -> Settings:
        raw = self._read_json(self.SETTINGS_FILE, None)
        if not isinstance(raw, dict):
            return Settings()
        try:
            return Settings.from_dict(raw)
        except (TypeError, ValueError) as e:
            logger.warning("settings_invalid", extra={"error": str(e)})
            return Settings()

    def save_settings(self, settings: Settings) -> None:
        self._write_json(self.SETTINGS_FILE, settings.to_dict())

    def update_setting(self, key: str, value: Any) -> Settings:
        settings = self.load_settings().updated(**{key: value})
        self.save_settings(settings)
        return settings

    def reset_settings(self) -> Settings:
        settings = Settings()
        self.save_settings(settings)
        return settings

    def export_data(self) -> dict:
        return {
            "workouts": [w.to_dict() for w in self.list_workouts()],
            "settings": self.load_settings().to_dict(),
            "export_date": datetime.now().isoformat(),
        }

    def import_data(self, payload: dict) -> None:
        """Remplace historique et/ou reglages par ceux du payload.

        Tout est valide avant la premiere ecriture: un payload invalide
        laisse historique et reglages intacts.
        """
        workouts = None
        settings = None
        if payload.get("workouts") is not None:
            workouts = [WorkoutRecord.from_dict(item) for item in payload["workouts"]]
            workouts.sort(key=lambda w: w.id, reverse=True)
            del workouts[self.max_workouts:]
        if payload.get("settings") is not None:
            settings = Settings.from_dict(payload["settings"])

        if workouts is not None:
            self._write_json(self.WORKOUTS_FILE, [w.to_dict() for w in workouts])
        if settings is not None:
            self.save_settings(settings)
        logger.info(
            "data_imported",
            extra={"workouts": None if workouts is None else len(workouts), "settings": settings is not None},
        )
