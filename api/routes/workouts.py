from pathlib import Path

import logging

from fastapi import APIRouter, File, Header, HTTPException, Request, UploadFile

from api.schemas import DataExport, ReplayResponse, WorkoutOut, WorkoutStatsResponse
from services.replay_service import replay_gpx_bytes
from services.serialization import df_to_records, summary_payload, to_jsonable, workout_payload
from storage.workout_store import LocalJsonStorage


router = APIRouter(tags=["workouts"])


def _get_logger(request: Request) -> logging.Logger:
    return request.app.state.logger


def _get_request_id(request: Request) -> str:
    return getattr(getattr(request, "state", None), "request_id", "-")


def get_workout_storage(request: Request) -> LocalJsonStorage:
    return request.app.state.storage


def _model_to_dict(model):
    if hasattr(model, "model_dump"):
        return model.model_dump()
    return model.dict()


@router.get("/workouts", response_model=list[WorkoutOut])
async def list_workouts(request: Request):
    """Historique, la seance la plus recente en premier"""
    try:
        return [workout_payload(w) for w in get_workout_storage(request).list_workouts()]
    except Exception as e:
        _get_logger(request).exception("workouts_list_failed", extra={"request_id": _get_request_id(request)})
        raise HTTPException(status_code=500, detail=f"Failed to list workouts: {str(e)}")


@router.get("/workouts/last", response_model=WorkoutOut)
async def get_last_workout(request: Request):
    record = get_workout_storage(request).get_last_workout()
    if record is None:
        raise HTTPException(status_code=404, detail="No workout recorded yet")
    return workout_payload(record)


@router.get("/workouts/stats", response_model=WorkoutStatsResponse)
async def get_workout_stats(request: Request):
    """Totaux et moyennes sur tout l'historique"""
    return to_jsonable(get_workout_storage(request).statistics())


@router.get("/workouts/export", response_model=DataExport)
async def export_workouts(request: Request):
    return get_workout_storage(request).export_data()


@router.post("/workouts/import")
async def import_workouts(request: Request, payload: DataExport):
    """Remplace l'historique et les reglages par ceux de l'export"""
    storage = get_workout_storage(request)
    try:
        storage.import_data(_model_to_dict(payload))
    except (KeyError, TypeError, ValueError) as e:
        _get_logger(request).warning(
            "import_validation_failed",
            extra={"request_id": _get_request_id(request), "error": str(e)},
        )
        raise HTTPException(status_code=400, detail=str(e))

    settings = storage.load_settings()
    request.app.state.session.settings = settings
    return {"imported": len(storage.list_workouts()), "settings": settings.to_dict()}


@router.post("/workouts/replay", response_model=ReplayResponse)
async def replay_workout(
    request: Request,
    file: UploadFile = File(...),
    max_size: int = Header(50_000_000),
):
    """Rejoue une trace GPX a travers le detecteur GPS"""
    logger = _get_logger(request)
    request_id = _get_request_id(request)

    if not file.filename:
        raise HTTPException(status_code=400, detail="Missing filename")
    if Path(file.filename).suffix.lower() != ".gpx":
        raise HTTPException(status_code=400, detail="Invalid file extension. Allowed: .gpx")

    file_bytes = await file.read()
    logger.info(
        "replay_file_read",
        extra={
            "request_id": request_id,
            "upload_filename": file.filename,
            "size_bytes": len(file_bytes),
            "max_size": max_size,
        },
    )
    if len(file_bytes) > max_size:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Max size: {max_size / (1024 * 1024):.1f}MB",
        )

    try:
        result = replay_gpx_bytes(file_bytes)
    except ValueError as e:
        logger.warning(
            "replay_validation_failed",
            extra={"request_id": request_id, "error": str(e), "upload_filename": file.filename},
        )
        raise HTTPException(status_code=400, detail=str(e))
    except Exception:
        logger.exception("replay_failed", extra={"request_id": request_id, "upload_filename": file.filename})
        raise HTTPException(status_code=500, detail=f"Failed to replay workout (request_id={request_id})")

    logger.info(
        "replay_success",
        extra={"request_id": request_id, "events": len(result.events), "distance_m": result.summary.distance_m},
    )
    return {
        "filename": file.filename,
        "summary": summary_payload(result.summary),
        "events": df_to_records(result.events),
        "intervals": to_jsonable(result.intervals),
    }


@router.delete("/workouts")
async def clear_workouts(request: Request):
    """Vide l'historique (les reglages restent)"""
    get_workout_storage(request).clear_all()
    return {"status": "cleared"}


@router.get("/workouts/{workout_id}", response_model=WorkoutOut)
async def get_workout(request: Request, workout_id: int):
    try:
        return workout_payload(get_workout_storage(request).load_workout(workout_id))
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail=f"Workout {workout_id} not found")


@router.delete("/workouts/{workout_id}")
async def delete_workout(request: Request, workout_id: int):
    """Supprime une seance"""
    try:
        deleted = get_workout_storage(request).delete_workout(workout_id)
        if not deleted:
            raise HTTPException(status_code=404, detail=f"Workout {workout_id} not found")
        return {"status": "deleted", "id": workout_id}
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to delete workout: {str(e)}")
