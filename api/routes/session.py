import logging

from fastapi import APIRouter, HTTPException, Request

from api.schemas import (
    MotionBatch,
    ObserveResponse,
    PositionBatch,
    RateResponse,
    SessionStateResponse,
    StopResponse,
    SummaryResponse,
)
from core.formatting import format_rate, format_rate_pair, format_split
from services.serialization import event_payload, summary_payload, workout_payload
from services.session_service import WorkoutSession
from storage.workout_store import LocalJsonStorage


router = APIRouter(prefix="/session", tags=["session"])


def _get_logger(request: Request) -> logging.Logger:
    return request.app.state.logger


def _get_request_id(request: Request) -> str:
    return getattr(getattr(request, "state", None), "request_id", "-")


def get_session(request: Request) -> WorkoutSession:
    return request.app.state.session


def get_workout_storage(request: Request) -> LocalJsonStorage:
    return request.app.state.storage


def _state(session: WorkoutSession, changed: bool) -> dict:
    return {"running": session.is_running, "changed": changed, "method": session.method}


@router.post("/start", response_model=SessionStateResponse)
async def start_session(request: Request):
    """Demarre la seance (sans effet si deja en cours)"""
    session = get_session(request)
    changed = session.start()
    _get_logger(request).info(
        "session_start",
        extra={"request_id": _get_request_id(request), "changed": changed, "stroke_method": session.method},
    )
    return _state(session, changed)


@router.post("/stop", response_model=StopResponse)
async def stop_session(request: Request):
    """Arrete la seance et l'enregistre dans l'historique"""
    session = get_session(request)
    changed = session.stop()
    payload = _state(session, changed)
    if not changed:
        return payload

    try:
        record = get_workout_storage(request).save_workout(session.summary())
    except RuntimeError as e:
        _get_logger(request).exception("workout_save_failed", extra={"request_id": _get_request_id(request)})
        raise HTTPException(status_code=500, detail=f"Failed to save workout: {str(e)}")

    payload["workout"] = workout_payload(record)
    return payload


@router.post("/reset", response_model=SessionStateResponse)
async def reset_session(request: Request):
    """Remet a zero fenetres, detecteurs et compteurs"""
    session = get_session(request)
    session.reset()
    return _state(session, True)


@router.post("/motion", response_model=ObserveResponse)
async def observe_motion(request: Request, batch: MotionBatch):
    """Injecte un lot d'echantillons accelerometre (ordre chronologique)"""
    session = get_session(request)
    before = session.motion_samples_accepted
    events = []
    for sample in batch.samples:
        if sample.magnitude is not None:
            event = session.observe_motion(sample.magnitude, sample.timestamp_ms)
        elif any(axis is not None for axis in (sample.x, sample.y, sample.z)):
            event = session.observe_acceleration(sample.x, sample.y, sample.z, sample.timestamp_ms)
        else:
            continue
        if event is not None:
            events.append(event_payload(event))
    # ne compte que ce que le detecteur a reellement retenu
    accepted = session.motion_samples_accepted - before
    return {"received": len(batch.samples), "accepted": accepted, "events": events}


@router.post("/position", response_model=ObserveResponse)
async def observe_position(request: Request, batch: PositionBatch):
    """Injecte un lot de positions GPS (ordre chronologique)"""
    session = get_session(request)
    before = session.fixes_accepted
    events = []
    for fix in batch.fixes:
        event = session.observe_position(fix.lat, fix.lng, fix.timestamp_ms)
        if event is not None:
            events.append(event_payload(event))
    accepted = session.fixes_accepted - before
    return {"received": len(batch.fixes), "accepted": accepted, "events": events}


@router.get("/rate", response_model=RateResponse)
async def get_rate(request: Request):
    """Cadence courante selon la methode choisie"""
    session = get_session(request)
    selected = session.current_rate()
    if isinstance(selected, dict):
        display = format_rate_pair(selected["motion"], selected["gps"])
    else:
        display = format_rate(selected)
    split_s = session.current_split_s()
    return {
        "method": session.method,
        "motion": session.motion_rate,
        "gps": session.gps_rate,
        "selected": selected,
        "display": display,
        "split_s": split_s,
        "split_display": format_split(split_s),
    }


@router.get("/summary", response_model=SummaryResponse)
async def get_summary(request: Request):
    session = get_session(request)
    return summary_payload(session.summary(), running=session.is_running)
