import logging

from fastapi import APIRouter, HTTPException, Request

from api.schemas import SettingsModel, SettingsUpdate
from services.models import Settings
from storage.workout_store import LocalJsonStorage


router = APIRouter(tags=["settings"])


def _get_logger(request: Request) -> logging.Logger:
    return request.app.state.logger


def _get_request_id(request: Request) -> str:
    return getattr(getattr(request, "state", None), "request_id", "-")


def get_workout_storage(request: Request) -> LocalJsonStorage:
    return request.app.state.storage


def _model_to_dict(model, **kwargs):
    if hasattr(model, "model_dump"):
        return model.model_dump(**kwargs)
    return model.dict(**kwargs)


def _apply(request: Request, settings: Settings) -> dict:
    # la seance en cours suit les nouveaux reglages (methode comprise)
    request.app.state.session.settings = settings
    return settings.to_dict()


@router.get("/settings", response_model=SettingsModel)
async def get_settings(request: Request):
    return get_workout_storage(request).load_settings().to_dict()


@router.put("/settings", response_model=SettingsModel)
async def update_settings(request: Request, update: SettingsUpdate):
    """Mise a jour partielle des reglages"""
    storage = get_workout_storage(request)
    changes = {k: v for k, v in _model_to_dict(update, exclude_unset=True).items() if v is not None}
    try:
        settings = storage.load_settings().updated(**changes)
    except ValueError as e:
        _get_logger(request).warning(
            "settings_validation_failed",
            extra={"request_id": _get_request_id(request), "error": str(e)},
        )
        raise HTTPException(status_code=400, detail=str(e))

    storage.save_settings(settings)
    _get_logger(request).info(
        "settings_updated",
        extra={"request_id": _get_request_id(request), "keys": sorted(changes)},
    )
    return _apply(request, settings)


@router.post("/settings/reset", response_model=SettingsModel)
async def reset_settings(request: Request):
    return _apply(request, get_workout_storage(request).reset_settings())
