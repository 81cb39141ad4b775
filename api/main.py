import os
import sys
import logging
import time
import uuid
from datetime import datetime
from pathlib import Path
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse

sys.path.append(str(Path(__file__).parent.parent))

from services.session_service import WorkoutSession
from storage.workout_store import LocalJsonStorage


API_VERSION = "1.0.0"
DEFAULT_DATA_DIR = "./data/workouts"
LOGGER_NAME = "strokescope"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] [request_id=%(request_id)s] %(message)s"
REQUEST_ID_HEADER = "X-Request-ID"


class RequestIdLogFilter(logging.Filter):
    """Garantit un champ request_id sur chaque enregistrement ('-' hors requete)."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover
        record.request_id = getattr(record, "request_id", "-")
        return True


def _log_dir() -> Path:
    default = Path(__file__).resolve().parents[1] / "logs"
    return Path(os.environ.get("STROKESCOPE_LOG_DIR", default))


def setup_logging() -> logging.Logger:
    """Logger 'strokescope': un fichier horodate par demarrage + la console.

    Les handlers precedents sont fermes (rechargement, TestClient successifs).
    Les loggers enfants (strokescope.detection, .session, .storage) en heritent.
    """
    log_dir = _log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / f"strokescope_{datetime.now():%Y%m%d_%H%M%S}.log"

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.INFO)
    logger.propagate = False
    while logger.handlers:
        logger.handlers.pop().close()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    for handler in (logging.FileHandler(log_path, encoding="utf-8"), logging.StreamHandler()):
        handler.setLevel(logging.INFO)
        handler.setFormatter(formatter)
        handler.addFilter(RequestIdLogFilter())
        logger.addHandler(handler)

    logger.info("api_start version=%s log_file=%s", API_VERSION, log_path)
    return logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = setup_logging()
    storage = LocalJsonStorage(os.environ.get("STROKESCOPE_DATA_DIR", DEFAULT_DATA_DIR))
    session = WorkoutSession(storage.load_settings())

    app.state.storage = storage
    app.state.session = session
    app.state.logger = logger

    yield

    # une seance encore ouverte a l'arret n'est pas enregistree
    if session.stop():
        logger.info("session_stopped_on_shutdown")


app = FastAPI(
    title="StrokeScope API",
    description="Cadence d'aviron en direct (accelerometre + GPS)",
    version=API_VERSION,
    lifespan=lifespan,
)


@app.middleware("http")
async def attach_request_id(request: Request, call_next):
    """Identifiant par requete (repris du client s'il en fournit un), journalise avec la duree."""
    logger: logging.Logger = request.app.state.logger
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    request.state.request_id = request_id
    context = {"request_id": request_id, "http_method": request.method, "path": request.url.path}

    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception:
        logger.exception("request_failed", extra=context)
        response = JSONResponse(
            status_code=500,
            content={"detail": "Internal Server Error", "request_id": request_id},
        )
    elapsed_ms = round((time.perf_counter() - started) * 1000, 2)

    response.headers[REQUEST_ID_HEADER] = request_id
    logger.info(
        "%s %s -> %s (%.2f ms)",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
        extra={**context, "status": response.status_code, "duration_ms": elapsed_ms},
    )
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:3001"],
    allow_origin_regex=r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

from api.routes.session import router as session_router
from api.routes.workouts import router as workouts_router
from api.routes.settings import router as settings_router

for router in (session_router, workouts_router, settings_router):
    app.include_router(router)


@app.get("/")
async def root():
    return {
        "message": "StrokeScope API",
        "version": API_VERSION,
        "docs": "/docs",
        "status": "operational",
    }


@app.get("/health")
async def health_check(request: Request):
    """Donnees accessibles en ecriture et seance chargee"""
    state = request.app.state
    if not state.storage.data_dir.is_dir():
        state.logger.error("health_failed", extra={"data_dir": str(state.storage.data_dir)})
        raise HTTPException(status_code=503, detail="Service unavailable: data directory missing")

    return {
        "status": "healthy",
        "storage": "operational",
        "session": "running" if state.session.is_running else "idle",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "api.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info",
    )
