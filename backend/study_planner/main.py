import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from .config import Settings, get_settings
from .curriculum_routes import router as curriculum_router
from .curriculum_store import shutdown_curriculum_store
from .db.monitoring import get_pool_snapshot
from .db.session import get_engine
from .logging_config import configure_logging


configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    logger.info("Backend starting with persistence mode: %s", settings.persistence_mode)
    logger.info("Curriculum storage key: %s", settings.storage_key)
    yield
    shutdown_curriculum_store()


app = FastAPI(title="Study Planner Backend", version="0.1.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(curriculum_router)


@app.get("/healthz")
def health(settings: Settings = Depends(get_settings)) -> Dict[str, str]:
    return {"status": "ok", "persistence_mode": settings.persistence_mode}


@app.get("/healthz/database")
def database_health(settings: Settings = Depends(get_settings)) -> Dict[str, object]:
    try:
        engine = get_engine()
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    except Exception as exc:  # noqa: BLE001
        logger.warning("Database health probe failed: %s", exc)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return {
        "status": "ok",
        "pool": get_pool_snapshot(engine),
        "persistence_mode": settings.persistence_mode,
    }


def run() -> None:
    """Console entrypoint: serve the API with uvicorn."""
    uvicorn.run("study_planner.main:app", host="127.0.0.1", port=8000, log_config=None)


if __name__ == "__main__":  # pragma: no cover
    run()
