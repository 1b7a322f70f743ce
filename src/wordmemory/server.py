import logging
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from wordmemory.application.config import resolve_config
from wordmemory.application.factory import get_backup_manager, get_word_service
from wordmemory.application.word_service import WordService
from wordmemory.consts import VERSION
from wordmemory.domain.errors import (
    InvalidRating,
    InvalidState,
    WordNotFoundError,
    WordValidationError,
)
from wordmemory.infrastructure.serialization import stats_to_dict, word_from_dict, word_to_dict
from wordmemory.infrastructure.timer import ThreadingPeriodicScheduler

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("wordmemory.server")

_service: WordService | None = None


def get_service() -> WordService:
    """Process-wide word service, created on first use from the resolved config."""
    global _service
    if _service is None:
        _service = get_word_service(resolve_config())
    return _service


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"WordMemory Server v{VERSION} starting up...")
    config = resolve_config()
    backups = None
    if config.auto_backup:
        backups = get_backup_manager(config)
        backups.start_auto_backup(
            ThreadingPeriodicScheduler(), get_service().snapshot, config.auto_backup_interval_ms
        )
        logger.info(f"Auto backup every {config.auto_backup_interval_ms} ms to {config.backup_dir}")
    yield
    # Shutdown
    if backups is not None:
        backups.stop_auto_backup()
    logger.info("WordMemory Server shutting down...")


app = FastAPI(
    title="WordMemory Server",
    description="Vocabulary store and review scheduler API.",
    version=VERSION,
    lifespan=lifespan,
)


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


class AddWordRequest(BaseModel):
    original: str
    translations: dict[str, str] = Field(default_factory=dict)
    notes: str = ""
    examples: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


class UpdateWordRequest(BaseModel):
    original: str | None = None
    translations: dict[str, str] | None = None
    notes: str | None = None
    examples: list[str] | None = None
    tags: list[str] | None = None
    audio_url: str | None = None


class ReviewRequest(BaseModel):
    rating: int
    response_time_ms: int = 0
    now: datetime | None = None


start_time = time.time()


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


@app.get("/vocabulary")
def get_vocabulary(service: WordService = Depends(get_service)) -> list[dict[str, Any]]:
    return [word_to_dict(w) for w in service.list_words()]


@app.post("/vocabulary")
def put_vocabulary(
    records: list[dict[str, Any]], service: WordService = Depends(get_service)
) -> dict[str, Any]:
    """Replace the whole collection."""
    try:
        words = [word_from_dict(r) for r in records]
    except WordValidationError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    service.replace_all(words)
    return {"success": True, "count": len(words)}


@app.get("/queue")
def get_queue(service: WordService = Depends(get_service)) -> list[dict[str, Any]]:
    return [word_to_dict(w) for w in service.today_queue()]


@app.get("/stats")
def get_stats(service: WordService = Depends(get_service)) -> dict[str, Any]:
    return stats_to_dict(service.stats())


@app.post("/words", status_code=201)
def add_word(
    req: AddWordRequest, service: WordService = Depends(get_service)
) -> dict[str, Any]:
    try:
        word = service.add_word(
            req.original,
            translations=req.translations,
            notes=req.notes,
            examples=req.examples,
            tags=req.tags,
        )
    except WordValidationError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return word_to_dict(word)


@app.patch("/words/{word_id}")
def update_word(
    word_id: str, req: UpdateWordRequest, service: WordService = Depends(get_service)
) -> dict[str, Any]:
    """Change content fields. Only fields present in the body are touched."""
    try:
        changes = {
            k: v
            for k, v in req.model_dump(exclude_unset=True).items()
            if v is not None or k == "audio_url"
        }
        word = service.update_word(word_id, **changes)
    except WordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except WordValidationError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return word_to_dict(word)


@app.post("/words/{word_id}/review")
def review_word(
    word_id: str, req: ReviewRequest, service: WordService = Depends(get_service)
) -> dict[str, Any]:
    try:
        word = service.submit_review(
            word_id, req.rating, now=req.now, response_time_ms=req.response_time_ms
        )
    except InvalidRating as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except WordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    except InvalidState as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    return word_to_dict(word)


@app.delete("/words/{word_id}")
def delete_word(word_id: str, service: WordService = Depends(get_service)) -> dict[str, Any]:
    try:
        service.delete_word(word_id)
    except WordNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    return {"success": True}
