"""Config API: read and hot-reload matching weights/thresholds."""

from typing import Any

from fastapi import APIRouter, HTTPException

from thread_matcher.errors import MatchingConfigError
from thread_matcher.matching.settings import get_matching_config, reload_matching_config

router = APIRouter(prefix="/config", tags=["config"])


@router.get("/matching")
async def get_matching() -> dict[str, Any]:
    """Return the active weights and thresholds."""
    return get_matching_config().model_dump()


@router.post("/matching/reload")
async def reload_matching() -> dict[str, Any]:
    """Re-read config/matching.yaml. An invalid file leaves the previous config active."""
    try:
        config = reload_matching_config()
    except MatchingConfigError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    return {"status": "reloaded", "config": config.model_dump()}
