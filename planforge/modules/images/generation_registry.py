"""Thread-safe registry of generation_id -> progress for image generations in this process."""
import threading
import time
import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)
_lock = threading.Lock()
_registry: Dict[str, Dict[str, Any]] = {}

FINISHED_TTL_SEC = 3600


def register(generation_id: str, user_id: str, model: str, estimated_time: int) -> Dict[str, Any]:
    entry = {
        "id": generation_id,
        "user_id": user_id,
        "model": model,
        "status": "queued",
        "progress": 0,
        "estimated_time": estimated_time,
        "images": [],
        "error": None,
        "updated_at": time.time(),
    }
    with _lock:
        _prune()
        _registry[generation_id] = entry
        logger.debug(f"Registered generation {generation_id}")
    return dict(entry)


def update(generation_id: str, **fields) -> None:
    with _lock:
        entry = _registry.get(generation_id)
        if entry is None:
            return
        entry.update(fields)
        entry["updated_at"] = time.time()


def get(generation_id: str) -> Optional[Dict[str, Any]]:
    with _lock:
        entry = _registry.get(generation_id)
        return dict(entry) if entry else None


def _prune() -> None:
    # caller holds _lock
    cutoff = time.time() - FINISHED_TTL_SEC
    for generation_id in [
        gid for gid, entry in _registry.items()
        if entry["status"] in ("completed", "failed") and entry["updated_at"] < cutoff
    ]:
        del _registry[generation_id]
