"""Thread-safe registry of execution_id -> subprocess.Popen so running snippets can be killed on shutdown."""
import threading
import subprocess
import logging
from typing import Dict, Optional

logger = logging.getLogger(__name__)
_lock = threading.Lock()
_registry: Dict[str, subprocess.Popen] = {}


def register(execution_id: str, process: subprocess.Popen) -> None:
    with _lock:
        _registry[execution_id] = process
        logger.debug(f"Registered process for execution {execution_id}")


def unregister(execution_id: str) -> None:
    with _lock:
        _registry.pop(execution_id, None)


def get_process(execution_id: str) -> Optional[subprocess.Popen]:
    with _lock:
        return _registry.get(execution_id)


def running_count() -> int:
    with _lock:
        return len(_registry)


def terminate(execution_id: str, wait_seconds: float = 2.0) -> bool:
    """Terminate one execution. Returns True if a process was found."""
    proc = get_process(execution_id)
    if proc is None:
        return False
    try:
        proc.terminate()
        try:
            proc.wait(timeout=wait_seconds)
        except subprocess.TimeoutExpired:
            proc.kill()
            proc.wait()
    except OSError as e:
        logger.warning(f"Error terminating execution {execution_id}: {e}")
    finally:
        unregister(execution_id)
    return True


def terminate_all() -> int:
    with _lock:
        execution_ids = list(_registry.keys())
    for execution_id in execution_ids:
        terminate(execution_id)
    if execution_ids:
        logger.info(f"Terminated {len(execution_ids)} running execution(s)")
    return len(execution_ids)
