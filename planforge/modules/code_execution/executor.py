import logging
import os
import shutil
import subprocess
import tempfile
import time
import uuid
from typing import Any, Dict, List

from fastapi import HTTPException

from planforge.modules.code_execution import process_registry

logger = logging.getLogger(__name__)

LANGUAGES: Dict[str, Dict[str, Any]] = {
    "javascript": {"extension": ".js", "commands": [["node"]], "timeout": 5000},
    "typescript": {"extension": ".ts", "commands": [["npx", "ts-node"]], "timeout": 10000},
    "python": {"extension": ".py", "commands": [["python3"], ["python"]], "timeout": 10000},
}

MAX_CODE_SIZE = 100 * 1024
DEFAULT_EXECUTION_TIME_MS = 5000
MAX_EXECUTION_TIME_MS = 30000
DEFAULT_MEMORY_MB = 128
MAX_OUTPUT_CHARS = 100_000


def resolve_command(language: str) -> List[str]:
    """First interpreter command for the language that exists on PATH."""
    for command in LANGUAGES[language]["commands"]:
        if shutil.which(command[0]):
            return command
    raise HTTPException(status_code=503, detail=f"No runtime available for {language}")


def _truncate(text: str) -> str:
    if len(text) <= MAX_OUTPUT_CHARS:
        return text
    return text[:MAX_OUTPUT_CHARS] + "\n... output truncated"


def execute(code: str, language: str, max_execution_time_ms: int = DEFAULT_EXECUTION_TIME_MS) -> Dict[str, Any]:
    """Run a snippet in a throwaway directory and report its output.

    The child is killed once the time limit passes.
    """
    config = LANGUAGES[language]
    command = resolve_command(language)
    timeout_ms = min(max_execution_time_ms, MAX_EXECUTION_TIME_MS)
    execution_id = str(uuid.uuid4())

    with tempfile.TemporaryDirectory(prefix="code-exec-") as work_dir:
        script_path = os.path.join(work_dir, f"script{config['extension']}")
        with open(script_path, "w", encoding="utf-8") as f:
            f.write(code)

        env = {
            "PATH": os.environ.get("PATH", ""),
            "HOME": work_dir,
            "TMPDIR": work_dir,
            "PYTHONDONTWRITEBYTECODE": "1",
            "NODE_OPTIONS": "--max-old-space-size=128",
        }
        started = time.monotonic()
        proc = subprocess.Popen(
            command + [script_path],
            cwd=work_dir,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            encoding="utf-8",
            errors="replace",
            env=env,
        )
        process_registry.register(execution_id, proc)
        try:
            stdout, stderr = proc.communicate(timeout=timeout_ms / 1000)
        except subprocess.TimeoutExpired:
            proc.kill()
            stdout, stderr = proc.communicate()
            elapsed = int((time.monotonic() - started) * 1000)
            logger.info(f"Execution {execution_id} ({language}) timed out after {elapsed}ms")
            return {
                "success": False,
                "output": _truncate(stdout or ""),
                "error": f"Execution exceeded {timeout_ms / 1000:g} seconds",
                "executionTime": elapsed,
                "exitCode": proc.returncode,
                "timedOut": True,
            }
        finally:
            process_registry.unregister(execution_id)

    elapsed = int((time.monotonic() - started) * 1000)
    logger.info(f"Execution {execution_id} ({language}) exited {proc.returncode} in {elapsed}ms")
    if proc.returncode != 0:
        return {
            "success": False,
            "output": _truncate(stdout or ""),
            "error": _truncate(stderr.strip()) if stderr and stderr.strip() else f"Process exited with code {proc.returncode}",
            "executionTime": elapsed,
            "exitCode": proc.returncode,
        }
    return {
        "success": True,
        "output": _truncate(stdout) if stdout else "Code executed successfully",
        "executionTime": elapsed,
        "exitCode": 0,
    }
