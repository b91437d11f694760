"""Run a trace in a short-lived worker process.

``run_trace_in_subprocess`` launches ``_subprocess_worker`` (a JSON-over-
stdin/stdout helper) with a wall-clock timeout and, on POSIX, CPU and
address-space limits. The in-process interpreter is already bounded by step
and loop ceilings; isolation adds a hard stop on wall time and memory for
deployments that want it.

Behavior and guarantees:
  - On POSIX, RLIMIT_CPU and RLIMIT_AS are applied in a preexec function.
    On Windows these limits are no-ops.
  - The worker gets a minimal environment: PATH plus a PYTHONPATH pointing at
    the project root so ``backend.minipy`` is importable.
  - The function returns (returncode, stdout, stderr). A returncode of -1
    means the process was killed on timeout.

This is not a substitute for container/VM isolation in production.
"""

import json
import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[2]
WORKER_MODULE = "backend.minipy._subprocess_worker"


def _make_posix_preexec(cpu_seconds: Optional[int], mem_limit_mb: Optional[int]):
    """Return a preexec_fn that applies resource limits on POSIX systems."""
    def preexec():
        import resource

        if cpu_seconds is not None:
            resource.setrlimit(resource.RLIMIT_CPU, (int(cpu_seconds), int(cpu_seconds)))
        if mem_limit_mb is not None:
            mem_bytes = int(mem_limit_mb) * 1024 * 1024
            resource.setrlimit(resource.RLIMIT_AS, (mem_bytes, mem_bytes))
        # new session so a timeout kill does not touch the parent's group
        os.setsid()

    return preexec


def run_trace_in_subprocess(
    code: str,
    inputs: Optional[List[str]] = None,
    settings: Optional[Dict[str, Any]] = None,
    timeout_s: float = 2,
    *,
    cpu_seconds: Optional[int] = 5,
    mem_limit_mb: Optional[int] = 1024,
) -> Tuple[int, str, str]:
    """Trace `code` in the worker process and return its raw outputs.

    Parameters:
      - code: program source.
      - inputs: prior input values for `input()` replay.
      - settings: interpreter limits (`max_steps`, `max_loop`, ...).
      - timeout_s: wall-clock timeout for the whole operation (seconds).
      - cpu_seconds: optional RLIMIT_CPU (seconds) applied on POSIX.
      - mem_limit_mb: optional RLIMIT_AS (MB) applied on POSIX.

    Returns (returncode, stdout, stderr). On timeout the process is killed
    and (-1, "", "TIMEOUT") is returned.
    """
    env = {
        "PATH": os.environ.get("PATH", ""),
        "PYTHONPATH": str(PROJECT_ROOT),
    }

    popen_kwargs: Dict[str, Any] = dict(
        args=[sys.executable, "-m", WORKER_MODULE],
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        env=env,
        cwd=str(PROJECT_ROOT),
        close_fds=True,
    )
    if os.name != "nt":
        popen_kwargs["preexec_fn"] = _make_posix_preexec(cpu_seconds, mem_limit_mb)

    proc = subprocess.Popen(**popen_kwargs)

    payload = json.dumps({"code": code, "inputs": list(inputs or []), "settings": settings or {}})
    try:
        out, err = proc.communicate(payload, timeout=timeout_s)
    except subprocess.TimeoutExpired:
        logger.warning("trace worker timed out after %ss", timeout_s)
        proc.kill()
        proc.communicate()
        return -1, "", "TIMEOUT"

    return proc.returncode, out or "", err or ""
